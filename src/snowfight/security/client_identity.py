"""Client identity extraction for rate limiting."""
from __future__ import annotations

from typing import Dict, Mapping

UNKNOWN_CLIENT = "unknown"

FORWARDED_FOR = "x-forwarded-for"
REAL_IP = "x-real-ip"
CF_CONNECTING_IP = "cf-connecting-ip"


def identify(headers: Mapping[str, str]) -> str:
    """Derive the rate limit identifier from proxy headers.

    Order of precedence is ``X-Forwarded-For`` (first hop), ``X-Real-IP``,
    ``CF-Connecting-IP``, then the literal ``"unknown"``. Values are taken as
    sent; a client able to set these headers can choose its own identifier.
    """

    # Repeated header lines arrive in order; the first one carries the client hop.
    lowered: Dict[str, str] = {}
    for key, value in headers.items():
        lowered.setdefault(key.lower(), value)

    first_hop = (lowered.get(FORWARDED_FOR) or "").split(",")[0].strip()
    if first_hop:
        return first_hop
    real_ip = lowered.get(REAL_IP)
    if real_ip:
        return real_ip
    cf_connecting_ip = lowered.get(CF_CONNECTING_IP)
    if cf_connecting_ip:
        return cf_connecting_ip
    return UNKNOWN_CLIENT
