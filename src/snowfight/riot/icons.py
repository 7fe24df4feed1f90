"""Profile icon URL helpers."""
from __future__ import annotations

LOCAL_ICON_MAX_ID = 10005
DDRAGON_VERSION = "15.5.1"


def is_local_icon(profile_icon_id: int) -> bool:
    return 0 <= profile_icon_id <= LOCAL_ICON_MAX_ID


def profile_icon_src(profile_icon_id: int) -> str:
    """Return the bundled icon path, or the Data Dragon URL for newer icons."""

    if is_local_icon(profile_icon_id):
        return f"/profile-icons/{profile_icon_id}.png"
    return f"https://ddragon.leagueoflegends.com/cdn/{DDRAGON_VERSION}/img/profileicon/{profile_icon_id}.png"
