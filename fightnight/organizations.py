"""Supported fight organizations and where their schedules come from"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class OrgFeed:
    """Feed settings for one organization"""
    org_id: str
    display_name: str
    scoreboard_url: str
    default_event_url: str
    default_event_name: str
    default_short_name: str
    # Feeder/developmental series that must never be promoted
    ignored_keywords: Tuple[str, ...] = ()


ORGANIZATIONS: Dict[str, OrgFeed] = {
    "ufc": OrgFeed(
        org_id="ufc",
        display_name="UFC",
        scoreboard_url="https://site.api.espn.com/apis/site/v2/sports/mma/ufc/scoreboard",
        default_event_url="https://www.ufc.com/events",
        default_event_name="UFC Fight Night",
        default_short_name="UFC Event",
        ignored_keywords=(
            "contender series",
            "dana white's contender",
            "dwcs",
        ),
    ),
}


def get_org(org_id: Optional[str]) -> Optional[OrgFeed]:
    """Look up an organization by id (case-insensitive)"""
    if not org_id:
        return None
    return ORGANIZATIONS.get(org_id.lower())
