"""Decoding of raw scoreboard payloads into typed feed records

The ESPN payload is loosely typed: any key may be missing, null, or of the
wrong type. Everything is normalized here, once, so the resolver only works
with the dataclasses below.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..utils.logger import setup_logger
from ..utils.timezone import to_utc

logger = setup_logger(__name__)


@dataclass(frozen=True)
class RawCompetitor:
    order: int = 0
    full_name: Optional[str] = None
    display_name: Optional[str] = None
    short_name: Optional[str] = None
    record: Optional[str] = None

    @property
    def name(self) -> str:
        return self.full_name or self.display_name or self.short_name or "TBA"


@dataclass(frozen=True)
class RawVenue:
    full_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    @property
    def has_address(self) -> bool:
        return any((self.city, self.state, self.country))


@dataclass(frozen=True)
class RawLink:
    href: Optional[str] = None
    rels: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RawBout:
    """One competition (bout) on an event card"""
    id: Optional[str] = None
    date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    weight_class: Optional[str] = None
    segment_title: Optional[str] = None
    venue: Optional[RawVenue] = None
    broadcast: Optional[str] = None
    broadcast_names: Tuple[str, ...] = ()
    competitors: Tuple[RawCompetitor, ...] = ()
    state: Optional[str] = None


@dataclass(frozen=True)
class RawEvent:
    """One event of a yearly scoreboard snapshot"""
    id: Optional[str] = None
    name: Optional[str] = None
    short_name: Optional[str] = None
    date: Optional[datetime] = None
    state: str = "pre"
    venues: Tuple[RawVenue, ...] = ()
    links: Tuple[RawLink, ...] = ()
    logo_url: Optional[str] = None
    bouts: Tuple[RawBout, ...] = ()


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _text(value: Any) -> Optional[str]:
    """Stripped string, None when absent or blank"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime

    Accepts a trailing 'Z', explicit offsets, or no offset (read as UTC).
    Returns None for anything that can't be parsed.
    """
    text = _text(value)
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value!r}")
        return None
    return to_utc(parsed)


def _state(status: Any) -> Optional[str]:
    return _text(_dict(_dict(status).get("type")).get("state"))


def decode_venue(data: Any) -> Optional[RawVenue]:
    if not isinstance(data, dict):
        return None
    address = _dict(data.get("address"))
    return RawVenue(
        full_name=_text(data.get("fullName")),
        city=_text(address.get("city")),
        state=_text(address.get("state")),
        country=_text(address.get("country")),
    )


def decode_link(data: Any) -> Optional[RawLink]:
    if not isinstance(data, dict):
        return None
    rels = tuple(rel.lower() for rel in (_text(r) for r in _list(data.get("rel"))) if rel)
    return RawLink(href=_text(data.get("href")), rels=rels)


def decode_competitor(data: Any) -> Optional[RawCompetitor]:
    if not isinstance(data, dict):
        return None
    athlete = _dict(data.get("athlete"))
    records = _list(data.get("records"))
    record = _text(_dict(records[0]).get("summary")) if records else None
    return RawCompetitor(
        order=_int(data.get("order")),
        full_name=_text(athlete.get("fullName")),
        display_name=_text(athlete.get("displayName")),
        short_name=_text(athlete.get("shortName")),
        record=record,
    )


def _broadcast_names(data: Dict[str, Any]) -> Tuple[str, ...]:
    """Every broadcast name in order of first appearance, without duplicates"""
    names: List[str] = []

    def add(value: Any):
        name = _text(value)
        if name and name not in names:
            names.append(name)

    for item in _list(data.get("broadcasts")):
        for name in _list(_dict(item).get("names")):
            add(name)
    for item in _list(data.get("geoBroadcasts")):
        item = _dict(item)
        add(_dict(item.get("media")).get("shortName"))
        add(_dict(item.get("type")).get("shortName"))
    return tuple(names)


def decode_bout(data: Any) -> Optional[RawBout]:
    if not isinstance(data, dict):
        return None
    bout_type = _dict(data.get("type"))
    competitors = tuple(
        c for c in (decode_competitor(item) for item in _list(data.get("competitors"))) if c
    )
    return RawBout(
        id=_text(data.get("id")) or _text(data.get("uid")),
        date=parse_datetime(data.get("date")),
        start_date=parse_datetime(data.get("startDate")),
        end_date=parse_datetime(data.get("endDate")),
        weight_class=_text(bout_type.get("text")) or _text(bout_type.get("abbreviation")),
        segment_title=_text(_dict(data.get("cardSegment")).get("title")),
        venue=decode_venue(data.get("venue")),
        broadcast=_text(data.get("broadcast")),
        broadcast_names=_broadcast_names(data),
        competitors=competitors,
        state=_state(data.get("status")),
    )


def decode_event(data: Any) -> Optional[RawEvent]:
    if not isinstance(data, dict):
        return None
    bouts = tuple(b for b in (decode_bout(item) for item in _list(data.get("competitions"))) if b)
    venues = tuple(v for v in (decode_venue(item) for item in _list(data.get("venues"))) if v)
    links = tuple(l for l in (decode_link(item) for item in _list(data.get("links"))) if l)
    logos = _list(data.get("logos"))
    state = _state(data.get("status")) or (bouts[0].state if bouts else None) or "pre"
    return RawEvent(
        id=_text(data.get("id")) or _text(data.get("uid")),
        name=_text(data.get("name")),
        short_name=_text(data.get("shortName")),
        date=parse_datetime(data.get("date")),
        state=state.lower(),
        venues=venues,
        links=links,
        logo_url=_text(_dict(logos[0]).get("href")) if logos else None,
        bouts=bouts,
    )


def decode_scoreboard(payload: Any) -> List[RawEvent]:
    """Decode a scoreboard snapshot into its events, skipping malformed entries"""
    events = []
    for item in _list(_dict(payload).get("events")):
        try:
            event = decode_event(item)
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning(f"Skipping undecodable scoreboard entry: {e}")
            continue
        if event is None:
            logger.debug(f"Skipping malformed scoreboard entry: {item!r}")
            continue
        events.append(event)
    return events
