"""Event resolution: picks the current event of an organization from the feed"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from .espn_client import ESPNClient
from .feed import RawBout, RawEvent, RawLink, RawVenue, decode_scoreboard
from ..organizations import OrgFeed, get_org
from ..utils.logger import setup_logger
from ..utils.timezone import now_utc, to_utc

logger = setup_logger(__name__)

PREFERRED_LINK_RELS = ("preview", "gamecast", "hub", "info")
TBA = "TBA"


@dataclass(frozen=True)
class CandidateEvent:
    """A feed event annotated with its resolved start, end and state"""
    source: RawEvent
    start: datetime
    end: Optional[datetime]
    state: str


@dataclass(frozen=True)
class CardBout:
    """One bout of an event card"""
    weight_class: str
    red_name: str
    blue_name: str
    red_record: Optional[str] = None
    blue_record: Optional[str] = None
    scheduled: Optional[datetime] = None


@dataclass(frozen=True)
class FightEvent:
    """The event chosen for an organization"""
    id: str
    org: str
    name: str
    short_name: str
    main_event: str
    start_time: datetime
    end_time: Optional[datetime]
    venue: str
    city: str
    broadcast: str
    url: str
    logo_url: Optional[str] = None


@dataclass(frozen=True)
class EventWithCard:
    event: FightEvent
    card: List[CardBout] = field(default_factory=list)


class EventResolver:
    """Resolves the next relevant event for an organization"""

    def __init__(self, client: ESPNClient):
        """
        Initialize event resolver

        Args:
            client: Scoreboard client used to fetch yearly snapshots
        """
        self.client = client

    def resolve_next_event(self, org: str, as_of: Optional[datetime] = None) -> Optional[EventWithCard]:
        """
        Resolve the current event of an organization

        An ongoing event always wins over an upcoming one; within each group
        the earliest start wins. Nothing is cached, every call reads the feed.

        Args:
            org: Organization id (e.g. 'ufc')
            as_of: Evaluation instant, defaults to now

        Returns:
            The chosen event with its card, or None if nothing qualifies
        """
        feed = get_org(org)
        if feed is None:
            logger.warning(f"No schedule feed for organization '{org}'")
            return None

        as_of = to_utc(as_of) if as_of else now_utc()

        candidates: List[CandidateEvent] = []
        for year in (as_of.year - 1, as_of.year, as_of.year + 1):
            for raw in self._load_year(feed, year):
                if self._is_ignored(raw, feed):
                    logger.debug(f"Ignoring event {raw.name or raw.short_name}")
                    continue
                candidate = annotate_event(raw)
                if candidate:
                    candidates.append(candidate)

        chosen = select_candidate(candidates, as_of)
        if chosen is None:
            logger.info(f"No ongoing or upcoming {feed.display_name} event found")
            return None

        return EventWithCard(
            event=build_fight_event(chosen, feed),
            card=build_fight_card(chosen.source),
        )

    def _load_year(self, feed: OrgFeed, year: int) -> List[RawEvent]:
        """Fetch one year of events; a failure only empties that year"""
        try:
            payload = self.client.fetch_scoreboard(feed.scoreboard_url, year)
        except Exception as e:
            logger.error(f"Failed to load {feed.display_name} scoreboard for {year}: {e}")
            return []
        return decode_scoreboard(payload)

    @staticmethod
    def _is_ignored(event: RawEvent, feed: OrgFeed) -> bool:
        name = (event.name or "").lower()
        short = (event.short_name or "").lower()
        return any(keyword in name or keyword in short for keyword in feed.ignored_keywords)


def annotate_event(event: RawEvent) -> Optional[CandidateEvent]:
    """Build a candidate from an event, None if it has no usable start"""
    starts = [event.date] if event.date else []
    ends = []
    for bout in event.bouts:
        starts.extend(value for value in (bout.start_date, bout.date) if value)
        ends.extend(value for value in (bout.end_date, bout.date) if value)

    if not starts:
        return None

    return CandidateEvent(
        source=event,
        start=min(starts),
        end=max(ends) if ends else None,
        state=event.state,
    )


def select_candidate(candidates: List[CandidateEvent], as_of: datetime) -> Optional[CandidateEvent]:
    """Pick the earliest ongoing candidate, else the earliest upcoming one"""
    live = [c for c in candidates if c.state != "post"]

    ongoing = sorted(
        (c for c in live if c.start <= as_of and (c.end is None or as_of <= c.end)),
        key=lambda c: c.start,
    )
    if ongoing:
        return ongoing[0]

    upcoming = sorted((c for c in live if c.start > as_of), key=lambda c: c.start)
    if upcoming:
        return upcoming[0]

    return None


def choose_main_bout(event: RawEvent) -> Optional[RawBout]:
    """
    Pick the bout that represents the event

    A bout whose card segment mentions 'main' or 'title' wins; otherwise the
    last bout, since the feed lists prelims first.
    """
    if not event.bouts:
        return None
    for bout in event.bouts:
        title = (bout.segment_title or "").lower()
        if "main" in title or "title" in title:
            return bout
    return event.bouts[-1]


def bout_sides(bout: RawBout) -> Tuple[str, str, Optional[str], Optional[str]]:
    """Red name, blue name, red record, blue record for a bout"""
    if not bout.competitors:
        return TBA, TBA, None, None
    ordered = sorted(bout.competitors, key=lambda c: c.order)
    red = ordered[0]
    blue = ordered[1] if len(ordered) > 1 else None
    return (
        red.name,
        (blue or red).name,
        red.record,
        blue.record if blue else None,
    )


def format_city(venue: Optional[RawVenue]) -> str:
    if venue is None or not venue.has_address:
        return TBA
    parts = [part for part in (venue.city, venue.state, venue.country) if part]
    return ", ".join(parts) or TBA


def extract_broadcast(bout: Optional[RawBout]) -> str:
    if bout is None:
        return TBA
    if bout.broadcast:
        return bout.broadcast
    if bout.broadcast_names:
        return ", ".join(bout.broadcast_names)
    return TBA


def select_event_url(links: Tuple[RawLink, ...]) -> Optional[str]:
    """First link by relation preference, then any link with an href"""
    for rel in PREFERRED_LINK_RELS:
        for link in links:
            if rel in link.rels and link.href:
                return link.href
    for link in links:
        if link.href:
            return link.href
    return None


def build_fight_event(candidate: CandidateEvent, feed: OrgFeed) -> FightEvent:
    event = candidate.source
    main_bout = choose_main_bout(event)

    if main_bout:
        red, blue, _, _ = bout_sides(main_bout)
        main_event = f"{red} vs {blue}"
    else:
        main_event = TBA

    venue = event.venues[0] if event.venues else (main_bout.venue if main_bout else None)
    venue_name = venue.full_name if venue and venue.full_name else TBA

    start = candidate.start
    end = candidate.end
    if main_bout:
        start = main_bout.start_date or main_bout.date or start
        end = main_bout.end_date or main_bout.date or end

    return FightEvent(
        id=event.id or "unknown",
        org=feed.org_id,
        name=event.name or feed.default_event_name,
        short_name=event.short_name or event.name or feed.default_short_name,
        main_event=main_event,
        start_time=start,
        end_time=end,
        venue=venue_name,
        city=format_city(venue),
        broadcast=extract_broadcast(main_bout),
        url=select_event_url(event.links) or feed.default_event_url,
        logo_url=event.logo_url,
    )


def build_fight_card(event: RawEvent) -> List[CardBout]:
    """Card entries in feed order (prelims first)"""
    card = []
    for bout in event.bouts:
        red, blue, red_record, blue_record = bout_sides(bout)
        card.append(CardBout(
            weight_class=bout.weight_class or "Bout",
            red_name=red,
            blue_name=blue,
            red_record=red_record,
            blue_record=blue_record,
            scheduled=bout.start_date or bout.date,
        ))
    return card
