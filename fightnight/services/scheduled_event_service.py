"""Creation of Discord scheduled events ahead of fight night"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .discord_client import DiscordClient
from .event_resolver import EventResolver, FightEvent
from .message_formatter import org_label
from ..storage.settings_store import SettingsStore
from ..utils.logger import setup_logger
from ..utils.timezone import local_date, now_utc, to_utc

logger = setup_logger(__name__)

EVENT_DURATION = timedelta(hours=3)
EVENT_DESCRIPTION = "Auto-created by Fight Night bot"


@dataclass(frozen=True)
class ScheduledEventResult:
    created: bool
    reason: str
    event_id: Optional[str] = None


def build_location(event: FightEvent) -> str:
    """'<venue> - <city>' when the venue is known, else the city, else TBD"""
    venue = event.venue if event.venue and event.venue != "TBA" else None
    city = event.city if event.city and event.city != "TBA" else None
    if venue:
        return f"{venue} - {city}" if city else venue
    return city or "TBD"


class ScheduledEventService:
    """Creates one scheduled event per organization event, the day before or on the day"""

    def __init__(
        self,
        settings_store: SettingsStore,
        resolver: EventResolver,
        discord_client: DiscordClient
    ):
        self.settings_store = settings_store
        self.resolver = resolver
        self.discord_client = discord_client

    async def create_for_guild(
        self,
        guild_id: str,
        force: bool = False,
        now: Optional[datetime] = None,
        mark_created: Optional[bool] = None
    ) -> ScheduledEventResult:
        """
        Create a scheduled event for the guild's next fight night

        Args:
            guild_id: Guild to create the event in
            force: Skip the enabled, window and already-created checks
            now: Evaluation instant, defaults to now
            mark_created: Pass False to leave the dedup marker untouched

        Returns:
            Whether an event was created and why not if it wasn't

        Raises:
            DiscordDeliveryError: If Discord rejects the event
        """
        if not self.discord_client.token:
            return ScheduledEventResult(False, "bot token not configured")

        guild = self.settings_store.get(guild_id).configured()
        if guild is None:
            return ScheduledEventResult(False, "organization not set")

        if not force and not guild.scheduled_events_enabled:
            return ScheduledEventResult(False, "disabled")

        now = to_utc(now) if now else now_utc()
        data = await asyncio.to_thread(self.resolver.resolve_next_event, guild.org, now)
        if data is None:
            return ScheduledEventResult(False, "no upcoming event found")

        event = data.event
        event_day = local_date(event.start_time, guild.timezone)
        creation_day = event_day - timedelta(days=1)
        today = local_date(now, guild.timezone)
        event_day_key = event_day.isoformat()

        if not force and today not in (creation_day, event_day):
            return ScheduledEventResult(False, "not within creation window")

        if not force and guild.scheduled_event_day == event_day_key:
            return ScheduledEventResult(False, "already created")

        start = event.start_time
        end = start + EVENT_DURATION
        logger.info(
            f"Creating scheduled event for guild {guild_id}: "
            f"start={start.isoformat()}, end={end.isoformat()}"
        )

        event_id = await self.discord_client.create_scheduled_event(
            guild_id=str(guild_id),
            name=f"{org_label(guild.org)}: {event.name}",
            description=EVENT_DESCRIPTION,
            start=start,
            end=end,
            location=build_location(event),
        )

        if mark_created is not False:
            self.settings_store.mark_scheduled_event(guild_id, guild.org, event_day_key)

        return ScheduledEventResult(True, "scheduled event created", event_id=event_id)
