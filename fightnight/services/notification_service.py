"""Notification service for deciding and sending fight-night notifications"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .discord_client import DiscordClient
from .event_resolver import EventResolver
from .message_formatter import build_notification_message
from .scheduled_event_service import ScheduledEventService
from ..storage.settings_store import SettingsStore
from ..utils.logger import setup_logger
from ..utils.timezone import date_key, local_hour, now_utc, to_utc

logger = setup_logger(__name__)


@dataclass
class NotifyResult:
    """Outcome of one guild evaluation

    warnings lists best-effort steps (crosspost, scheduled event) that
    failed after the notification itself was sent.
    """
    sent: bool
    reason: str
    message_id: Optional[str] = None
    channel_id: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


class NotificationService:
    """Service for managing fight-night notifications"""

    def __init__(
        self,
        settings_store: SettingsStore,
        resolver: EventResolver,
        discord_client: DiscordClient,
        scheduled_event_service: ScheduledEventService,
        check_interval: int = 300
    ):
        """
        Initialize notification service

        Args:
            settings_store: Guild settings access
            resolver: Event resolver for organization schedules
            discord_client: Discord client instance
            scheduled_event_service: Creator for scheduled events
            check_interval: Seconds between periodic runs
        """
        self.settings_store = settings_store
        self.resolver = resolver
        self.discord_client = discord_client
        self.scheduled_event_service = scheduled_event_service
        self.check_interval = check_interval
        self.running = False

    async def start(self):
        """Start the periodic notification loop"""
        self.running = True
        logger.info(f"Starting notification service (check every {self.check_interval}s)")

        while self.running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in notification loop: {e}", exc_info=True)

            await asyncio.sleep(self.check_interval)

    def stop(self):
        """Stop the periodic notification loop"""
        self.running = False
        logger.info("Stopping notification service")

    async def run_once(self, now: Optional[datetime] = None) -> Dict[str, Optional[NotifyResult]]:
        """
        Evaluate every known guild once, one after another

        A failure in one guild is logged and recorded as None; the remaining
        guilds are still evaluated.

        Returns:
            Result per guild id
        """
        now = to_utc(now) if now else now_utc()
        results: Dict[str, Optional[NotifyResult]] = {}

        for guild_id in self.settings_store.list_guild_ids():
            try:
                result = await self.notify_guild(guild_id, now=now, mark_posted=True)
            except Exception as e:
                logger.error(f"Notifier failure for guild {guild_id}: {e}", exc_info=True)
                results[guild_id] = None
                continue

            results[guild_id] = result
            if result.sent:
                logger.info(f"Notifier sent update for guild {guild_id} at {now.isoformat()}")
            else:
                logger.debug(f"Guild {guild_id} skipped: {result.reason}")

        return results

    async def notify_guild(
        self,
        guild_id: str,
        force: bool = False,
        channel_override: Optional[str] = None,
        now: Optional[datetime] = None,
        mark_posted: Optional[bool] = None
    ) -> NotifyResult:
        """
        Decide whether a guild should be notified now and send if so

        Args:
            guild_id: Guild to evaluate
            force: Skip the enabled, hour, event-day and already-posted checks
            channel_override: Channel to post in instead of the configured one
            now: Evaluation instant, defaults to now
            mark_posted: Pass False to leave the dedup marker untouched

        Returns:
            Whether a notification was sent, and why not if it wasn't

        Raises:
            DiscordDeliveryError: If the message itself could not be sent
        """
        if not self.discord_client.token:
            return NotifyResult(False, "bot token not configured")

        guild = self.settings_store.get(guild_id).configured()
        if guild is None:
            return NotifyResult(False, "organization not set")

        channel_id = channel_override or guild.channel_id
        if not channel_id:
            return NotifyResult(False, "no channel configured")

        now = to_utc(now) if now else now_utc()

        if not force and not guild.notifications_enabled:
            return NotifyResult(False, "notifications disabled")

        if not force and local_hour(now, guild.timezone) != guild.notification_hour:
            return NotifyResult(False, "outside configured hour")

        data = await asyncio.to_thread(self.resolver.resolve_next_event, guild.org, now)
        if data is None:
            return NotifyResult(False, "no upcoming event found")

        today_key = date_key(now, guild.timezone)
        event_day_key = date_key(data.event.start_time, guild.timezone)

        if not force and today_key != event_day_key:
            return NotifyResult(False, "not the event day")

        if not force and guild.last_posted_day == today_key:
            return NotifyResult(False, "already posted today")

        content = build_notification_message(guild.org, data, guild.timezone)
        message = await self.discord_client.send_message(channel_id, content)

        result = NotifyResult(
            True,
            "notification posted",
            message_id=message.id,
            channel_id=str(channel_id),
        )

        if guild.scheduled_events_enabled:
            try:
                scheduled = await self.scheduled_event_service.create_for_guild(
                    guild_id, force=force, now=now, mark_created=mark_posted
                )
                if scheduled.created:
                    logger.info(f"Scheduled event created for guild {guild_id} (event {scheduled.event_id})")
                else:
                    logger.info(f"No scheduled event for guild {guild_id}: {scheduled.reason}")
            except Exception as e:
                logger.error(f"Scheduled event creation during notify failed for guild {guild_id}: {e}")
                result.warnings.append(f"scheduled event creation failed: {e}")

        if guild.is_announcement:
            try:
                await self.discord_client.crosspost(channel_id, message.id)
            except Exception as e:
                logger.warning(f"Crosspost failed for guild {guild_id}, message {message.id}: {e}")
                result.warnings.append(f"crosspost failed: {e}")

        if mark_posted is not False:
            self.settings_store.mark_posted(guild_id, guild.org, today_key)

        return result
