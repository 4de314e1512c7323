"""Text formatting for notifications and command replies"""
from typing import List

from .event_resolver import CardBout, EventWithCard
from ..organizations import get_org
from ..storage.models import GuildSettings
from ..utils.timezone import format_local_time

CARD_PREVIEW_SIZE = 5


def org_label(org: str) -> str:
    feed = get_org(org)
    return feed.display_name if feed else org.upper()


def _card_lines(card: List[CardBout]) -> List[str]:
    if not card:
        return []
    lines = ["", "Upcoming card:"]
    for bout in card[-CARD_PREVIEW_SIZE:]:
        lines.append(f"- {bout.weight_class}: {bout.red_name} vs {bout.blue_name}")
    return lines


def build_notification_message(org: str, data: EventWithCard, timezone: str) -> str:
    """
    Build the fight-night notification text

    Args:
        org: Organization id
        data: Resolved event and card
        timezone: IANA zone used to display the start time

    Returns:
        Message content
    """
    event = data.event
    lines = [
        f"{org_label(org)} Fight Night Alert!",
        f"**{event.name}**",
        f"Main event: {event.main_event}",
        f"Starts at {format_local_time(event.start_time, timezone)} ({timezone})",
        f"Broadcast: {event.broadcast}",
        f"More info: {event.url}",
    ]
    lines.extend(_card_lines(data.card))
    return "\n".join(lines)


def format_next_event(data: EventWithCard, timezone: str) -> str:
    """Reply text for /next-event"""
    event = data.event
    lines = [
        f"**{event.name}**",
        f"Main event: {event.main_event}",
        f"Date: {format_local_time(event.start_time, timezone)} ({timezone})",
        f"Venue: {event.venue} - {event.city}",
        f"Broadcast: {event.broadcast}",
        f"More info: {event.url}",
    ]
    lines.extend(_card_lines(data.card))
    return "\n".join(lines)


def format_settings(settings: GuildSettings) -> str:
    """Summary of a guild's settings for /status and /settings replies"""
    lines = [
        f"- Org: {org_label(settings.org) if settings.org else 'Not set'}",
        f"- Channel: {f'<#{settings.channel_id}>' if settings.channel_id else 'Not set'}",
        f"- Delivery mode: {settings.delivery_mode}",
        f"- Notification hour: {settings.notification_hour:02d}:00",
        f"- Timezone: {settings.timezone}",
        f"- Notifications: {'ON' if settings.notifications_enabled else 'OFF'}",
        f"- Scheduled events: {'ON' if settings.scheduled_events_enabled else 'OFF'}",
    ]
    return "\n".join(lines)
