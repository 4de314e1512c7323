"""Data models for guild notification settings"""
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

DELIVERY_MESSAGE = "message"
DELIVERY_ANNOUNCEMENT = "announcement"
DELIVERY_MODES = (DELIVERY_MESSAGE, DELIVERY_ANNOUNCEMENT)

DEFAULT_TIMEZONE = "Etc/UTC"
DEFAULT_NOTIFICATION_HOUR = 15


@dataclass
class GuildSettings:
    """Persisted notification state for one guild"""
    org: Optional[str] = None
    channel_id: Optional[str] = None
    delivery_mode: str = DELIVERY_MESSAGE
    notification_hour: int = DEFAULT_NOTIFICATION_HOUR
    timezone: str = DEFAULT_TIMEZONE
    notifications_enabled: bool = False
    scheduled_events_enabled: bool = False
    last_posted: Dict[str, str] = field(default_factory=dict)  # org -> day key
    scheduled_events: Dict[str, str] = field(default_factory=dict)  # org -> day key

    def configured(self) -> Optional["ConfiguredGuild"]:
        """Return the configured view, or None while no organization is set"""
        if not self.org:
            return None
        return ConfiguredGuild(
            org=self.org,
            channel_id=self.channel_id,
            delivery_mode=self.delivery_mode,
            notification_hour=self.notification_hour,
            timezone=self.timezone,
            notifications_enabled=self.notifications_enabled,
            scheduled_events_enabled=self.scheduled_events_enabled,
            last_posted_day=self.last_posted.get(self.org),
            scheduled_event_day=self.scheduled_events.get(self.org),
        )

    def copy(self, **changes: Any) -> "GuildSettings":
        """Copy with changes applied; the dedup maps are never shared"""
        changes.setdefault("last_posted", dict(self.last_posted))
        changes.setdefault("scheduled_events", dict(self.scheduled_events))
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: "GuildSettings") -> "GuildSettings":
        """Build settings from stored data, filling gaps from defaults"""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        for key in ("last_posted", "scheduled_events"):
            if not isinstance(values.get(key), dict):
                values.pop(key, None)
        return defaults.copy(**values)


@dataclass(frozen=True)
class ConfiguredGuild:
    """Settings of a guild that has chosen an organization"""
    org: str
    channel_id: Optional[str]
    delivery_mode: str
    notification_hour: int
    timezone: str
    notifications_enabled: bool
    scheduled_events_enabled: bool
    last_posted_day: Optional[str] = None
    scheduled_event_day: Optional[str] = None

    @property
    def is_announcement(self) -> bool:
        return self.delivery_mode == DELIVERY_ANNOUNCEMENT
