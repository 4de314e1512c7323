"""Read-through cache over persisted guild settings"""
import json
import sqlite3
from typing import Any, Dict, List, Optional

from .database import Database
from .models import DELIVERY_MODES, GuildSettings
from ..organizations import get_org
from ..utils.logger import setup_logger
from ..utils.timezone import is_valid_timezone

logger = setup_logger(__name__)

_MUTABLE_FIELDS = {
    "org",
    "channel_id",
    "delivery_mode",
    "notification_hour",
    "timezone",
    "notifications_enabled",
    "scheduled_events_enabled",
}


class SettingsError(ValueError):
    """Raised when a settings change is rejected"""


class SettingsStore:
    """
    Guild settings access shared by commands and services.

    Built once per process and passed to whoever needs it. Reads go through
    an in-memory cache; writes update the cache and then persist. Storage
    failures are logged and never raised so one guild's broken entry cannot
    stop the others.
    """

    def __init__(self, database: Database, defaults: Optional[GuildSettings] = None):
        """
        Initialize settings store

        Args:
            database: Persistent storage for serialized settings
            defaults: Settings handed to guilds with nothing stored
        """
        self.database = database
        self.defaults = defaults or GuildSettings()
        self._cache: Dict[str, GuildSettings] = {}

    def get(self, guild_id: str) -> GuildSettings:
        """Get settings for a guild, creating defaults on first read"""
        guild_id = str(guild_id)
        cached = self._cache.get(guild_id)
        if cached is not None:
            return cached

        settings = None
        try:
            raw = self.database.get_guild_settings(guild_id)
            if raw:
                settings = self._parse(raw)
        except sqlite3.Error as e:
            logger.error(f"Failed to load guild settings for {guild_id}: {e}")

        if settings is None:
            settings = self.defaults.copy()

        self._cache[guild_id] = settings
        return settings

    def update(self, guild_id: str, **patch: Any) -> GuildSettings:
        """
        Apply a validated patch to a guild's settings

        Args:
            guild_id: Guild to update
            **patch: Field values to replace

        Returns:
            The updated settings

        Raises:
            SettingsError: If the patch contains an invalid value
        """
        current = self.get(guild_id)
        self._validate(current, patch)
        if patch.get("org"):
            patch["org"] = patch["org"].lower()
        if patch.get("channel_id") is not None:
            patch["channel_id"] = str(patch["channel_id"])
        updated = current.copy(**patch)
        self._store(str(guild_id), updated)
        return updated

    def mark_posted(self, guild_id: str, org: str, day_key: str) -> GuildSettings:
        """Record that a notification went out for org on day_key"""
        current = self.get(guild_id)
        last_posted = dict(current.last_posted)
        last_posted[org] = day_key
        updated = current.copy(last_posted=last_posted)
        self._store(str(guild_id), updated)
        return updated

    def mark_scheduled_event(self, guild_id: str, org: str, day_key: str) -> GuildSettings:
        """Record that a scheduled event was created for org's event on day_key"""
        current = self.get(guild_id)
        scheduled = dict(current.scheduled_events)
        scheduled[org] = day_key
        updated = current.copy(scheduled_events=scheduled)
        self._store(str(guild_id), updated)
        return updated

    def delete(self, guild_id: str):
        """Forget a guild entirely"""
        guild_id = str(guild_id)
        self._cache.pop(guild_id, None)
        try:
            self.database.delete_guild_settings(guild_id)
        except sqlite3.Error as e:
            logger.error(f"Failed to delete guild settings for {guild_id}: {e}")

    def list_guild_ids(self) -> List[str]:
        """Guilds that have stored settings"""
        try:
            return self.database.list_guild_ids()
        except sqlite3.Error as e:
            logger.error(f"Failed to list guild settings: {e}")
            return []

    def clear_cache(self):
        self._cache.clear()

    def _store(self, guild_id: str, settings: GuildSettings):
        """Cache then persist settings"""
        self._cache[guild_id] = settings
        try:
            self.database.put_guild_settings(guild_id, json.dumps(settings.to_dict()))
        except sqlite3.Error as e:
            logger.error(f"Failed to persist guild settings for {guild_id}: {e}")

    def _parse(self, raw: str) -> Optional[GuildSettings]:
        """Deserialize stored settings, None if the payload is unusable"""
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error(f"Failed to parse guild settings: {e}")
            return None
        if not isinstance(data, dict):
            logger.error("Stored guild settings are not an object, using defaults")
            return None
        return GuildSettings.from_dict(data, self.defaults)

    def _validate(self, current: GuildSettings, patch: Dict[str, Any]):
        """Reject unknown fields and values that break settings invariants"""
        unknown = set(patch) - _MUTABLE_FIELDS
        if unknown:
            raise SettingsError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")

        if "org" in patch and patch["org"] is not None and not get_org(patch["org"]):
            raise SettingsError("That organization is not supported yet.")

        if "delivery_mode" in patch and patch["delivery_mode"] not in DELIVERY_MODES:
            raise SettingsError("Delivery mode must be message or announcement.")

        if "notification_hour" in patch:
            hour = patch["notification_hour"]
            if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
                raise SettingsError("Hour must be an integer between 0 and 23.")

        if "timezone" in patch and not is_valid_timezone(patch["timezone"]):
            raise SettingsError(
                f'Invalid timezone "{patch["timezone"]}". '
                f"Use a valid IANA timezone such as America/New_York."
            )

        if "org" not in patch and "notifications_enabled" not in patch:
            return
        org = patch["org"] if "org" in patch else current.org
        notifications = patch.get("notifications_enabled", current.notifications_enabled)
        if notifications and not org:
            raise SettingsError(
                "Set an organization with `/settings org` before enabling notifications."
            )
