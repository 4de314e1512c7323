"""Configuration loading and validation"""
import os
from typing import Optional
from dotenv import load_dotenv

from .services.espn_client import DEFAULT_USER_AGENT
from .storage.models import DEFAULT_NOTIFICATION_HOUR, DEFAULT_TIMEZONE, GuildSettings
from .utils.logger import setup_logger
from .utils.timezone import is_valid_timezone

logger = setup_logger(__name__)

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration"""

    def __init__(self):
        """Load and validate configuration"""
        # Discord configuration
        self.discord_bot_token = self._get_required("DISCORD_BOT_TOKEN")
        self.dev_guild_id: Optional[str] = os.getenv("GUILD_ID") or None

        # Schedule feed
        self.espn_user_agent = os.getenv("ESPN_USER_AGENT", DEFAULT_USER_AGENT)
        self.request_timeout = self._get_int("REQUEST_TIMEOUT", 30)

        # Storage
        self.database_path = os.getenv("DATABASE_PATH", "data/bot.db")

        # Notification settings
        self.check_interval = self._get_int("CHECK_INTERVAL", 300)
        self.default_notification_hour = self._get_int("RUN_AT", DEFAULT_NOTIFICATION_HOUR)
        self.default_timezone = os.getenv("TZ") or DEFAULT_TIMEZONE

        self._validate()
        logger.info("Configuration loaded successfully")

    def _get_required(self, key: str) -> str:
        """Get required environment variable"""
        value = os.getenv(key)
        if not value:
            raise ValueError(f"Required environment variable {key} is not set")
        return value

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable"""
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got '{value}'")

    def _validate(self):
        """Validate configuration values"""
        if self.check_interval < 30:
            raise ValueError("CHECK_INTERVAL must be at least 30 seconds")

        if self.request_timeout < 1:
            raise ValueError("REQUEST_TIMEOUT must be at least 1 second")

        if not 0 <= self.default_notification_hour <= 23:
            raise ValueError("RUN_AT must be an hour between 0 and 23")

        if not is_valid_timezone(self.default_timezone):
            raise ValueError(f"TZ must be a valid IANA timezone, got '{self.default_timezone}'")

        if self.dev_guild_id:
            try:
                int(self.dev_guild_id)
            except ValueError:
                raise ValueError("GUILD_ID must be a numeric guild ID")

        logger.info(f"Check interval: {self.check_interval} seconds")
        logger.info(f"Default notification hour: {self.default_notification_hour:02d}:00")
        logger.info(f"Default timezone: {self.default_timezone}")
        if self.dev_guild_id:
            logger.info(f"Dev guild: {self.dev_guild_id}")

    def default_guild_settings(self) -> GuildSettings:
        """Settings handed to guilds that haven't configured anything"""
        return GuildSettings(
            notification_hour=self.default_notification_hour,
            timezone=self.default_timezone,
        )
