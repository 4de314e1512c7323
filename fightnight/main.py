"""Main entry point for Fight Night Bot"""
import asyncio
import signal
import sys

from .config import Config
from .cogs.fight_night import FightNightCog
from .services.discord_client import DiscordClient
from .services.espn_client import ESPNClient
from .services.event_resolver import EventResolver
from .services.notification_service import NotificationService
from .services.scheduled_event_service import ScheduledEventService
from .storage.database import Database
from .storage.settings_store import SettingsStore
from .utils.logger import setup_logger

logger = setup_logger(__name__)


class FightNightBot:
    """Main bot orchestrator"""

    def __init__(self, config: Config = None, sync_commands: bool = True):
        """
        Initialize bot components

        Args:
            config: Loaded configuration, read from the environment if omitted
            sync_commands: Whether the Discord client pushes slash commands once ready
        """
        self.config = config or Config()
        self.running = False

        self.database = Database(db_path=self.config.database_path)
        self.settings_store = SettingsStore(
            self.database,
            defaults=self.config.default_guild_settings()
        )

        # Initialize services
        self.espn_client = ESPNClient(
            user_agent=self.config.espn_user_agent,
            timeout=self.config.request_timeout
        )
        self.resolver = EventResolver(self.espn_client)
        self.discord_client = DiscordClient(
            token=self.config.discord_bot_token,
            dev_guild_id=self.config.dev_guild_id,
            sync_commands=sync_commands
        )
        self.scheduled_event_service = ScheduledEventService(
            settings_store=self.settings_store,
            resolver=self.resolver,
            discord_client=self.discord_client
        )
        self.notification_service = NotificationService(
            settings_store=self.settings_store,
            resolver=self.resolver,
            discord_client=self.discord_client,
            scheduled_event_service=self.scheduled_event_service,
            check_interval=self.config.check_interval
        )

        # Setup signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False

    async def start(self):
        """Start the bot"""
        self.running = True
        logger.info("Starting Fight Night Bot...")

        await self.discord_client.add_cog(FightNightCog(
            self.discord_client.bot,
            settings_store=self.settings_store,
            resolver=self.resolver,
            notification_service=self.notification_service,
            scheduled_event_service=self.scheduled_event_service
        ), dev_commands=FightNightCog.DEV_COMMANDS)

        # Start Discord client in background; notifications need it connected
        discord_task = await self.discord_client.connect()

        notification_task = asyncio.create_task(self.notification_service.start())

        try:
            # Run until stopped
            while self.running and not discord_task.done():
                await asyncio.sleep(1)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Stopping services...")
            self.notification_service.stop()
            notification_task.cancel()

            await self.discord_client.close()
            discord_task.cancel()

            logger.info("Bot stopped")


async def main():
    """Main entry point"""
    try:
        bot = FightNightBot()
        await bot.start()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


def run():
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
