"""Manual trigger for evaluating a single guild"""
import argparse
import asyncio
import sys

from .config import Config
from .main import FightNightBot
from .utils.logger import setup_logger

logger = setup_logger(__name__)


async def trigger_guild(
    bot: FightNightBot,
    guild_id: str,
    force: bool,
    channel: str = None,
    scheduled_event: bool = False,
    mark: bool = True
) -> bool:
    """
    Run the notifier (or the scheduled-event creator) once for a guild

    Args:
        bot: Bot with configured services
        guild_id: Guild to evaluate
        force: Skip the enabled/hour/day/dedup checks
        channel: Optional channel override for the notification
        scheduled_event: Create a scheduled event instead of posting
        mark: Whether to record the dedup marker

    Returns:
        True if something was posted or created
    """
    discord_task = await bot.discord_client.connect()

    try:
        if scheduled_event:
            result = await bot.scheduled_event_service.create_for_guild(
                guild_id, force=force, mark_created=mark
            )
            if result.created:
                logger.info(f"✓ Scheduled event created (ID {result.event_id})")
            else:
                logger.warning(f"✗ No scheduled event created: {result.reason}")
            return result.created

        result = await bot.notification_service.notify_guild(
            guild_id, force=force, channel_override=channel, mark_posted=mark
        )
        if result.sent:
            logger.info(f"✓ Notification sent (message {result.message_id} in channel {result.channel_id})")
            for warning in result.warnings:
                logger.warning(f"  {warning}")
        else:
            logger.warning(f"✗ Nothing sent: {result.reason}")
        return result.sent
    finally:
        await bot.discord_client.close()
        discord_task.cancel()
        try:
            await discord_task
        except asyncio.CancelledError:
            pass


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Evaluate fight-night notifications for one guild"
    )
    parser.add_argument(
        "--guild",
        required=True,
        help="Guild ID to evaluate"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Bypass the enabled, hour, event-day and already-posted checks"
    )
    parser.add_argument(
        "--channel",
        type=str,
        default=None,
        help="Post to this channel instead of the configured one"
    )
    parser.add_argument(
        "--scheduled-event",
        action="store_true",
        help="Create the scheduled event instead of posting a notification"
    )
    parser.add_argument(
        "--no-mark",
        action="store_true",
        help="Don't record the post/creation, so the periodic run still fires"
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = Config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    # The trigger never loads the cogs, so it must not overwrite the registered commands
    bot = FightNightBot(config, sync_commands=False)
    ok = asyncio.run(trigger_guild(
        bot,
        args.guild,
        force=args.force,
        channel=args.channel,
        scheduled_event=args.scheduled_event,
        mark=not args.no_mark
    ))
    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
