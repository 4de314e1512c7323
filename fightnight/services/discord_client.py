"""Discord bot client for notifications and scheduled events"""
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple
import discord
from discord.ext import commands

from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class DiscordDeliveryError(Exception):
    """A Discord API call failed"""

    def __init__(self, action: str, status: int, reason: str = "", body: str = ""):
        self.action = action
        self.status = status
        self.reason = reason
        self.body = body
        super().__init__(f"Discord API {status} {reason} ({action}): {body}")


@dataclass(frozen=True)
class SentMessage:
    id: str
    channel_id: str


class DiscordClient:
    """Discord bot client for notifications"""

    def __init__(self, token: str, dev_guild_id: Optional[str] = None, sync_commands: bool = True):
        """
        Initialize Discord client

        Args:
            token: Discord bot token
            dev_guild_id: Optional guild that receives the developer-only commands
            sync_commands: Push the command tree to Discord once ready. A sync
                replaces every registered command, so runs that never load the
                cogs pass False.
        """
        self.token = token
        self.dev_guild_id = int(dev_guild_id) if dev_guild_id else None
        self.sync_commands = sync_commands

        intents = discord.Intents.default()
        self.bot = commands.Bot(command_prefix='!', intents=intents)

        self._setup_events()

    def _setup_events(self):
        """Set up Discord bot events"""
        @self.bot.event
        async def on_ready():
            logger.info(f"Discord bot logged in as {self.bot.user}")
            if self.sync_commands:
                await self._sync_commands()
            else:
                logger.info("Command sync disabled for this run")

    async def _sync_commands(self):
        """Register slash commands with Discord"""
        try:
            synced = await self.bot.tree.sync()
            logger.info(f"Synced {len(synced)} global command(s)")
            if self.dev_guild_id:
                synced = await self.bot.tree.sync(guild=discord.Object(id=self.dev_guild_id))
                logger.info(f"Synced {len(synced)} command(s) to guild {self.dev_guild_id}")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync commands: {e}")

    async def start(self):
        """Start the Discord bot"""
        await self.bot.start(self.token)

    async def close(self):
        """Close the Discord bot connection"""
        await self.bot.close()

    async def connect(self) -> asyncio.Task:
        """
        Start the bot in the background and wait until it is ready

        Returns:
            The running bot task

        Raises:
            Exception: Whatever stopped the bot before it became ready (e.g. a bad token)
        """
        task = asyncio.create_task(self.start())
        while not self.bot.is_ready():
            if task.done():
                task.result()
                raise RuntimeError("Discord client stopped before becoming ready")
            await asyncio.sleep(1)
        return task

    async def add_cog(self, cog: commands.Cog, dev_commands: Tuple[str, ...] = ()):
        """
        Load a cog's commands into the tree

        Args:
            cog: Cog to add
            dev_commands: Top-level command names that only the dev guild gets
                when one is configured; they stay global otherwise
        """
        await self.bot.add_cog(cog)
        if not self.dev_guild_id:
            return
        guild = discord.Object(id=self.dev_guild_id)
        for name in dev_commands:
            command = self.bot.tree.remove_command(name)
            if command is not None:
                self.bot.tree.add_command(command, guild=guild)

    async def _get_channel(self, channel_id: str):
        channel_id = int(channel_id)
        channel = self.bot.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self.bot.fetch_channel(channel_id)
        except discord.HTTPException as e:
            raise _delivery_error("fetch channel", e) from e

    async def send_message(self, channel_id: str, content: str) -> SentMessage:
        """
        Send a message with all mentions disabled

        Args:
            channel_id: Channel to post in
            content: Message text

        Returns:
            Identifiers of the sent message

        Raises:
            DiscordDeliveryError: If the channel is unusable or Discord rejects the message
        """
        channel = await self._get_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise DiscordDeliveryError("send message", 400, "Bad Request", f"Channel {channel_id} is not a text channel")

        try:
            message = await channel.send(content, allowed_mentions=discord.AllowedMentions.none())
        except discord.HTTPException as e:
            raise _delivery_error("send message", e) from e

        logger.info(f"Sent message {message.id} to channel {channel_id}")
        return SentMessage(id=str(message.id), channel_id=str(message.channel.id))

    async def crosspost(self, channel_id: str, message_id: str):
        """
        Publish a message from an announcement channel to its followers

        Raises:
            DiscordDeliveryError: If Discord rejects the crosspost
        """
        channel = await self._get_channel(channel_id)
        if not hasattr(channel, "get_partial_message"):
            raise DiscordDeliveryError("crosspost", 400, "Bad Request", f"Channel {channel_id} does not support crossposting")
        message = channel.get_partial_message(int(message_id))
        try:
            await message.publish()
        except discord.HTTPException as e:
            raise _delivery_error("crosspost", e) from e
        logger.info(f"Crossposted message {message_id} in channel {channel_id}")

    async def create_scheduled_event(
        self,
        guild_id: str,
        name: str,
        description: str,
        start: datetime,
        end: datetime,
        location: str
    ) -> str:
        """
        Create an external (location based) guild scheduled event

        Returns:
            ID of the created event

        Raises:
            DiscordDeliveryError: If the guild is unavailable or Discord rejects the event
        """
        guild_id_int = int(guild_id)
        try:
            guild = self.bot.get_guild(guild_id_int) or await self.bot.fetch_guild(guild_id_int)
            event = await guild.create_scheduled_event(
                name=name,
                description=description,
                start_time=start,
                end_time=end,
                entity_type=discord.EntityType.external,
                privacy_level=discord.PrivacyLevel.guild_only,
                location=location,
            )
        except discord.HTTPException as e:
            raise _delivery_error("create scheduled event", e) from e

        logger.info(f"Created scheduled event {event.id} in guild {guild_id}")
        return str(event.id)


def _delivery_error(action: str, error: discord.HTTPException) -> DiscordDeliveryError:
    """Convert a discord.py HTTP error into a DiscordDeliveryError"""
    response = getattr(error, "response", None)
    reason = getattr(response, "reason", "") or ""
    return DiscordDeliveryError(action, error.status, reason, error.text)
