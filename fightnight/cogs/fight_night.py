"""Slash commands for configuring and previewing fight-night notifications"""
import asyncio
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..organizations import ORGANIZATIONS
from ..services.event_resolver import EventResolver
from ..services.message_formatter import format_next_event, format_settings, org_label
from ..services.notification_service import NotificationService
from ..services.scheduled_event_service import ScheduledEventService
from ..storage.models import DELIVERY_MODES
from ..storage.settings_store import SettingsError, SettingsStore
from ..utils.logger import setup_logger

logger = setup_logger(__name__)

ORG_CHOICES = [app_commands.Choice(name=feed.display_name, value=org_id) for org_id, feed in ORGANIZATIONS.items()]
DELIVERY_CHOICES = [app_commands.Choice(name=mode.capitalize(), value=mode) for mode in DELIVERY_MODES]
STATE_CHOICES = [
    app_commands.Choice(name="On", value="on"),
    app_commands.Choice(name="Off", value="off"),
]

HELP_LINES = [
    "Fight Night Bot commands:",
    "`/settings org` - choose an organization before enabling notifications.",
    "`/settings channel [channel]` - set the destination channel (defaults to the current channel).",
    "`/settings delivery` - pick regular messages or announcement crossposts.",
    "`/settings hour` - set the daily notification hour (0-23).",
    "`/settings timezone` - configure the guild timezone (e.g. America/New_York).",
    "`/settings notifications` - toggle automated fight-night posts.",
    "`/settings events` - toggle creating scheduled events.",
    "`/next-event` - view the next event for your configured org.",
    "`/status` - review the current guild configuration.",
    "`/ping` - check that the bot is online.",
]


class FightNightCog(commands.Cog):
    """Guild configuration and event preview commands"""

    # Registered only in the dev guild when GUILD_ID is set
    DEV_COMMANDS = ("dev-test",)

    settings = app_commands.Group(
        name="settings",
        description="Configure fight-night notifications for this server.",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True),
    )
    dev_test = app_commands.Group(
        name="dev-test",
        description="Developer testing helpers for Fight Night Bot.",
        guild_only=True,
        default_permissions=discord.Permissions(manage_events=True, manage_channels=True),
    )

    def __init__(
        self,
        bot: commands.Bot,
        settings_store: SettingsStore,
        resolver: EventResolver,
        notification_service: NotificationService,
        scheduled_event_service: ScheduledEventService
    ):
        self.bot = bot
        self.settings_store = settings_store
        self.resolver = resolver
        self.notification_service = notification_service
        self.scheduled_event_service = scheduled_event_service

    async def _apply(self, interaction: discord.Interaction, confirmation: str, **patch):
        """Apply a settings patch and reply with the outcome"""
        try:
            updated = self.settings_store.update(str(interaction.guild_id), **patch)
        except SettingsError as e:
            await interaction.response.send_message(str(e), ephemeral=True)
            return

        logger.info(f"Guild {interaction.guild_id} updated settings: {patch}")
        await interaction.response.send_message(
            f"{confirmation}\n\nCurrent settings:\n{format_settings(updated)}",
            ephemeral=True,
        )

    @settings.command(name="org", description="Select the organization to track.")
    @app_commands.describe(org="Fight organization")
    @app_commands.choices(org=ORG_CHOICES)
    async def settings_org(self, interaction: discord.Interaction, org: app_commands.Choice[str]):
        current = self.settings_store.get(str(interaction.guild_id))
        state = "ON" if current.notifications_enabled else "OFF"
        await self._apply(
            interaction,
            f"Organization set to {org_label(org.value)}. Notifications remain {state}.",
            org=org.value,
        )

    @settings.command(name="channel", description="Choose the channel for notifications.")
    @app_commands.describe(channel="Defaults to the current channel if left blank.")
    async def settings_channel(
        self,
        interaction: discord.Interaction,
        channel: Optional[discord.TextChannel] = None
    ):
        channel_id = channel.id if channel else interaction.channel_id
        if not channel_id:
            await interaction.response.send_message(
                "I couldn't determine a channel. Run this command in a channel or pick one explicitly.",
                ephemeral=True,
            )
            return
        await self._apply(interaction, f"Notifications will post in <#{channel_id}>.", channel_id=str(channel_id))

    @settings.command(name="delivery", description="Set the delivery mode for posts.")
    @app_commands.describe(mode="Regular messages or Announcement crossposting.")
    @app_commands.choices(mode=DELIVERY_CHOICES)
    async def settings_delivery(self, interaction: discord.Interaction, mode: app_commands.Choice[str]):
        await self._apply(
            interaction,
            f"Delivery mode set to {mode.value}. Announcement mode only works in Announcement channels.",
            delivery_mode=mode.value,
        )

    @settings.command(name="hour", description="Set the daily notification hour (0-23).")
    @app_commands.describe(hour="24-hour formatted hour for scheduled posts.")
    async def settings_hour(self, interaction: discord.Interaction, hour: app_commands.Range[int, 0, 23]):
        await self._apply(interaction, f"Notification hour set to {hour:02d}:00.", notification_hour=hour)

    @settings.command(name="timezone", description="Set the guild timezone (IANA identifier).")
    @app_commands.describe(tz="Example: America/Los_Angeles")
    async def settings_timezone(self, interaction: discord.Interaction, tz: str):
        await self._apply(interaction, f"Timezone set to {tz}.", timezone=tz.strip())

    @settings.command(name="notifications", description="Enable or disable fight-night notifications.")
    @app_commands.describe(state="Turn notifications on or off.")
    @app_commands.choices(state=STATE_CHOICES)
    async def settings_notifications(self, interaction: discord.Interaction, state: app_commands.Choice[str]):
        enabled = state.value == "on"
        await self._apply(
            interaction,
            f"Notifications turned {'ON' if enabled else 'OFF'}.",
            notifications_enabled=enabled,
        )

    @settings.command(name="events", description="Toggle creating scheduled Discord events.")
    @app_commands.describe(state="Turn scheduled events on or off.")
    @app_commands.choices(state=STATE_CHOICES)
    async def settings_events(self, interaction: discord.Interaction, state: app_commands.Choice[str]):
        enabled = state.value == "on"
        await self._apply(
            interaction,
            f"Scheduled events turned {'ON' if enabled else 'OFF'}.",
            scheduled_events_enabled=enabled,
        )

    @app_commands.command(name="status", description="Display the current fight-night configuration for this guild.")
    @app_commands.guild_only()
    async def status(self, interaction: discord.Interaction):
        settings = self.settings_store.get(str(interaction.guild_id))
        await interaction.response.send_message(
            f"Current settings:\n{format_settings(settings)}",
            ephemeral=True,
        )

    @app_commands.command(name="next-event", description="Show the next event for your configured organization.")
    @app_commands.guild_only()
    async def next_event(self, interaction: discord.Interaction):
        settings = self.settings_store.get(str(interaction.guild_id))
        if not settings.org:
            await interaction.response.send_message(
                "No organization configured yet. Run `/settings org` to choose one first.",
                ephemeral=True,
            )
            return

        await interaction.response.defer(ephemeral=True)
        try:
            data = await asyncio.to_thread(self.resolver.resolve_next_event, settings.org)
        except Exception as e:
            logger.error(f"Failed to fetch next event for guild {interaction.guild_id}: {e}")
            await interaction.followup.send(
                "Sorry, I couldn't reach the schedule feed right now. Try again in a minute.",
                ephemeral=True,
            )
            return

        if data is None:
            await interaction.followup.send(
                "I couldn't find any upcoming events right now. Check back later!",
                ephemeral=True,
            )
            return

        await interaction.followup.send(format_next_event(data, settings.timezone), ephemeral=True)

    @app_commands.command(name="ping", description="Check that the bot is responding.")
    async def ping(self, interaction: discord.Interaction):
        await interaction.response.send_message("Pong!")

    @app_commands.command(name="help", description="Show available commands and usage tips.")
    async def help(self, interaction: discord.Interaction):
        await interaction.response.send_message("\n".join(HELP_LINES), ephemeral=True)

    @dev_test.command(name="create-event", description="Create a scheduled event for the next fight night now.")
    async def dev_create_event(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        try:
            result = await self.scheduled_event_service.create_for_guild(
                str(interaction.guild_id), force=True, mark_created=False
            )
        except Exception as e:
            logger.error(f"Dev scheduled event failed for guild {interaction.guild_id}: {e}")
            await interaction.followup.send(f"Scheduled event creation failed: {e}", ephemeral=True)
            return

        if result.created:
            await interaction.followup.send(f"Scheduled event created (ID {result.event_id}).", ephemeral=True)
        else:
            await interaction.followup.send(f"No scheduled event created: {result.reason}", ephemeral=True)

    @dev_test.command(name="create-announcement", description="Post the next fight-night announcement now.")
    async def dev_create_announcement(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        try:
            result = await self.notification_service.notify_guild(
                str(interaction.guild_id),
                force=True,
                channel_override=str(interaction.channel_id),
                mark_posted=False,
            )
        except Exception as e:
            logger.error(f"Dev announcement failed for guild {interaction.guild_id}: {e}")
            await interaction.followup.send(f"Announcement failed: {e}", ephemeral=True)
            return

        if result.sent:
            lines = [f"Announcement posted in <#{result.channel_id}>."]
            lines.extend(f"Warning: {warning}" for warning in result.warnings)
            await interaction.followup.send("\n".join(lines), ephemeral=True)
        else:
            await interaction.followup.send(f"Nothing posted: {result.reason}", ephemeral=True)
