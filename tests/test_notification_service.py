"""
Tests for the per-guild notification decision pipeline.

Fixture event: main card at 2024-05-11T02:00Z, i.e. Friday 2024-05-10
22:00 in America/New_York. The guild is configured for 15:00 New York time.
"""
import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytz

from conftest import FakeScoreboardClient, make_bout, make_event, scoreboard
from fightnight.services.discord_client import DiscordDeliveryError
from fightnight.services.event_resolver import EventResolver
from fightnight.services.notification_service import NotificationService, NotifyResult
from fightnight.services.scheduled_event_service import ScheduledEventResult, ScheduledEventService

GUILD = "123"
EVENT_DAY_3PM = datetime(2024, 5, 10, 19, 0, tzinfo=pytz.UTC)  # 15:00 EDT


@pytest.fixture
def scheduled_event_service():
    service = MagicMock()
    service.create_for_guild = AsyncMock(return_value=ScheduledEventResult(True, "scheduled event created", "999"))
    return service


@pytest.fixture
def service(settings_store, fight_night_resolver, discord_client, scheduled_event_service):
    return NotificationService(
        settings_store=settings_store,
        resolver=fight_night_resolver,
        discord_client=discord_client,
        scheduled_event_service=scheduled_event_service,
    )


@pytest.fixture
def configured(settings_store):
    settings_store.update(
        GUILD,
        org="ufc",
        channel_id="555",
        notifications_enabled=True,
        timezone="America/New_York",
        notification_hour=15,
    )
    return settings_store


class TestHardPreconditions:

    @pytest.mark.asyncio
    async def test_org_not_set(self, service, discord_client):
        result = await service.notify_guild(GUILD, force=True, channel_override="555")

        assert result == NotifyResult(False, "organization not set")
        discord_client.send_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_channel(self, service, settings_store):
        settings_store.update(GUILD, org="ufc")

        result = await service.notify_guild(GUILD, force=True)

        assert result.reason == "no channel configured"

    @pytest.mark.asyncio
    async def test_missing_token(self, service, configured, discord_client):
        discord_client.token = ""

        result = await service.notify_guild(GUILD, force=True, now=EVENT_DAY_3PM)

        assert result.reason == "bot token not configured"

    @pytest.mark.asyncio
    async def test_no_upcoming_event_even_when_forced(self, settings_store, discord_client, scheduled_event_service):
        settings_store.update(GUILD, org="ufc", channel_id="555")
        service = NotificationService(
            settings_store, EventResolver(FakeScoreboardClient()), discord_client, scheduled_event_service
        )

        result = await service.notify_guild(GUILD, force=True, now=EVENT_DAY_3PM)

        assert result.reason == "no upcoming event found"

    @pytest.mark.asyncio
    async def test_enabled_without_org_in_storage(self, service, settings_store, discord_client):
        """Rows written outside update() can hold notifications on with no org."""
        settings_store.database.put_guild_settings(
            GUILD, json.dumps({"notifications_enabled": True, "channel_id": "555"})
        )

        result = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert result == NotifyResult(False, "organization not set")
        discord_client.send_message.assert_not_called()


class TestGates:

    @pytest.mark.asyncio
    async def test_notifications_disabled(self, service, configured):
        configured.update(GUILD, notifications_enabled=False)

        result = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert result.reason == "notifications disabled"

    @pytest.mark.asyncio
    async def test_outside_hour(self, service, configured):
        result = await service.notify_guild(GUILD, now=datetime(2024, 5, 10, 18, 59, tzinfo=pytz.UTC))

        assert result.reason == "outside configured hour"

    @pytest.mark.asyncio
    async def test_not_event_day(self, service, configured):
        result = await service.notify_guild(GUILD, now=datetime(2024, 5, 9, 19, 0, tzinfo=pytz.UTC))

        assert result.reason == "not the event day"

    @pytest.mark.asyncio
    async def test_zone_change_flips_hour_gate(self, service, configured):
        """Same instant, UTC zone: 19:00 is not the configured 15:00."""
        configured.update(GUILD, timezone="Etc/UTC")

        result = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert result.reason == "outside configured hour"

    @pytest.mark.asyncio
    async def test_zone_change_flips_day_gate(self, service, configured):
        """At 19:00 UTC on the 10th the event (02:00 UTC on the 11th) is tomorrow."""
        configured.update(GUILD, timezone="Etc/UTC", notification_hour=19)

        result = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert result.reason == "not the event day"

    @pytest.mark.asyncio
    async def test_force_skips_gates(self, service, configured, discord_client):
        configured.update(GUILD, notifications_enabled=False)
        configured.mark_posted(GUILD, "ufc", "2024-05-08")

        result = await service.notify_guild(
            GUILD, force=True, channel_override="777", now=datetime(2024, 5, 8, 3, 0, tzinfo=pytz.UTC)
        )

        assert result.sent is True
        assert result.channel_id == "777"
        discord_client.send_message.assert_awaited_once()
        assert discord_client.send_message.await_args.args[0] == "777"


class TestSending:

    @pytest.mark.asyncio
    async def test_sends_and_marks(self, service, configured, discord_client):
        result = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert result == NotifyResult(True, "notification posted", message_id="111", channel_id="555")
        assert configured.get(GUILD).last_posted == {"ufc": "2024-05-10"}
        channel_id, content = discord_client.send_message.await_args.args
        assert channel_id == "555"
        assert content.startswith("UFC Fight Night Alert!\n**UFC Fight Night: Test Card**")
        assert "Main event: Fighter Red vs Fighter Blue" in content
        assert "Starts at Fri, May 10, 10:00 PM EDT (America/New_York)" in content
        assert "- Featherweight: Alex Example vs Blake Sample" in content
        discord_client.crosspost.assert_not_called()

    @pytest.mark.asyncio
    async def test_second_call_same_day_is_deduplicated(self, service, configured, discord_client):
        first = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)
        second = await service.notify_guild(GUILD, now=datetime(2024, 5, 10, 19, 45, tzinfo=pytz.UTC))

        assert first.sent is True
        assert second == NotifyResult(False, "already posted today")
        assert discord_client.send_message.await_count == 1

    @pytest.mark.asyncio
    async def test_mark_posted_false_leaves_marker(self, service, configured):
        await service.notify_guild(GUILD, now=EVENT_DAY_3PM, mark_posted=False)

        assert configured.get(GUILD).last_posted == {}

    @pytest.mark.asyncio
    async def test_send_failure_propagates_without_marking(self, service, configured, discord_client):
        discord_client.send_message.side_effect = DiscordDeliveryError("send message", 403, "Forbidden", "Missing Access")

        with pytest.raises(DiscordDeliveryError):
            await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert configured.get(GUILD).last_posted == {}

    @pytest.mark.asyncio
    async def test_announcement_is_crossposted(self, service, configured, discord_client):
        configured.update(GUILD, delivery_mode="announcement")

        result = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        discord_client.crosspost.assert_awaited_once_with("555", "111")
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_crosspost_failure_is_a_warning(self, service, configured, discord_client):
        configured.update(GUILD, delivery_mode="announcement")
        discord_client.crosspost.side_effect = DiscordDeliveryError("crosspost", 403, "Forbidden", "")

        result = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert result.sent is True
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("crosspost failed")
        assert configured.get(GUILD).last_posted == {"ufc": "2024-05-10"}

    @pytest.mark.asyncio
    async def test_scheduled_event_created_when_enabled(self, service, configured, scheduled_event_service):
        configured.update(GUILD, scheduled_events_enabled=True)

        result = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert result.sent is True
        scheduled_event_service.create_for_guild.assert_awaited_once_with(
            GUILD, force=False, now=EVENT_DAY_3PM, mark_created=None
        )

    @pytest.mark.asyncio
    async def test_scheduled_event_not_attempted_when_disabled(self, service, configured, scheduled_event_service):
        await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        scheduled_event_service.create_for_guild.assert_not_called()

    @pytest.mark.asyncio
    async def test_scheduled_event_failure_is_a_warning(self, service, configured, scheduled_event_service):
        configured.update(GUILD, scheduled_events_enabled=True)
        scheduled_event_service.create_for_guild.side_effect = DiscordDeliveryError(
            "create scheduled event", 403, "Forbidden", "Missing Permissions"
        )

        result = await service.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert result.sent is True
        assert result.warnings[0].startswith("scheduled event creation failed")


class TestRunOnce:

    @pytest.mark.asyncio
    async def test_failures_are_isolated_per_guild(self, settings_store, fight_night_resolver, discord_client,
                                                   scheduled_event_service):
        for guild_id in ("1", "2", "3"):
            settings_store.update(
                guild_id, org="ufc", channel_id=f"55{guild_id}", notifications_enabled=True,
                timezone="America/New_York", notification_hour=15,
            )
        settings_store.update("4", org="ufc", channel_id="554")

        async def send(channel_id, content):
            if channel_id == "551":
                raise DiscordDeliveryError("send message", 404, "Not Found", "Unknown Channel")
            return MagicMock(id=f"m{channel_id}")

        discord_client.send_message = AsyncMock(side_effect=send)
        service = NotificationService(settings_store, fight_night_resolver, discord_client, scheduled_event_service)

        results = await service.run_once(EVENT_DAY_3PM)

        assert results["1"] is None
        assert results["2"].sent is True
        assert results["3"].sent is True
        assert results["4"].reason == "notifications disabled"
        assert settings_store.get("1").last_posted == {}
        assert settings_store.get("2").last_posted == {"ufc": "2024-05-10"}

    @pytest.mark.asyncio
    async def test_no_guilds(self, service):
        assert await service.run_once(EVENT_DAY_3PM) == {}


class TestOngoingEvent:

    @pytest.mark.asyncio
    async def test_notifies_for_ongoing_event(self, settings_store, discord_client, scheduled_event_service):
        """An in-progress event is still 'today' for the guild."""
        live = make_event(
            "7", "UFC 300", "2024-04-13T22:00Z", state="in_progress",
            bouts=[make_bout("A", "B", start="2024-04-14T02:00Z", end="2024-04-14T05:00Z")],
        )
        resolver = EventResolver(FakeScoreboardClient({2024: scoreboard(live)}))
        settings_store.update(GUILD, org="ufc", channel_id="555", notifications_enabled=True,
                              timezone="America/Los_Angeles", notification_hour=19)
        service = NotificationService(settings_store, resolver, discord_client, scheduled_event_service)

        result = await service.notify_guild(GUILD, now=datetime(2024, 4, 14, 2, 30, tzinfo=pytz.UTC))

        assert result.sent is True


class TestMarkerPropagation:

    @pytest.fixture
    def creator_backed(self, configured, fight_night_resolver, discord_client):
        configured.update(GUILD, scheduled_events_enabled=True)
        creator = ScheduledEventService(configured, fight_night_resolver, discord_client)
        return NotificationService(configured, fight_night_resolver, discord_client, creator)

    @pytest.mark.asyncio
    async def test_unmarked_forced_run_marks_nothing(self, creator_backed, configured, discord_client):
        result = await creator_backed.notify_guild(
            GUILD, force=True, channel_override="777", now=EVENT_DAY_3PM, mark_posted=False
        )

        assert result.sent is True
        discord_client.create_scheduled_event.assert_awaited_once()
        assert configured.get(GUILD).last_posted == {}
        assert configured.get(GUILD).scheduled_events == {}

    @pytest.mark.asyncio
    async def test_regular_run_marks_both(self, creator_backed, configured):
        await creator_backed.notify_guild(GUILD, now=EVENT_DAY_3PM)

        assert configured.get(GUILD).last_posted == {"ufc": "2024-05-10"}
        assert configured.get(GUILD).scheduled_events == {"ufc": "2024-05-10"}
