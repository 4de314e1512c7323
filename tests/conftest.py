"""Shared fixtures and scoreboard payload builders"""
from typing import Any, Dict, Iterable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import requests

from fightnight.services.discord_client import SentMessage
from fightnight.services.event_resolver import EventResolver
from fightnight.storage.database import Database
from fightnight.storage.settings_store import SettingsStore


def make_competitor(name: str, order: int, record: Optional[str] = None) -> Dict[str, Any]:
    competitor: Dict[str, Any] = {"order": order, "athlete": {"fullName": name}}
    if record:
        competitor["records"] = [{"summary": record}]
    return competitor


def make_bout(
    red: str,
    blue: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
    weight_class: str = "Lightweight",
    segment: Optional[str] = "Main Card",
    broadcast: Optional[str] = "ESPN+",
    **extra: Any
) -> Dict[str, Any]:
    bout: Dict[str, Any] = {
        "type": {"text": weight_class},
        "competitors": [
            make_competitor(red, 1, "10-1-0"),
            make_competitor(blue, 2, "9-2-0"),
        ],
    }
    if start:
        bout["startDate"] = start
        bout["date"] = start
    if end:
        bout["endDate"] = end
    if segment:
        bout["cardSegment"] = {"title": segment}
    if broadcast:
        bout["broadcast"] = broadcast
    bout.update(extra)
    return bout


def make_event(
    event_id: str,
    name: str,
    date: Optional[str],
    state: str = "pre",
    bouts: Iterable[Dict[str, Any]] = (),
    **extra: Any
) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "id": event_id,
        "name": name,
        "shortName": extra.pop("shortName", name),
        "status": {"type": {"state": state}},
        "competitions": list(bouts),
    }
    if date:
        event["date"] = date
    event.update(extra)
    return event


def scoreboard(*events: Dict[str, Any]) -> Dict[str, Any]:
    return {"leagues": [], "events": list(events)}


def fight_night_event() -> Dict[str, Any]:
    """A pre-state event: prelims at 00:00Z and the main card at 02:00Z on 2024-05-11"""
    return make_event(
        "600000001",
        "UFC Fight Night: Test Card",
        "2024-05-11T00:00Z",
        venues=[{
            "fullName": "UFC Apex",
            "address": {"city": "Las Vegas", "state": "NV", "country": "USA"},
        }],
        bouts=[
            make_bout(
                "Alex Example", "Blake Sample",
                start="2024-05-11T00:00Z",
                weight_class="Featherweight",
                segment="Prelims",
            ),
            make_bout(
                "Fighter Red", "Fighter Blue",
                start="2024-05-11T02:00Z",
                end="2024-05-11T04:00Z",
            ),
        ],
    )


class FakeScoreboardClient:
    """Scoreboard client serving canned payloads per year"""

    def __init__(self, payloads: Optional[Dict[int, Any]] = None, failures: Iterable[int] = ()):
        self.payloads = payloads or {}
        self.failures = set(failures)
        self.requested: List[int] = []

    def fetch_scoreboard(self, base_url: str, year: int) -> Dict[str, Any]:
        self.requested.append(year)
        if year in self.failures:
            raise requests.ConnectionError(f"scoreboard for {year} unavailable")
        return self.payloads.get(year, scoreboard())


@pytest.fixture
def settings_store(tmp_path):
    return SettingsStore(Database(db_path=str(tmp_path / "bot.db")))


@pytest.fixture
def fight_night_resolver():
    return EventResolver(FakeScoreboardClient({2024: scoreboard(fight_night_event())}))


@pytest.fixture
def discord_client():
    client = MagicMock()
    client.token = "test-token"
    client.send_message = AsyncMock(return_value=SentMessage(id="111", channel_id="555"))
    client.crosspost = AsyncMock(return_value=None)
    client.create_scheduled_event = AsyncMock(return_value="999")
    return client
