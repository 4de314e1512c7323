"""HTTP client for the ESPN scoreboard feed"""
from typing import Any, Dict
import requests

from ..utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_USER_AGENT = "fight-night-bot/1.0"


class ESPNClient:
    """Fetcher for yearly ESPN scoreboard snapshots"""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, timeout: int = 30):
        """
        Initialize ESPN client

        Args:
            user_agent: Client identifier sent with every request
            timeout: Request timeout in seconds
        """
        self.user_agent = user_agent
        self.timeout = timeout

    def fetch_scoreboard(self, base_url: str, year: int) -> Dict[str, Any]:
        """
        Fetch the scoreboard for one calendar year

        Args:
            base_url: Scoreboard endpoint of the organization
            year: Calendar year to fetch

        Returns:
            Decoded JSON object

        Raises:
            requests.RequestException: On network failure or non-2xx status
            ValueError: If the body is not a JSON object
        """
        logger.debug(f"Fetching scoreboard {base_url} for {year}")
        response = requests.get(
            base_url,
            params={"dates": str(year)},
            headers={
                "User-Agent": self.user_agent,
                "Accept": "application/json",
            },
            timeout=self.timeout,
        )
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected scoreboard payload for {year}: {type(payload).__name__}")
        return payload
