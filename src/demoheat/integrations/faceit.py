"""
demoheat FACEIT API Integration

Fetches the match record a replay is checked against: the map that was
played and the expected roster as parallel lists of Steam ids and
nicknames.
"""

import logging
import os
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import requests

from demoheat.core.config import FaceitConfig
from demoheat.core.utils import normalize_platform_id

logger = logging.getLogger(__name__)

FACEIT_API_BASE = "https://open.faceit.com/data/v4"


class FACEITError(RuntimeError):
    """Raised when the FACEIT API cannot be used at all (e.g. no API key)."""


@dataclass
class FACEITPlayer:
    """The subset of a FACEIT player profile needed for roster checks."""

    player_id: str
    nickname: str
    steam_id: str = ""


@dataclass
class ExpectedMatch:
    """What a replay of this match should contain."""

    match_id: str
    map_name: str = ""
    platform_ids: list[str] = field(default_factory=list)
    names: list[str] = field(default_factory=list)

    @property
    def has_roster(self) -> bool:
        return bool(self.platform_ids)


def steam_id_from_player(player: dict[str, Any]) -> str | None:
    """Steam id (digits only) from a FACEIT player payload, if it has one."""
    for key in ("steam_id_64", "steamId", "steamid"):
        steam_id = normalize_platform_id(player.get(key))
        if steam_id:
            return steam_id
    return None


def extract_map_name(match: dict[str, Any] | None, stats: dict[str, Any] | None) -> str:
    """
    Map played in a match.

    Match stats (``rounds[0].round_stats.Map``) are preferred over the
    veto result (``voting.map.pick[0]``).
    """
    rounds = (stats or {}).get("rounds") or []
    if rounds:
        stats_map = (rounds[0].get("round_stats") or {}).get("Map")
        if stats_map:
            return str(stats_map)

    pick = (((match or {}).get("voting") or {}).get("map") or {}).get("pick")
    if isinstance(pick, list) and pick:
        return str(pick[0])
    if isinstance(pick, str):
        return pick
    return ""


def extract_roster(match: dict[str, Any] | None) -> list[dict[str, Any]]:
    """Both factions' roster entries, faction1 first."""
    teams = (match or {}).get("teams") or {}
    roster: list[dict[str, Any]] = []
    for faction in ("faction1", "faction2"):
        roster.extend((teams.get(faction) or {}).get("roster") or [])
    return roster


def build_expected_match(
    match_id: str,
    match: dict[str, Any] | None,
    stats: dict[str, Any] | None = None,
    players: Sequence[dict[str, Any] | None] | None = None,
) -> ExpectedMatch:
    """
    Assemble the expected map and roster from FACEIT payloads.

    Args:
        match_id: FACEIT match id
        match: ``/matches/{id}`` payload
        stats: ``/matches/{id}/stats`` payload, if fetched
        players: ``/players/{id}`` payloads aligned with the match roster;
            entries may be None when a lookup failed

    Returns:
        ExpectedMatch; each platform id is the player's Steam id, falling back
        to the FACEIT player id when no Steam id is known
    """
    roster = extract_roster(match)
    players = list(players or [])

    platform_ids: list[str] = []
    names: list[str] = []
    for index, entry in enumerate(roster):
        faceit_id = entry.get("player_id") or entry.get("id")
        details = players[index] if index < len(players) else None
        steam_id = steam_id_from_player(details) if details else None
        if steam_id is None:
            steam_id = steam_id_from_player(entry)
        platform_id = steam_id or faceit_id
        if platform_id:
            platform_ids.append(str(platform_id))

        name = entry.get("nickname") or entry.get("name")
        if name:
            names.append(str(name))

    return ExpectedMatch(
        match_id=match_id,
        map_name=extract_map_name(match, stats),
        platform_ids=platform_ids,
        names=names,
    )


class FACEITClient:
    """
    Client for the FACEIT Data API.

    Requires a FACEIT API key which can be obtained from:
    https://developers.faceit.com/

    Example:
        >>> client = FACEITClient(api_key="your-api-key")
        >>> expected = client.fetch_expected_match("1-abc")
        >>> expected.map_name, len(expected.platform_ids)
        ('de_mirage', 10)
    """

    def __init__(self, api_key: str | None = None, config: FaceitConfig | None = None):
        """
        Args:
            api_key: FACEIT API key. If not provided, falls back to the config
                     and then the FACEIT_API_KEY environment variable.
            config: FACEIT section of the loaded configuration
        """
        self.config = config or FaceitConfig()
        self.api_key = api_key or self.config.api_key or os.environ.get("FACEIT_API_KEY")
        self.base_url = self.config.base_url.rstrip("/") or FACEIT_API_BASE

        if not self.api_key:
            logger.warning(
                "No FACEIT API key provided. Set FACEIT_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self._request_times: list[float] = []
        self._session: requests.Session | None = None

    def _get_session(self) -> requests.Session:
        """Get or create requests session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(
                {"Authorization": f"Bearer {self.api_key}", "Accept": "application/json"}
            )
        return self._session

    def _check_rate_limit(self) -> None:
        """Check and enforce rate limiting."""
        window = self.config.rate_limit_window
        now = time.time()
        self._request_times = [t for t in self._request_times if now - t < window]

        if len(self._request_times) >= self.config.rate_limit_requests:
            sleep_time = window - (now - self._request_times[0])
            if sleep_time > 0:
                logger.debug(f"Rate limit reached, sleeping {sleep_time:.1f}s")
                time.sleep(sleep_time)

        self._request_times.append(time.time())

    def _make_request(self, endpoint: str, params: dict | None = None) -> dict | None:
        """Make a request to the FACEIT API. Transport and HTTP errors return None."""
        if not self.api_key:
            raise FACEITError("FACEIT API key required")

        self._check_rate_limit()

        url = f"{self.base_url}{endpoint}"
        try:
            response = self._get_session().get(url, params=params, timeout=self.config.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"FACEIT API request failed for {endpoint}: {e}")
            return None

    def get_match(self, match_id: str) -> dict | None:
        """Raw ``/matches/{id}`` payload."""
        return self._make_request(f"/matches/{match_id}")

    def get_match_stats(self, match_id: str) -> dict | None:
        """Raw ``/matches/{id}/stats`` payload."""
        return self._make_request(f"/matches/{match_id}/stats")

    def get_player(self, player_id: str) -> FACEITPlayer | None:
        """Player profile by FACEIT player id."""
        data = self._make_request(f"/players/{player_id}")
        if not data:
            return None
        return FACEITPlayer(
            player_id=data.get("player_id", player_id),
            nickname=data.get("nickname", ""),
            steam_id=steam_id_from_player(data) or "",
        )

    def fetch_expected_match(self, match_id: str) -> ExpectedMatch | None:
        """
        Fetch everything needed to validate a replay of ``match_id``.

        Returns:
            ExpectedMatch, or None if the match itself cannot be fetched
        """
        match = self.get_match(match_id)
        if not match:
            return None

        stats = self.get_match_stats(match_id)

        players: list[dict[str, Any] | None] = []
        for entry in extract_roster(match):
            faceit_id = entry.get("player_id") or entry.get("id")
            player = self.get_player(faceit_id) if faceit_id else None
            players.append({"steam_id_64": player.steam_id} if player and player.steam_id else None)

        expected = build_expected_match(match_id, match, stats, players)
        logger.info(
            f"Match {match_id}: map={expected.map_name or '?'}, "
            f"{len(expected.platform_ids)} expected players"
        )
        return expected
