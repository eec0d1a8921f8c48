"""
Rate-limited gateway to the football-data.org API.

This module handles the retrieval and normalization of fixtures and standings
tables. It performs no scoring - only data fetching and transformation into
structured Python objects. The free tier allows 10 requests per minute, so
calls are issued one at a time with a fixed gap between them, retried with
backoff, and fronted by a TTL cache. A league whose calls keep failing is
skipped; the batch never fails as a whole.
"""

import logging
import time
from datetime import date, timedelta
from typing import Any, Callable, Optional

import requests

from safescore.cache import TTLCache
from safescore.config import Config
from safescore.models import Fixture, TeamStats
from safescore.utils import call_with_retries, safe_int, today_utc

# Configure module logger
logger = logging.getLogger(__name__)

# Competition display names to football-data.org codes (free tier only)
LEAGUE_CODES: dict[str, str] = {
    "Premier League": "PL",
    "Championship": "ELC",
    "Bundesliga": "BL1",
    "La Liga": "PD",
    "Ligue 1": "FL1",
    "Serie A": "SA",
    "Serie B": "SA2",
    "Eredivisie": "DED",
    "Primeira Liga": "PPL",
    "Super Lig": "TR1",
    "Greek Super League": "GR1",
    "Allsvenskan": "SV1",
    "Champions League": "CL",
    "Europa League": "EL",
}

# Standings for these are fetched first so a partial batch still covers them
TOP_LEAGUES = ("PL", "BL1", "PD", "SA", "FL1", "ELC")

DAY_SPANS = {"today": 0, "tomorrow": 1, "weekend": 5}


def date_range_for_day(day: str, today: Optional[date] = None) -> tuple[str, str]:
    """
    Translate a day selector into an inclusive (date_from, date_to) range.

    Args:
        day: One of "today", "tomorrow", "weekend"
        today: Reference date (default: current UTC date)

    Returns:
        Tuple of YYYY-MM-DD strings
    """
    if today is None:
        today = date.fromisoformat(today_utc())

    span = DAY_SPANS.get(day)
    if span is None:
        logger.warning(f"Unknown day selector '{day}', using 'today'")
        span = 0

    return today.isoformat(), (today + timedelta(days=span)).isoformat()


def resolve_league_codes(leagues: list[str]) -> list[str]:
    """
    Map league names (or codes) to competition codes, preserving order.

    Unknown names are dropped with a warning; duplicates are removed.
    """
    known_codes = set(LEAGUE_CODES.values())
    codes: list[str] = []

    for league in leagues:
        code = LEAGUE_CODES.get(league) or (league if league in known_codes else None)
        if not code:
            logger.warning(f"No competition code for league '{league}', ignoring")
            continue
        if code not in codes:
            codes.append(code)

    return codes


class FootballDataClient:
    """
    Sequential, retried, cache-fronted client for fixtures and standings.

    The cache, HTTP session and sleep function are injected so the
    composition root owns their lifecycle and tests can replace them.
    """

    def __init__(
        self,
        cache: TTLCache,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.cache = cache
        self.api_key = api_key if api_key is not None else Config.FOOTBALL_DATA_API_KEY
        self.base_url = (base_url or Config.FOOTBALL_DATA_API_URL).rstrip("/")
        self.session = session or requests.Session()
        self.sleep = sleep

    # Fixtures

    def fetch_fixtures(self, leagues: list[str], day: str = "today") -> list[Fixture]:
        """
        Fetch scheduled fixtures for the given leagues and day.

        Leagues are processed in order, one HTTP call each, at least
        Config.FIXTURES_CALL_DELAY seconds apart. Leagues already cached
        issue no call. A league that fails every attempt is skipped.

        Args:
            leagues: League display names or competition codes
            day: Day selector ("today", "tomorrow", "weekend")

        Returns:
            List of Fixture objects from every league that succeeded. Returns
            an empty list when nothing is available.
        """
        league_codes = resolve_league_codes(leagues)
        if not league_codes:
            logger.warning(f"No valid league codes found for leagues: {leagues}")
            return []

        date_from, date_to = date_range_for_day(day)
        logger.info(f"Fetching fixtures for {league_codes} from {date_from} to {date_to} ({day})")

        fixtures: list[Fixture] = []
        calls_made = 0

        for code in league_codes:
            cache_key = f"fixtures:{code}:{date_from}:{date_to}"
            matches = self.cache.get(cache_key, Config.FIXTURES_CACHE_TTL)

            if matches is not None:
                logger.info(f"Cache hit for fixtures: {cache_key}")
            else:
                if calls_made > 0:
                    self.sleep(Config.FIXTURES_CALL_DELAY)
                calls_made += 1

                data = call_with_retries(
                    lambda: self._get(
                        f"/competitions/{code}/matches",
                        params={"status": "SCHEDULED", "dateFrom": date_from, "dateTo": date_to},
                        timeout=Config.FIXTURES_TIMEOUT,
                    ),
                    label=f"Fixtures request for {code}",
                    max_attempts=Config.MAX_FETCH_ATTEMPTS,
                    sleep=self.sleep,
                )
                if data is None:
                    continue

                matches = data.get("matches") or [] if isinstance(data, dict) else []
                self.cache.set(cache_key, matches)
                logger.info(f"Fetched {len(matches)} matches for {code}")

            fixtures.extend(_normalize_fixtures(matches, code))

        if not fixtures:
            logger.warning("No fixtures found for the given leagues and date range")

        return fixtures

    # Standings

    def fetch_standings(self, league_codes: list[str]) -> dict[str, dict[int, TeamStats]]:
        """
        Fetch standings tables for the given competitions.

        Top leagues are processed first. Calls are spaced by
        Config.STANDINGS_CALL_DELAY seconds; cached tables issue no call.

        Args:
            league_codes: Competition codes, typically those seen in fixtures

        Returns:
            Mapping of competition code to {team_id: TeamStats}. Leagues that
            could not be fetched are absent.
        """
        ordered = sorted(dict.fromkeys(league_codes), key=lambda c: c not in TOP_LEAGUES)
        tables: dict[str, dict[int, TeamStats]] = {}
        calls_made = 0

        for code in ordered:
            cache_key = f"standings:{code}"
            data = self.cache.get(cache_key, Config.STANDINGS_CACHE_TTL)

            if data is not None:
                logger.info(f"Cache hit for standings: {cache_key}")
            else:
                if calls_made > 0:
                    self.sleep(Config.STANDINGS_CALL_DELAY)
                calls_made += 1

                data = call_with_retries(
                    lambda: self._get(
                        f"/competitions/{code}/standings",
                        timeout=Config.STANDINGS_TIMEOUT,
                    ),
                    label=f"Standings request for {code}",
                    max_attempts=Config.MAX_FETCH_ATTEMPTS,
                    sleep=self.sleep,
                )
                if data is None:
                    continue

                self.cache.set(cache_key, data)
                logger.info(f"Fetched standings for {code}")

            tables[code] = _parse_standings(data)

        return tables

    def enrich_fixtures(self, fixtures: list[Fixture]) -> list[Fixture]:
        """
        Attach home/away standings statistics to fixtures.

        Fixtures whose league table is unavailable are returned unchanged;
        the scorer treats the missing statistics as absent signals.
        """
        league_codes = [f.league_code for f in fixtures if f.league_code]
        if not league_codes:
            return fixtures

        tables = self.fetch_standings(league_codes)
        if not tables:
            logger.warning("No standings data available, returning basic fixtures")
            return fixtures

        for fixture in fixtures:
            table = tables.get(fixture.league_code)
            if not table:
                continue
            fixture.home_stats = table.get(fixture.home_team_id)
            fixture.away_stats = table.get(fixture.away_team_id)

        return fixtures

    def warm_standings_cache(self, leagues: Optional[list[str]] = None) -> int:
        """
        Pre-fetch standings so later prediction runs are served from cache.

        Args:
            leagues: League names or codes (default: every known league)

        Returns:
            Number of leagues whose standings are now available
        """
        codes = resolve_league_codes(leagues) if leagues else list(LEAGUE_CODES.values())
        logger.info(f"Warming standings cache for {len(codes)} leagues")
        tables = self.fetch_standings(codes)
        logger.info(f"Standings available for {len(tables)}/{len(codes)} leagues")
        return len(tables)

    # Matches (results)

    def fetch_matches(self, date_from: str, date_to: str) -> Optional[list[dict]]:
        """
        Fetch every match across competitions within a date range.

        Returns:
            Raw match dictionaries, or None when the request failed after retries
        """
        data = call_with_retries(
            lambda: self._get(
                "/matches",
                params={"dateFrom": date_from, "dateTo": date_to},
                timeout=Config.FIXTURES_TIMEOUT,
            ),
            label=f"Matches request {date_from}..{date_to}",
            max_attempts=Config.MAX_FETCH_ATTEMPTS,
            sleep=self.sleep,
        )
        if data is None:
            return None
        return data.get("matches") or [] if isinstance(data, dict) else []

    def fetch_match(self, match_id: int) -> Optional[dict]:
        """
        Fetch a single match by its football-data.org id.

        Returns:
            Raw match dictionary, or None when the request failed after retries
        """
        data = call_with_retries(
            lambda: self._get(f"/matches/{match_id}", timeout=Config.FIXTURES_TIMEOUT),
            label=f"Match request {match_id}",
            max_attempts=Config.MAX_FETCH_ATTEMPTS,
            sleep=self.sleep,
        )
        if not isinstance(data, dict):
            return None
        # v2 responses wrap the match; v4 returns it at the top level
        match = data.get("match", data)
        return match if isinstance(match, dict) else None

    def _get(self, path: str, params: Optional[dict] = None, timeout: float = 10.0) -> Any:
        """Issue one GET and return decoded JSON. Raises on HTTP or decode errors."""
        url = f"{self.base_url}{path}"
        logger.debug(f"Requesting {url} with params: {params}")

        response = self.session.get(
            url,
            params=params,
            headers={
                "X-Auth-Token": self.api_key or "",
                "Accept": "application/json",
            },
            timeout=timeout,
        )
        response.raise_for_status()
        return response.json()


def _normalize_fixtures(matches: list[dict], league_code: str) -> list[Fixture]:
    """
    Normalize raw match dictionaries into Fixture objects.

    Malformed entries are skipped and logged.
    """
    fixtures: list[Fixture] = []

    if not isinstance(matches, list):
        logger.warning(f"Expected list of matches for {league_code}, got {type(matches)}")
        return fixtures

    for idx, match in enumerate(matches):
        try:
            home = match.get("homeTeam") or {}
            away = match.get("awayTeam") or {}
            competition = match.get("competition") or {}

            fixtures.append(Fixture(
                match_id=safe_int(match.get("id"), 0),
                home_team=home.get("name") or "Unknown",
                away_team=away.get("name") or "Unknown",
                league=competition.get("name") or league_code,
                league_code=league_code,
                kickoff=match.get("utcDate") or "TBD",
                home_team_id=safe_int(home.get("id"), 0),
                away_team_id=safe_int(away.get("id"), 0),
            ))
        except AttributeError as e:
            logger.debug(f"Failed to parse match at index {idx} for {league_code}: {e}")
            continue

    return fixtures


def _parse_standings(data: Any) -> dict[int, TeamStats]:
    """
    Parse the first standings table into {team_id: TeamStats}.

    Missing columns become None; rows without a team id are skipped.
    """
    table_stats: dict[int, TeamStats] = {}

    if not isinstance(data, dict):
        return table_stats

    standings = data.get("standings") or []
    if not standings or not isinstance(standings[0], dict):
        return table_stats

    for row in standings[0].get("table") or []:
        team_id = safe_int((row.get("team") or {}).get("id"))
        if team_id is None:
            logger.debug(f"Standings row without team id: {row}")
            continue

        form = row.get("form")
        table_stats[team_id] = TeamStats(
            form=form.replace(",", "") if isinstance(form, str) and form else None,
            league_rank=safe_int(row.get("position")),
            goals_for=safe_int(row.get("goalsFor")),
            goals_against=safe_int(row.get("goalsAgainst")),
            clean_sheets=safe_int(row.get("cleanSheet")),
        )

    return table_stats
