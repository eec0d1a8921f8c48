"""
Result acquisition for settlement.

Every source implements ResultSource.fetch_results_for_date() and returns
normalized MatchResult objects. Sources never raise: network and parse
failures are logged and yield an empty list, so one bad date cannot stop a
settlement run.

The BBC scraper depends on the page's generated class names, which change
without notice; keep all selector knowledge in this module.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any, Optional

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag
from requests.exceptions import RequestException

from safescore.config import Config
from safescore.fetcher import FootballDataClient
from safescore.models import MatchResult, MatchStatus
from safescore.utils import safe_int, stable_hash, today_utc

# Configure module logger
logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
}

# Page structure selectors
MATCH_CONTAINERS = 'div[class*="GridContainer"], li[class*="Match-"], div[class*="Match-"]'
HOME_MARKER = 'div[class*="TeamHome"], [data-testid="home-team-name"]'
HOME_TEAM = 'div[class*="TeamHome"] span[class*="DesktopValue"], [data-testid="home-team-name"]'
AWAY_TEAM = 'div[class*="TeamAway"] span[class*="DesktopValue"], [data-testid="away-team-name"]'
HOME_SCORE = 'div[class*="HomeScore"], [data-testid="home-score"]'
AWAY_SCORE = 'div[class*="AwayScore"], [data-testid="away-score"]'
STATUS = 'div[class*="StyledPeriod"], div[class*="Status"], div[class*="MatchProgress"]'

LIVE_MARKERS = ("LIVE", "MINS", "'")
CANCELLED_MARKERS = ("POSTP", "CANC")

_DASH_SCORE = re.compile(r"(\d+)\s*-\s*(\d+)")
_FT_SCORE = re.compile(r"FT\s*(\d+)\s*(\d+)")
_COMPACT_SCORE = re.compile(r"\d+-\d+")
_WIDE_GAP = re.compile(r"\s{2,}")
_TRAILING_FT = re.compile(r"\s*FT$")

# football-data.org statuses mapped onto MatchStatus
API_STATUS_MAP = {
    "SCHEDULED": MatchStatus.SCHEDULED,
    "TIMED": MatchStatus.SCHEDULED,
    "IN_PLAY": MatchStatus.IN_PLAY,
    "PAUSED": MatchStatus.PAUSED,
    "FINISHED": MatchStatus.FINISHED,
    "AWARDED": MatchStatus.FINISHED,
    "POSTPONED": MatchStatus.POSTPONED,
    "SUSPENDED": MatchStatus.POSTPONED,
    "CANCELLED": MatchStatus.CANCELLED,
}


class ResultSource(ABC):
    """Narrow interface between settlement and any result feed."""

    name: str = "source"
    # True when match ids stamped by this source are football-data.org ids
    supports_id_lookup: bool = False

    @abstractmethod
    def fetch_results_for_date(self, match_date: str) -> list[MatchResult]:
        """
        Return the matches reported for a date (YYYY-MM-DD).

        Never raises; failures yield an empty list.
        """

    def fetch_result_by_id(self, match_id: int) -> Optional[MatchResult]:
        """Return one match by its feed id, or None when unavailable."""
        return None


class BBCResultScraper(ResultSource):
    """Scrapes the BBC Sport scores page for a date."""

    name = "bbc"

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None
    ):
        self.base_url = (base_url or Config.RESULTS_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or Config.RESULTS_TIMEOUT

    def fetch_results_for_date(self, match_date: str) -> list[MatchResult]:
        url = f"{self.base_url}/{match_date}"
        logger.info(f"Fetching results page {url}")

        try:
            response = self.session.get(url, headers=BROWSER_HEADERS, timeout=self.timeout)
            response.raise_for_status()
            html = response.text
        except RequestException as e:
            logger.error(f"Failed to fetch results page for {match_date}: {e}")
            return []

        results = parse_results_page(html, match_date)
        logger.info(f"Found {len(results)} matches on results page for {match_date}")
        return results


def parse_results_page(html: str, match_date: str) -> list[MatchResult]:
    """
    Parse a results page into MatchResult objects.

    The structural pass runs first; the text-pattern pass only runs when the
    structural pass finds nothing.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
    except (TypeError, ValueError) as e:
        logger.error(f"Could not parse results page for {match_date}: {e}")
        return []

    results = _parse_match_containers(soup, match_date)
    if not results:
        logger.info("Structural selectors found no matches, trying text pattern fallback")
        results = _parse_versus_text(soup, match_date)

    return results


def _first_line(text: str) -> str:
    text = text.strip()
    return text.split("\n")[0].strip() if text else ""


def _team_name(container: Tag, selector: str, wrapper: str) -> str:
    element = container.select_one(selector)
    name = _first_line(element.get_text()) if element else ""
    if not name:
        # Responsive layouts render the name only in the wrapper div
        wrapper_el = container.select_one(wrapper)
        name = _first_line(wrapper_el.get_text()) if wrapper_el else ""
    return name


def _score(container: Tag, selector: str) -> Optional[int]:
    element = container.select_one(selector)
    if element is None:
        return None
    match = re.match(r"\s*(\d+)", element.get_text())
    return int(match.group(1)) if match else None


def classify_status(status_text: str, home_goals: Optional[int], away_goals: Optional[int]) -> MatchStatus:
    """Derive a MatchStatus from the upper-cased status text and the parsed scores."""
    if home_goals is not None and away_goals is not None:
        if any(marker in status_text for marker in LIVE_MARKERS):
            return MatchStatus.IN_PLAY
        if any(marker in status_text for marker in CANCELLED_MARKERS):
            return MatchStatus.CANCELLED
        return MatchStatus.FINISHED

    if any(marker in status_text for marker in CANCELLED_MARKERS):
        return MatchStatus.CANCELLED
    return MatchStatus.SCHEDULED


def _parse_match_containers(soup: BeautifulSoup, match_date: str) -> list[MatchResult]:
    results: list[MatchResult] = []
    seen: set[tuple[str, str]] = set()

    for idx, container in enumerate(soup.select(MATCH_CONTAINERS)):
        try:
            if container.select_one(HOME_MARKER) is None:
                continue

            home = _team_name(container, HOME_TEAM, 'div[class*="TeamHome"]')
            away = _team_name(container, AWAY_TEAM, 'div[class*="TeamAway"]')
            if not home or not away or (home, away) in seen:
                continue

            home_goals = _score(container, HOME_SCORE)
            away_goals = _score(container, AWAY_SCORE)
            status_text = " ".join(el.get_text() for el in container.select(STATUS)).strip().upper()
            status = classify_status(status_text, home_goals, away_goals)

            seen.add((home, away))
            results.append(MatchResult(
                match_id=stable_hash(home + away),
                home_team=home,
                away_team=away,
                status=status,
                date=match_date,
                home_goals=home_goals if status != MatchStatus.CANCELLED else None,
                away_goals=away_goals if status != MatchStatus.CANCELLED else None,
            ))
        except (AttributeError, TypeError, ValueError) as e:
            logger.debug(f"Failed to parse match container at index {idx}: {e}")
            continue

    return results


def _parse_versus_text(soup: BeautifulSoup, match_date: str) -> list[MatchResult]:
    """Scan text nodes for "<home> versus <away> <h>-<a>" or "... FT <h> <a>"."""
    results: list[MatchResult] = []
    seen: set[tuple[str, str]] = set()

    for element in soup.select("a, li, div"):
        text = element.get_text()
        if " versus " not in text or not ("FT" in text or _COMPACT_SCORE.search(text)):
            continue

        parts = text.split(" versus ")
        home = _WIDE_GAP.split(parts[0].strip())[-1].strip()
        rest = parts[1].strip()

        score = _DASH_SCORE.search(rest) or _FT_SCORE.search(rest)
        if not score:
            continue

        away = _TRAILING_FT.sub("", rest.split(score.group(0))[0].strip()).strip()
        if not home or not away or (home, away) in seen:
            continue

        seen.add((home, away))
        results.append(MatchResult(
            match_id=stable_hash(home + away),
            home_team=home,
            away_team=away,
            status=MatchStatus.FINISHED,
            date=match_date,
            home_goals=int(score.group(1)),
            away_goals=int(score.group(2)),
        ))

    return results


class FootballDataResultSource(ResultSource):
    """
    Results from the football-data.org /matches and /matches/{id} endpoints.

    Searches from a few days before the requested date up to today, so
    rescheduled matches are still found. Unlike the scraper it reports
    half-time scores and real match ids.
    """

    name = "api"
    supports_id_lookup = True

    def __init__(self, client: FootballDataClient, lookback_days: int = 3):
        self.client = client
        self.lookback_days = lookback_days
        self._id_lookups = 0

    def fetch_result_by_id(self, match_id: int) -> Optional[MatchResult]:
        """
        Look up one match directly through /matches/{id}.

        Consecutive lookups are spaced by FIXTURES_CALL_DELAY to stay under
        the per-minute request quota.
        """
        if self._id_lookups:
            self.client.sleep(Config.FIXTURES_CALL_DELAY)
        self._id_lookups += 1

        match = self.client.fetch_match(match_id)
        if match is None:
            logger.warning(f"Could not fetch match {match_id} from API")
            return None

        result = _parse_api_match(match)
        if result is None:
            logger.warning(f"API returned an unusable record for match {match_id}")
        return result

    def fetch_results_for_date(self, match_date: str) -> list[MatchResult]:
        try:
            target = date.fromisoformat(match_date)
        except ValueError:
            logger.error(f"Invalid date for result lookup: {match_date}")
            return []

        today = date.fromisoformat(today_utc())
        date_from = (target - timedelta(days=self.lookback_days)).isoformat()
        date_to = max(target, today).isoformat()

        matches = self.client.fetch_matches(date_from, date_to)
        if matches is None:
            logger.error(f"Could not fetch results from API for {match_date}")
            return []

        results = [r for r in (_parse_api_match(m) for m in matches) if r is not None]
        logger.info(f"Fetched {len(results)} API results between {date_from} and {date_to}")
        return results


def _parse_api_match(match: Any) -> Optional[MatchResult]:
    if not isinstance(match, dict):
        return None

    match_id = safe_int(match.get("id"))
    home = (match.get("homeTeam") or {}).get("name")
    away = (match.get("awayTeam") or {}).get("name")
    if match_id is None or not home or not away:
        logger.debug(f"Skipping API match with missing fields: {match.get('id')}")
        return None

    score = match.get("score") or {}
    full_time = score.get("fullTime") or {}
    half_time = score.get("halfTime") or {}

    return MatchResult(
        match_id=match_id,
        home_team=home,
        away_team=away,
        status=API_STATUS_MAP.get(match.get("status"), MatchStatus.SCHEDULED),
        date=(match.get("utcDate") or "")[:10],
        home_goals=safe_int(full_time.get("home")),
        away_goals=safe_int(full_time.get("away")),
        home_ht=safe_int(half_time.get("home")),
        away_ht=safe_int(half_time.get("away")),
    )
