"""Unit tests for result sources. HTML fixtures are inline; no network access."""

from unittest.mock import MagicMock

import pytest
from requests.exceptions import ConnectionError, HTTPError

from safescore.config import Config
from safescore.models import MatchStatus
from safescore.results import (
    BBCResultScraper,
    FootballDataResultSource,
    classify_status,
    parse_results_page,
)
from safescore.utils import stable_hash


def _container(home, away, status, home_score=None, away_score=None) -> str:
    scores = ""
    if home_score is not None:
        scores = (
            f'<div class="ssrcss-a1-HomeScore">{home_score}</div>'
            f'<div class="ssrcss-a2-AwayScore">{away_score}</div>'
        )
    return (
        '<div class="ssrcss-g1-GridContainer">'
        f'<div class="ssrcss-t1-TeamHome"><span class="ssrcss-d1-DesktopValue">{home}</span></div>'
        f"{scores}"
        f'<div class="ssrcss-t2-TeamAway"><span class="ssrcss-d2-DesktopValue">{away}</span></div>'
        f'<div class="ssrcss-p1-StyledPeriod">{status}</div>'
        "</div>"
    )


RESULTS_PAGE = "<html><body>" + "".join([
    _container("Arsenal", "Chelsea", "FT", 2, 1),
    _container("Liverpool", "Everton", "67 mins", 1, 0),
    _container("Fulham", "Brentford", "15:00"),
    _container("Leeds United", "Burnley", "Postponed"),
    _container("Arsenal", "Chelsea", "FT", 2, 1),
]) + "</body></html>"

FALLBACK_PAGE = (
    "<ul><li><a>Arsenal versus Chelsea FT 2 - 1</a></li></ul>"
    "<div>Leeds versus Burnley FT1 0</div>"
)


class TestParseResultsPage:

    @pytest.fixture
    def results(self):
        return parse_results_page(RESULTS_PAGE, "2026-01-10")

    def test_duplicates_are_dropped(self, results):
        assert [(r.home_team, r.away_team) for r in results] == [
            ("Arsenal", "Chelsea"),
            ("Liverpool", "Everton"),
            ("Fulham", "Brentford"),
            ("Leeds United", "Burnley"),
        ]

    def test_finished_match(self, results):
        arsenal = results[0]
        assert arsenal.status is MatchStatus.FINISHED
        assert (arsenal.home_goals, arsenal.away_goals) == (2, 1)
        assert arsenal.home_ht is None
        assert arsenal.date == "2026-01-10"
        assert arsenal.match_id == stable_hash("ArsenalChelsea")

    def test_live_match(self, results):
        assert results[1].status is MatchStatus.IN_PLAY
        assert (results[1].home_goals, results[1].away_goals) == (1, 0)

    def test_scheduled_match(self, results):
        assert results[2].status is MatchStatus.SCHEDULED
        assert results[2].home_goals is None

    def test_postponed_match_has_no_score(self, results):
        assert results[3].status is MatchStatus.CANCELLED
        assert results[3].home_goals is None
        assert results[3].away_goals is None

    def test_name_from_wrapper_when_value_span_missing(self):
        html = (
            '<div class="x-GridContainer">'
            '<div class="x-TeamHome">Wolves\nW W L</div>'
            '<div class="x-HomeScore">0</div><div class="x-AwayScore">0</div>'
            '<div class="x-TeamAway">Man City</div>'
            '<div class="x-StyledPeriod">FT</div>'
            "</div>"
        )
        [result] = parse_results_page(html, "2026-01-10")
        assert result.home_team == "Wolves"
        assert result.away_team == "Man City"
        assert result.status is MatchStatus.FINISHED

    def test_fallback_text_pattern(self):
        results = parse_results_page(FALLBACK_PAGE, "2026-01-10")

        assert [(r.home_team, r.away_team, r.home_goals, r.away_goals) for r in results] == [
            ("Arsenal", "Chelsea", 2, 1),
            ("Leeds", "Burnley", 1, 0),
        ]
        assert all(r.status is MatchStatus.FINISHED for r in results)

    def test_fallback_not_used_when_structure_matches(self):
        html = _container("Arsenal", "Chelsea", "FT", 2, 1) + "<div>Leeds versus Burnley FT1 0</div>"
        results = parse_results_page(html, "2026-01-10")
        assert [r.home_team for r in results] == ["Arsenal"]

    def test_empty_page(self):
        assert parse_results_page("<html><body><p>No matches</p></body></html>", "2026-01-10") == []


class TestClassifyStatus:

    @pytest.mark.parametrize("text,home,away,expected", [
        ("FT", 2, 1, MatchStatus.FINISHED),
        ("", 0, 0, MatchStatus.FINISHED),
        ("LIVE", 0, 0, MatchStatus.IN_PLAY),
        ("45'", 1, 1, MatchStatus.IN_PLAY),
        ("CANCELLED", 1, 0, MatchStatus.CANCELLED),
        ("POSTPONED", None, None, MatchStatus.CANCELLED),
        ("15:00", None, None, MatchStatus.SCHEDULED),
        ("FT", 1, None, MatchStatus.SCHEDULED),
    ])
    def test_classification(self, text, home, away, expected):
        assert classify_status(text, home, away) is expected


class TestBBCResultScraper:

    def _scraper(self, session):
        return BBCResultScraper(base_url="https://scores.example.test/", session=session, timeout=5)

    def test_fetches_date_url(self):
        session = MagicMock()
        session.get.return_value.text = RESULTS_PAGE

        results = self._scraper(session).fetch_results_for_date("2026-01-10")

        assert len(results) == 4
        args, kwargs = session.get.call_args
        assert args[0] == "https://scores.example.test/2026-01-10"
        assert "User-Agent" in kwargs["headers"]
        assert kwargs["timeout"] == 5

    def test_network_error_yields_empty_list(self):
        session = MagicMock()
        session.get.side_effect = ConnectionError("down")

        assert self._scraper(session).fetch_results_for_date("2026-01-10") == []

    def test_http_error_yields_empty_list(self):
        session = MagicMock()
        session.get.return_value.raise_for_status.side_effect = HTTPError("500 Server Error")

        assert self._scraper(session).fetch_results_for_date("2026-01-10") == []


API_MATCHES = [
    {
        "id": 501,
        "utcDate": "2026-01-10T15:00:00Z",
        "status": "FINISHED",
        "homeTeam": {"name": "Arsenal FC"},
        "awayTeam": {"name": "Chelsea FC"},
        "score": {"fullTime": {"home": 3, "away": 1}, "halfTime": {"home": 2, "away": 0}},
    },
    {
        "id": 502,
        "utcDate": "2026-01-10T17:30:00Z",
        "status": "TIMED",
        "homeTeam": {"name": "Fulham FC"},
        "awayTeam": {"name": "Brentford FC"},
        "score": {"fullTime": {"home": None, "away": None}, "halfTime": {"home": None, "away": None}},
    },
    {"id": 503, "homeTeam": {}, "awayTeam": {"name": "Nobody"}},
    "garbage",
]


class TestFootballDataResultSource:

    def test_maps_api_matches(self):
        client = MagicMock()
        client.fetch_matches.return_value = API_MATCHES

        results = FootballDataResultSource(client).fetch_results_for_date("2026-01-10")

        assert [r.match_id for r in results] == [501, 502]
        finished, scheduled = results
        assert finished.status is MatchStatus.FINISHED
        assert (finished.home_goals, finished.away_goals, finished.home_ht, finished.away_ht) == (3, 1, 2, 0)
        assert finished.date == "2026-01-10"
        assert scheduled.status is MatchStatus.SCHEDULED
        assert not scheduled.has_full_time

    def test_searches_from_lookback_to_at_least_the_date(self):
        client = MagicMock()
        client.fetch_matches.return_value = []

        FootballDataResultSource(client).fetch_results_for_date("2999-01-10")

        client.fetch_matches.assert_called_once_with("2999-01-07", "2999-01-10")

    def test_past_date_searches_up_to_today(self):
        client = MagicMock()
        client.fetch_matches.return_value = []

        FootballDataResultSource(client, lookback_days=3).fetch_results_for_date("2026-01-10")

        date_from, date_to = client.fetch_matches.call_args.args
        assert date_from == "2026-01-07"
        assert date_to >= "2026-01-10"

    def test_failed_request_yields_empty_list(self):
        client = MagicMock()
        client.fetch_matches.return_value = None

        assert FootballDataResultSource(client).fetch_results_for_date("2026-01-10") == []

    def test_invalid_date(self):
        client = MagicMock()
        assert FootballDataResultSource(client).fetch_results_for_date("10/01/2026") == []
        client.fetch_matches.assert_not_called()

    def test_lookup_by_id(self):
        client = MagicMock()
        client.fetch_match.return_value = API_MATCHES[0]

        result = FootballDataResultSource(client).fetch_result_by_id(501)

        client.fetch_match.assert_called_once_with(501)
        assert result.match_id == 501
        assert result.format_score() == "3 - 1"
        assert result.status is MatchStatus.FINISHED

    def test_lookup_by_id_failures(self):
        client = MagicMock()
        source = FootballDataResultSource(client)

        client.fetch_match.return_value = None
        assert source.fetch_result_by_id(501) is None

        client.fetch_match.return_value = API_MATCHES[2]
        assert source.fetch_result_by_id(503) is None

    def test_consecutive_id_lookups_are_spaced(self, monkeypatch):
        monkeypatch.setattr(Config, "FIXTURES_CALL_DELAY", 6.5)
        client = MagicMock()
        client.fetch_match.return_value = API_MATCHES[0]
        source = FootballDataResultSource(client)

        source.fetch_result_by_id(501)
        client.sleep.assert_not_called()

        source.fetch_result_by_id(501)
        client.sleep.assert_called_once_with(6.5)


class TestIdLookupSupport:

    def test_scraper_has_no_id_lookup(self):
        scraper = BBCResultScraper(session=MagicMock())
        assert scraper.supports_id_lookup is False
        assert scraper.fetch_result_by_id(501) is None

    def test_api_source_supports_id_lookup(self):
        assert FootballDataResultSource(MagicMock()).supports_id_lookup is True
