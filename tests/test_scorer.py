"""Unit tests for fixture scoring."""

import pytest

from safescore.models import Fixture, HeadToHead, TeamStats
from safescore.scorer import (
    ScoringWeights,
    analyze_match,
    data_completeness,
    expected_goals,
    form_strength,
    h2h_strength,
    rank_strength,
    team_score,
)


def _fixture(home_stats=None, away_stats=None, h2h=None) -> Fixture:
    return Fixture(
        match_id=1,
        home_team="Arsenal",
        away_team="Everton",
        league="Premier League",
        league_code="PL",
        kickoff="2026-01-10T15:00:00Z",
        home_stats=home_stats,
        away_stats=away_stats,
        h2h=h2h,
    )


STRONG_HOME = TeamStats(form="WWWWW", league_rank=1, goals_for=30, goals_against=5, clean_sheets=10)
WEAK_AWAY = TeamStats(form="LLLLL", league_rank=20, goals_for=0, goals_against=40, clean_sheets=0)


class TestFactors:

    @pytest.mark.parametrize("form,expected", [
        ("WWWWW", 1.0),
        ("LLLLL", 0.0),
        ("WDLDW", 8 / 15),
        ("wwddl", 8 / 15),
        (None, 0.0),
        ("", 0.0),
    ])
    def test_form_strength(self, form, expected):
        assert form_strength(form) == pytest.approx(expected)

    def test_form_strength_is_capped(self):
        assert form_strength("WWWWWWW") == 1.0

    @pytest.mark.parametrize("rank,expected", [
        (1, 1.0),
        (20, 0.0),
        (24, 0.0),
        (None, 0.0),
        (0, 0.0),
    ])
    def test_rank_strength(self, rank, expected):
        assert rank_strength(rank) == pytest.approx(expected)

    def test_h2h_strength(self):
        h2h = HeadToHead(home_wins=3, draws=1, away_wins=1)
        assert h2h_strength(h2h, home=True) == pytest.approx(0.6)
        assert h2h_strength(h2h, home=False) == pytest.approx(0.2)

    def test_h2h_strength_without_history(self):
        assert h2h_strength(None, home=True) == 0.5
        assert h2h_strength(HeadToHead(), home=False) == 0.5

    def test_team_score_bounds(self):
        assert team_score(STRONG_HOME, 1.0) == 100
        assert team_score(TeamStats(), 0.0) == 0

    def test_expected_goals_is_bounded(self):
        assert expected_goals(100, 0.0) == 3.5
        assert expected_goals(0, 1.0) == 0.3
        custom = ScoringWeights(xg_max=2.0)
        assert expected_goals(100, 0.0, custom) == 2.0

    def test_data_completeness(self):
        assert data_completeness(TeamStats(), TeamStats(), None) == 0
        assert data_completeness(STRONG_HOME, WEAK_AWAY, HeadToHead(1, 0, 0)) == 7
        assert data_completeness(STRONG_HOME, TeamStats(goals_for=0), None) == 4


class TestAnalyzeMatch:

    def test_no_statistics(self):
        analysis = analyze_match(_fixture())

        assert analysis.home_score == 5
        assert analysis.away_score == 5
        assert analysis.expected_goals_home == 0.84
        assert analysis.expected_goals_away == 0.84
        assert analysis.btts_probability == 0.18
        assert analysis.confidence == 20

    def test_strong_home_against_weak_away(self):
        analysis = analyze_match(_fixture(STRONG_HOME, WEAK_AWAY, HeadToHead(3, 1, 1)))

        assert analysis.home_score == 96
        assert analysis.away_score == 2
        assert analysis.expected_goals_home == 3.39
        assert analysis.expected_goals_away == 0.36
        assert analysis.btts_probability == 0.17
        assert analysis.confidence == 88

    def test_is_deterministic(self):
        fixture = _fixture(STRONG_HOME, WEAK_AWAY, HeadToHead(3, 1, 1))
        assert analyze_match(fixture) == analyze_match(fixture)

    def test_partial_statistics_never_raise(self):
        partial = TeamStats(form="WD", league_rank=None, goals_for=None)
        analysis = analyze_match(_fixture(partial, None))

        assert 0 <= analysis.home_score <= 100
        assert 0 <= analysis.confidence <= 98
        assert analysis.home_score > analysis.away_score

    @pytest.mark.parametrize("home,away", [
        (STRONG_HOME, WEAK_AWAY),
        (WEAK_AWAY, STRONG_HOME),
        (TeamStats(), TeamStats()),
        (STRONG_HOME, STRONG_HOME),
    ])
    def test_output_ranges(self, home, away):
        analysis = analyze_match(_fixture(home, away, HeadToHead(5, 0, 0)))

        assert 0 <= analysis.home_score <= 100
        assert 0 <= analysis.away_score <= 100
        assert 0.1 <= analysis.expected_goals_home <= 4.0
        assert 0.1 <= analysis.expected_goals_away <= 4.0
        assert 0.0 <= analysis.btts_probability <= 0.95 * 0.95
        assert 0 <= analysis.confidence <= 98
