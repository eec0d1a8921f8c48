"""
Feature extraction and strength scoring for fixtures.

Turns the standings statistics attached to a fixture into a MatchAnalysis:
a 0-100 strength score per side, expected goals, a both-teams-to-score
probability and a confidence figure. The formula is a fixed weighted sum so
every published figure can be reproduced by hand from the inputs.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from safescore.models import Fixture, HeadToHead, MatchAnalysis, TeamStats
from safescore.utils import clamp, round_half_up

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringWeights:
    """
    Weights and normalization caps used by analyze_match().

    The five factor weights sum to 1.0 so a side with perfect inputs scores 100.
    """
    # Factor weights
    rank: float = 0.40
    form: float = 0.30
    goals: float = 0.15
    h2h: float = 0.10
    defense: float = 0.05

    # Normalization caps
    max_rank: int = 20
    max_form_points: int = 15
    max_goals: int = 30
    max_clean_sheets: int = 10

    # Expected goals
    xg_base: float = 0.7
    xg_scale: float = 2.8
    xg_defense_penalty: float = 0.4
    xg_min: float = 0.1
    xg_max: float = 4.0

    # Both teams to score
    btts_side_cap: float = 0.95

    # Confidence
    confidence_base: float = 50.0
    confidence_gap_factor: float = 0.4
    data_floor: float = 0.4
    data_span: float = 0.6
    confidence_cap: float = 98.0
    signal_count: int = 7


DEFAULT_WEIGHTS = ScoringWeights()


def normalize(value: float, max_value: float) -> float:
    """Scale value into [0, 1] relative to max_value."""
    return clamp(value / max_value, 0.0, 1.0)


def form_strength(form: Optional[str], weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Points from a W/D/L string (3 per win, 1 per draw) relative to a five-game maximum."""
    if not form:
        return 0.0
    form = form.upper()
    points = 3 * form.count("W") + form.count("D")
    return normalize(points, weights.max_form_points)


def rank_strength(rank: Optional[int], weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """
    Table position mapped linearly so that 1st is 1.0 and last (20th) is 0.0.

    Positions below 20th, in longer tables, are clamped to 0.0.
    """
    if not rank:
        return 0.0
    return clamp((weights.max_rank - rank) / (weights.max_rank - 1), 0.0, 1.0)


def h2h_strength(h2h: Optional[HeadToHead], home: bool) -> float:
    """Share of head-to-head wins for one side; 0.5 when there is no history."""
    if h2h is None or h2h.total <= 0:
        return 0.5
    wins = h2h.home_wins if home else h2h.away_wins
    return wins / h2h.total


def defense_strength(stats: TeamStats, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    return normalize(stats.clean_sheets or 0, weights.max_clean_sheets)


def team_score(
    stats: TeamStats,
    h2h_factor: float,
    weights: ScoringWeights = DEFAULT_WEIGHTS
) -> int:
    """
    Weighted 0-100 strength score for one side.

    Args:
        stats: Standings statistics for the side (fields may be None)
        h2h_factor: Head-to-head strength for the side
        weights: Scoring configuration

    Returns:
        Integer score between 0 and 100
    """
    total = (
        weights.rank * rank_strength(stats.league_rank, weights)
        + weights.form * form_strength(stats.form, weights)
        + weights.goals * normalize(stats.goals_for or 0, weights.max_goals)
        + weights.h2h * h2h_factor
        + weights.defense * defense_strength(stats, weights)
    )
    return round_half_up(100 * total)


def expected_goals(
    score: int,
    opponent_defense: float,
    weights: ScoringWeights = DEFAULT_WEIGHTS
) -> float:
    """Heuristic expected goals for a side, bounded and rounded to 2 decimals."""
    raw = (
        weights.xg_base
        + (score / 100) * weights.xg_scale
        - weights.xg_defense_penalty * opponent_defense
    )
    return round_half_up(clamp(raw, weights.xg_min, weights.xg_max) * 100) / 100


def data_completeness(
    home: TeamStats,
    away: TeamStats,
    h2h: Optional[HeadToHead]
) -> int:
    """Count of present signals out of seven."""
    signals = [
        bool(home.form),
        bool(home.league_rank),
        home.goals_for is not None,
        bool(away.form),
        bool(away.league_rank),
        away.goals_for is not None,
        h2h is not None and h2h.total > 0,
    ]
    return sum(signals)


def analyze_match(fixture: Fixture, weights: ScoringWeights = DEFAULT_WEIGHTS) -> MatchAnalysis:
    """
    Score a fixture from its attached statistics.

    Missing statistics are treated as absent signals: they contribute
    nothing to the strength scores and lower the confidence factor, but
    never raise.

    Args:
        fixture: Fixture, optionally enriched with standings and H2H data
        weights: Scoring configuration (default: DEFAULT_WEIGHTS)

    Returns:
        MatchAnalysis for the fixture
    """
    home = fixture.home_stats or TeamStats()
    away = fixture.away_stats or TeamStats()
    h2h = fixture.h2h

    home_score = team_score(home, h2h_strength(h2h, home=True), weights)
    away_score = team_score(away, h2h_strength(h2h, home=False), weights)

    xg_home = expected_goals(home_score, defense_strength(away, weights), weights)
    xg_away = expected_goals(away_score, defense_strength(home, weights), weights)

    p_home = clamp(xg_home / 2, 0.0, weights.btts_side_cap)
    p_away = clamp(xg_away / 2, 0.0, weights.btts_side_cap)
    btts_probability = round_half_up(p_home * p_away * 100) / 100

    completeness = data_completeness(home, away, h2h)
    factor = completeness / weights.signal_count * weights.data_span + weights.data_floor
    base = weights.confidence_base + weights.confidence_gap_factor * abs(home_score - away_score)
    confidence = round_half_up(min(weights.confidence_cap, base * factor))

    logger.debug(
        f"{fixture.home_team} vs {fixture.away_team}: scores {home_score}-{away_score}, "
        f"xG {xg_home}-{xg_away}, btts {btts_probability}, "
        f"completeness {completeness}/{weights.signal_count}, confidence {confidence}"
    )

    return MatchAnalysis(
        home_score=home_score,
        away_score=away_score,
        expected_goals_home=xg_home,
        expected_goals_away=xg_away,
        confidence=confidence,
        btts_probability=btts_probability,
    )
