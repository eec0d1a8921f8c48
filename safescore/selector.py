"""
Market selection for analyzed fixtures.

Each candidate market is an ordered (condition, market) rule and the first
condition that holds wins. The generic waterfall is biased
towards low-variance markets (double chance, Over 0.5) ahead of anything
else; tie-break order is part of the product and must not be reshuffled.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from safescore.models import Market, MatchAnalysis, RiskProfile
from safescore.utils import clamp

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorThresholds:
    """Numeric thresholds of the selection waterfall."""
    # Generic waterfall
    banker_gap: int = 50
    banker_confidence: int = 85
    over_0_5_total: float = 1.1
    outright_confidence: int = 75
    outright_gap: int = 35
    over_2_5_total: float = 3.0
    over_2_5_confidence: int = 60
    over_1_5_total: float = 2.2
    over_1_5_confidence: int = 55
    under_1_5_total: float = 0.8
    under_1_5_confidence: int = 50
    under_2_5_total: float = 1.0
    under_2_5_confidence: int = 45
    under_3_5_total: float = 1.1
    under_3_5_confidence: int = 40
    btts_yes_probability: float = 0.6
    btts_yes_confidence: int = 60
    btts_no_probability: float = 0.3
    btts_no_confidence: int = 50
    draw_gap: int = 10
    draw_confidence: int = 70
    fallback_confidence: int = 55

    # Over/under profile
    second_half_total: float = 2.6
    second_half_confidence: int = 65
    profile_under_3_5_total: float = 1.8

    # BTTS profile
    home_first_half_xg: float = 1.6
    away_second_half_xg: float = 1.4
    team_to_score_xg: float = 1.2

    # Match-winner profile
    handicap_home_gap: int = 45
    handicap_home_xg_gap: float = 1.5
    double_chance_gap: int = 20
    handicap_away_gap: int = 15

    # Confidence nudge
    min_confidence: int = 30
    max_confidence: int = 99
    safe_market_bonus: int = 5
    safe_market_cap: int = 99
    steady_market_bonus: int = 2
    steady_market_cap: int = 97


DEFAULT_THRESHOLDS = SelectorThresholds()

Condition = Callable[[MatchAnalysis, SelectorThresholds], bool]
Pick = Callable[[MatchAnalysis], Market]
Rule = tuple[Condition, Pick]


def _home_stronger(a: MatchAnalysis) -> bool:
    return a.home_score >= a.away_score


def double_chance(a: MatchAnalysis) -> Market:
    """Win-or-draw toward the stronger side (home on equal scores)."""
    return Market.HOME_WIN_OR_DRAW if _home_stronger(a) else Market.AWAY_WIN_OR_DRAW


def outright_win(a: MatchAnalysis) -> Market:
    """Outright win for the stronger side (home on equal scores)."""
    return Market.HOME_WIN if _home_stronger(a) else Market.AWAY_WIN


def fixed(market: Market) -> Pick:
    return lambda a: market


GENERIC_RULES: list[Rule] = [
    # Tier 1: banker double chance
    (lambda a, t: a.score_gap > t.banker_gap and a.confidence > t.banker_confidence, double_chance),
    # Tier 2: any goal at all
    (lambda a, t: a.total_expected_goals > t.over_0_5_total, fixed(Market.OVER_0_5)),
    # Tier 3: outright winner
    (lambda a, t: a.confidence > t.outright_confidence and a.score_gap > t.outright_gap, outright_win),
    # Tier 4: goal totals, progressively looser
    (lambda a, t: a.total_expected_goals > t.over_2_5_total and a.confidence > t.over_2_5_confidence,
     fixed(Market.OVER_2_5)),
    (lambda a, t: a.total_expected_goals > t.over_1_5_total and a.confidence > t.over_1_5_confidence,
     fixed(Market.OVER_1_5)),
    (lambda a, t: a.total_expected_goals < t.under_1_5_total and a.confidence > t.under_1_5_confidence,
     fixed(Market.UNDER_1_5)),
    (lambda a, t: a.total_expected_goals < t.under_2_5_total and a.confidence > t.under_2_5_confidence,
     fixed(Market.UNDER_2_5)),
    (lambda a, t: a.total_expected_goals < t.under_3_5_total and a.confidence > t.under_3_5_confidence,
     fixed(Market.UNDER_3_5)),
    # Tier 5: both teams to score
    (lambda a, t: a.btts_probability > t.btts_yes_probability and a.confidence > t.btts_yes_confidence,
     fixed(Market.BTTS_YES)),
    (lambda a, t: a.btts_probability < t.btts_no_probability and a.confidence > t.btts_no_confidence,
     fixed(Market.BTTS_NO)),
    # Tier 6: evenly matched
    (lambda a, t: a.score_gap < t.draw_gap and a.confidence > t.draw_confidence, fixed(Market.DRAW)),
    # Fallback
    (lambda a, t: a.confidence > t.fallback_confidence, double_chance),
]

PROFILE_RULES: dict[RiskProfile, list[Rule]] = {
    RiskProfile.OVER_UNDER: [
        (lambda a, t: a.total_expected_goals > t.over_2_5_total, fixed(Market.OVER_2_5)),
        (lambda a, t: a.total_expected_goals > t.second_half_total and a.confidence > t.second_half_confidence,
         fixed(Market.HIGHEST_HALF_SECOND)),
        (lambda a, t: a.total_expected_goals > t.over_1_5_total, fixed(Market.OVER_1_5)),
        (lambda a, t: a.total_expected_goals < t.under_2_5_total, fixed(Market.UNDER_2_5)),
        (lambda a, t: a.total_expected_goals < t.profile_under_3_5_total, fixed(Market.UNDER_3_5)),
    ],
    RiskProfile.BTTS: [
        (lambda a, t: a.btts_probability > t.btts_yes_probability, fixed(Market.BTTS_YES)),
        (lambda a, t: a.btts_probability < t.btts_no_probability, fixed(Market.BTTS_NO)),
        (lambda a, t: a.expected_goals_home > t.home_first_half_xg, fixed(Market.HOME_SCORE_FIRST_HALF)),
        (lambda a, t: a.expected_goals_away > t.away_second_half_xg, fixed(Market.AWAY_SCORE_SECOND_HALF)),
        (lambda a, t: a.expected_goals_home > t.team_to_score_xg, fixed(Market.HOME_TO_SCORE)),
        (lambda a, t: a.expected_goals_away > t.team_to_score_xg, fixed(Market.AWAY_TO_SCORE)),
    ],
    RiskProfile.MATCH_WINNER: [
        (lambda a, t: a.confidence > t.outright_confidence and a.score_gap > t.outright_gap, outright_win),
        (lambda a, t: (a.home_score - a.away_score > t.handicap_home_gap
                       and a.expected_goals_home - a.expected_goals_away > t.handicap_home_xg_gap),
         fixed(Market.HANDICAP_HOME_MINUS_1_5)),
        (lambda a, t: a.score_gap > t.double_chance_gap, double_chance),
        (lambda a, t: a.score_gap < t.draw_gap and a.confidence > t.draw_confidence, fixed(Market.DRAW)),
        (lambda a, t: a.score_gap < t.handicap_away_gap and _home_stronger(a), fixed(Market.HANDICAP_AWAY_PLUS_1_5)),
    ],
}


def _first_match(
    rules: list[Rule],
    analysis: MatchAnalysis,
    thresholds: SelectorThresholds
) -> Optional[Market]:
    for condition, pick in rules:
        if condition(analysis, thresholds):
            return pick(analysis)
    return None


def parse_profile(value: Optional[str]) -> Optional[RiskProfile]:
    """Convert a profile hint string to a RiskProfile; unknown hints are ignored."""
    if not value:
        return None
    try:
        return RiskProfile(value.strip().lower())
    except ValueError:
        logger.warning(f"Unknown risk profile '{value}', using the generic waterfall")
        return None


def select_market(
    analysis: MatchAnalysis,
    profile: Optional[RiskProfile] = None,
    thresholds: SelectorThresholds = DEFAULT_THRESHOLDS
) -> Market:
    """
    Choose the market for an analyzed fixture.

    A profile hint tries its own rule list first; when none of its rules
    fire (or no hint is given) the generic waterfall decides. The result is
    always a Market member; Market.NO_PICK when nothing qualifies.

    Args:
        analysis: Scored fixture
        profile: Optional risk-profile hint
        thresholds: Rule thresholds (default: DEFAULT_THRESHOLDS)

    Returns:
        Selected Market
    """
    if profile is not None:
        market = _first_match(PROFILE_RULES[profile], analysis, thresholds)
        if market is not None:
            return market
        logger.debug(f"No {profile.value} rule fired, falling back to generic waterfall")

    market = _first_match(GENERIC_RULES, analysis, thresholds)
    return market if market is not None else Market.NO_PICK


def apply_confidence_bonus(
    market: Market,
    confidence: int,
    thresholds: SelectorThresholds = DEFAULT_THRESHOLDS
) -> int:
    """
    Nudge the confidence of the safest markets and clamp it to the publishable range.

    Returns:
        Final confidence between thresholds.min_confidence and thresholds.max_confidence
    """
    label = market.value
    t = thresholds

    if "0.5 Goals" in label or "Win or Draw" in label:
        confidence = min(t.safe_market_cap, confidence + t.safe_market_bonus)
    elif "Under 3.5" in label or "Over 1.5" in label:
        confidence = min(t.steady_market_cap, confidence + t.steady_market_bonus)

    return int(clamp(confidence, t.min_confidence, t.max_confidence))
