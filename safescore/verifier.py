"""
Settlement of predictions against final scores.

verify() is a pure function over the closed Market enumeration. Each market
has exactly one evaluator in MARKET_EVALUATORS, and the table is checked for
completeness when this module is imported, so adding a Market without an
evaluator fails loudly instead of settling silently.
"""

import logging
from typing import Callable, Optional, Union

from safescore.models import HistoryItem, Market, MatchResult, MatchStatus, SettlementResult

# Configure module logger
logger = logging.getLogger(__name__)

Won = SettlementResult.WON
Lost = SettlementResult.LOST
Pending = SettlementResult.PENDING

Evaluator = Callable[[int, int, Optional[int], Optional[int]], SettlementResult]


def _outcome(condition: bool) -> SettlementResult:
    return Won if condition else Lost


def _needs_half_time(evaluate: Callable[[int, int, int, int], bool]) -> Evaluator:
    """Wrap a half-dependent check so it stays Pending without half-time data."""
    def evaluator(home: int, away: int, home_ht: Optional[int], away_ht: Optional[int]) -> SettlementResult:
        if home_ht is None or away_ht is None:
            return Pending
        return _outcome(evaluate(home, away, home_ht, away_ht))
    return evaluator


def _full_time(evaluate: Callable[[int, int], bool]) -> Evaluator:
    return lambda home, away, home_ht, away_ht: _outcome(evaluate(home, away))


def _first_half_goals(home_ht: int, away_ht: int) -> int:
    return home_ht + away_ht


def _second_half_goals(home: int, away: int, home_ht: int, away_ht: int) -> int:
    return (home - home_ht) + (away - away_ht)


MARKET_EVALUATORS: dict[Market, Evaluator] = {
    # 1X2
    Market.HOME_WIN: _full_time(lambda h, a: h > a),
    Market.AWAY_WIN: _full_time(lambda h, a: a > h),
    Market.DRAW: _full_time(lambda h, a: h == a),

    # Double chance
    Market.HOME_WIN_OR_DRAW: _full_time(lambda h, a: h >= a),
    Market.AWAY_WIN_OR_DRAW: _full_time(lambda h, a: a >= h),

    # Goal totals
    Market.OVER_0_5: _full_time(lambda h, a: h + a > 0.5),
    Market.OVER_1_5: _full_time(lambda h, a: h + a > 1.5),
    Market.OVER_2_5: _full_time(lambda h, a: h + a > 2.5),
    Market.UNDER_1_5: _full_time(lambda h, a: h + a < 1.5),
    Market.UNDER_2_5: _full_time(lambda h, a: h + a < 2.5),
    Market.UNDER_3_5: _full_time(lambda h, a: h + a < 3.5),

    # Both teams to score
    Market.BTTS_YES: _full_time(lambda h, a: h > 0 and a > 0),
    Market.BTTS_NO: _full_time(lambda h, a: h == 0 or a == 0),

    # Team to score
    Market.HOME_TO_SCORE: _full_time(lambda h, a: h > 0),
    Market.AWAY_TO_SCORE: _full_time(lambda h, a: a > 0),

    # Halves (strict comparison: an even split loses both ways)
    Market.HIGHEST_HALF_FIRST: _needs_half_time(
        lambda h, a, hh, ah: _first_half_goals(hh, ah) > _second_half_goals(h, a, hh, ah)
    ),
    Market.HIGHEST_HALF_SECOND: _needs_half_time(
        lambda h, a, hh, ah: _second_half_goals(h, a, hh, ah) > _first_half_goals(hh, ah)
    ),
    Market.HOME_SCORE_FIRST_HALF: _needs_half_time(lambda h, a, hh, ah: hh > 0),
    Market.AWAY_SCORE_SECOND_HALF: _needs_half_time(lambda h, a, hh, ah: a - ah > 0),

    # Handicaps
    Market.HANDICAP_HOME_MINUS_1_5: _full_time(lambda h, a: h - 1.5 > a),
    Market.HANDICAP_AWAY_PLUS_1_5: _full_time(lambda h, a: a + 1.5 > h),

    # A non-pick can never be won
    Market.NO_PICK: lambda home, away, home_ht, away_ht: Lost,
}

_missing = set(Market) - set(MARKET_EVALUATORS)
if _missing:
    raise RuntimeError(f"Markets without a settlement evaluator: {sorted(m.value for m in _missing)}")


def parse_market(value: Union[Market, str]) -> Optional[Market]:
    if isinstance(value, Market):
        return value
    try:
        return Market(value)
    except ValueError:
        return None


def verify(
    market: Union[Market, str],
    home_goals: int,
    away_goals: int,
    home_ht: Optional[int] = None,
    away_ht: Optional[int] = None
) -> SettlementResult:
    """
    Settle one market against a score.

    Args:
        market: Market member or its display string
        home_goals: Full-time home goals
        away_goals: Full-time away goals
        home_ht: Half-time home goals, if known
        away_ht: Half-time away goals, if known

    Returns:
        Won or Lost; Pending for half-dependent markets without half-time
        goals. A string that is not a known market settles as Lost.
    """
    parsed = parse_market(market)
    if parsed is None:
        logger.warning(f"Unknown market '{market}', settling as Lost")
        return Lost

    return MARKET_EVALUATORS[parsed](home_goals, away_goals, home_ht, away_ht)


def settle_item(item: HistoryItem, result: MatchResult, adopt_match_id: bool = True) -> HistoryItem:
    """
    Apply a match result to a history item.

    Only a FINISHED match produces a verdict. A match in play updates the
    displayed score but stays Pending. Anything else leaves the item Pending,
    stamped with the result's match id for the next run.

    The result must already be oriented like the prediction (see
    matcher.find_match).

    Args:
        item: Pending history item
        result: Result for the item's fixture
        adopt_match_id: Replace an existing match id with the result's. When
            False the result's id is only stored on items that have none.

    Returns:
        A new HistoryItem; the input is not modified
    """
    match_id = result.match_id if adopt_match_id or item.match_id is None else item.match_id
    in_play = result.status in (MatchStatus.IN_PLAY, MatchStatus.PAUSED)

    if result.status != MatchStatus.FINISHED and not in_play:
        return item.updated(result=Pending, match_id=match_id)

    if not result.has_full_time:
        return item.updated(result=Pending, match_id=match_id)

    if in_play:
        return item.updated(result=Pending, score=result.format_score(), match_id=match_id)

    verdict = verify(item.prediction, result.home_goals, result.away_goals, result.home_ht, result.away_ht)

    return item.updated(result=verdict, score=result.format_score(), match_id=match_id)
