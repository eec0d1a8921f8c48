"""
Settlement run: pending history items -> results -> matcher -> verifier -> storage.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from safescore.matcher import find_match
from safescore.models import HistoryItem, MatchResult, SettlementResult
from safescore.predictor import extract_match_id
from safescore.results import ResultSource
from safescore.storage import HistoryStorage
from safescore.verifier import settle_item

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass
class SettlementSummary:
    """Outcome counts of one settlement run."""
    checked: int = 0
    won: int = 0
    lost: int = 0
    pending: int = 0
    unmatched: int = 0
    dates: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "checked": self.checked,
            "won": self.won,
            "lost": self.lost,
            "pending": self.pending,
            "unmatched": self.unmatched,
            "dates": list(self.dates),
        }


def settle_pending(
    storage: HistoryStorage,
    source: ResultSource,
    dates: Optional[list[str]] = None,
    user_id: Optional[str] = None
) -> SettlementSummary:
    """
    Settle every Pending item of the given dates.

    Items carrying a match id are looked up directly when the source
    supports it. The rest are matched by team names against the date's
    results, fetched at most once per date. Items already settled are left
    as they are. An item with no matching result stays Pending.

    Args:
        storage: History repository
        source: Result feed
        dates: Dates to process (default: every date with pending items)
        user_id: Owner of the records

    Returns:
        SettlementSummary with counts over the processed items
    """
    summary = SettlementSummary()

    if dates is None:
        dates = sorted({date for date, _ in storage.get_pending_items(user_id)})

    if not dates:
        logger.info("No pending predictions to settle")
        return summary

    logger.info(f"Settling pending predictions for {len(dates)} date(s) using {source.name}")

    for date in dates:
        record = storage.load_record(date, user_id)
        pending_indexes = [
            idx for idx, item in enumerate(record.items)
            if item.result == SettlementResult.PENDING
        ]
        if not pending_indexes:
            logger.debug(f"Nothing pending for {date}")
            continue

        # Fetched on first use, at most once per date
        results: Optional[list[MatchResult]] = None

        items = list(record.items)
        for idx in pending_indexes:
            item = items[idx]
            summary.checked += 1

            match = _lookup_by_id(item, source)
            if match is None:
                if results is None:
                    results = source.fetch_results_for_date(date)
                    if not results:
                        logger.warning(f"No results available for {date}")
                match = find_match(item.home_team, item.away_team, results) if results else None

            if match is None:
                summary.unmatched += 1
                summary.pending += 1
                continue

            settled = settle_item(item, match, adopt_match_id=source.supports_id_lookup)
            items[idx] = settled

            if settled.result == SettlementResult.WON:
                summary.won += 1
            elif settled.result == SettlementResult.LOST:
                summary.lost += 1
            else:
                summary.pending += 1

            logger.info(
                f"{item.home_team} vs {item.away_team} [{item.prediction}]: "
                f"{settled.result.value} ({settled.score})"
            )

        record.items = items
        if storage.save_record(record):
            summary.dates.append(date)
        else:
            logger.error(f"Could not save settled record for {date}")

    logger.info(
        f"Settlement complete: {summary.checked} checked, {summary.won} won, "
        f"{summary.lost} lost, {summary.pending} still pending"
    )
    return summary


def _lookup_by_id(item: HistoryItem, source: ResultSource) -> Optional[MatchResult]:
    """Fetch the item's match directly when it carries an id the source understands."""
    if not source.supports_id_lookup:
        return None

    match_id = item.match_id or extract_match_id(item.id)
    if not match_id:
        return None

    return source.fetch_result_by_id(match_id)
