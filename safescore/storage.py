"""
Storage module for persisting daily prediction history.

This module provides a repository interface over SQLite. Each row holds the
DailyRecord for one (date, user) key with its items serialized as JSON.
Writes follow read -> merge -> upsert, and the merge step keeps at most one
item per (home team, away team) pair, so repeated runs converge.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from safescore.config import Config
from safescore.models import DailyRecord, HistoryItem, Prediction, SettlementResult
from safescore.utils import current_utc_timestamp, round_half_up

# Configure module logger
logger = logging.getLogger(__name__)

# Storage key for records saved without a user
ANONYMOUS_USER = ""


def merge_predictions(record: DailyRecord, predictions: list[Prediction]) -> DailyRecord:
    """
    Append predictions to a record, skipping team pairs it already holds.

    Duplicate pairs inside the incoming batch are also dropped (first wins).
    Pure: the input record is not modified.

    Args:
        record: Existing record for the date
        predictions: Incoming predictions

    Returns:
        New DailyRecord with existing items first, then the new ones
    """
    seen = {item.team_pair for item in record.items}
    items = list(record.items)

    for prediction in predictions:
        item = HistoryItem.from_prediction(prediction)
        if item.team_pair in seen:
            continue
        seen.add(item.team_pair)
        items.append(item)

    return DailyRecord(date=record.date, items=items, user_id=record.user_id)


class HistoryStorage:
    """
    Repository for daily prediction records.

    Handles table creation automatically. Connection errors on reads
    propagate; write helpers log and report failure through their return
    value.
    """

    def __init__(self, db_path: Optional[Path] = None, retention_days: Optional[int] = None):
        """
        Initialize storage with database path.

        Args:
            db_path: Path to SQLite database file. If None, uses Config.DB_PATH
            retention_days: Dates kept per user. If None, uses Config.HISTORY_RETENTION_DAYS
        """
        self.db_path = db_path or Config.DB_PATH
        self.retention_days = retention_days or Config.HISTORY_RETENTION_DAYS
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_database()

    @contextmanager
    def _get_connection(self):
        """
        Context manager for database connections.

        Commits on success, rolls back and re-raises on error.
        """
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _initialize_database(self) -> None:
        """Create database tables if they don't exist."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS daily_records (
                    date TEXT NOT NULL,
                    user_id TEXT NOT NULL DEFAULT '',
                    predictions TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (date, user_id)
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_daily_records_user
                ON daily_records(user_id, date)
            """)

            logger.info(f"Database initialized at {self.db_path}")

    # Record operations

    def load_record(self, date: str, user_id: Optional[str] = None) -> DailyRecord:
        """
        Load the record for a date.

        Returns:
            Stored DailyRecord, or an empty one when nothing is stored yet
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT predictions FROM daily_records
                WHERE date = ? AND user_id = ?
            """, (date, user_id or ANONYMOUS_USER))
            row = cursor.fetchone()

        if not row:
            return DailyRecord(date=date, user_id=user_id)

        return DailyRecord(date=date, items=self._decode_items(row["predictions"], date), user_id=user_id)

    def save_record(self, record: DailyRecord) -> bool:
        """
        Insert or replace a record.

        Returns:
            True if successful, False otherwise
        """
        try:
            now = current_utc_timestamp()
            user_key = record.user_id or ANONYMOUS_USER

            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT OR REPLACE INTO daily_records
                    (date, user_id, predictions, created_at, updated_at)
                    VALUES (?, ?, ?,
                            COALESCE((SELECT created_at FROM daily_records
                                      WHERE date = ? AND user_id = ?), ?),
                            ?)
                """, (
                    record.date,
                    user_key,
                    json.dumps([item.to_dict() for item in record.items]),
                    record.date,  # For COALESCE check
                    user_key,
                    now,  # Default created_at if new
                    now,  # updated_at
                ))

            logger.debug(f"Saved record for {record.date} ({len(record.items)} items)")
            return True

        except sqlite3.Error as e:
            logger.error(f"Error saving record for {record.date}: {e}", exc_info=True)
            return False

    def save_to_history(
        self,
        predictions: list[Prediction],
        date: str,
        user_id: Optional[str] = None
    ) -> bool:
        """
        Merge predictions into the record for a date and apply retention.

        Args:
            predictions: Predictions to persist
            date: Record date (YYYY-MM-DD)
            user_id: Optional owner of the record

        Returns:
            True if the record was saved
        """
        record = self.load_record(date, user_id)
        before = len(record.items)
        merged = merge_predictions(record, predictions)

        if not self.save_record(merged):
            return False

        logger.info(
            f"Saved {len(merged.items) - before} new predictions for {date} "
            f"({len(predictions) - (len(merged.items) - before)} duplicates skipped)"
        )
        self.apply_retention(user_id)
        return True

    def apply_retention(self, user_id: Optional[str] = None) -> int:
        """
        Delete all but the newest retention_days dates for a user.

        Returns:
            Number of records deleted
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    DELETE FROM daily_records
                    WHERE user_id = ? AND date NOT IN (
                        SELECT date FROM daily_records
                        WHERE user_id = ?
                        ORDER BY date DESC
                        LIMIT ?
                    )
                """, (user_id or ANONYMOUS_USER, user_id or ANONYMOUS_USER, self.retention_days))
                deleted = cursor.rowcount

            if deleted:
                logger.info(f"Retention removed {deleted} old records")
            return deleted

        except sqlite3.Error as e:
            logger.error(f"Error applying retention: {e}", exc_info=True)
            return 0

    # Queries

    def list_dates(self, user_id: Optional[str] = None) -> list[str]:
        """Stored dates for a user, newest first."""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT date FROM daily_records
                    WHERE user_id = ?
                    ORDER BY date DESC
                """, (user_id or ANONYMOUS_USER,))
                return [row["date"] for row in cursor.fetchall()]

        except sqlite3.Error as e:
            logger.error(f"Error listing record dates: {e}", exc_info=True)
            return []

    def get_pending_items(self, user_id: Optional[str] = None) -> list[tuple[str, HistoryItem]]:
        """
        All unsettled items with their record date, newest date first.

        Returns:
            List of (date, HistoryItem) tuples
        """
        pending: list[tuple[str, HistoryItem]] = []
        for date, items in self._all_items(user_id):
            pending.extend((date, item) for item in items if item.result == SettlementResult.PENDING)
        return pending

    def get_accuracy(self, user_id: Optional[str] = None) -> dict:
        """
        Settlement statistics over every stored record.

        Accuracy is the share of won items among those with a final verdict
        (Won or Lost), as a whole percentage.

        Returns:
            Dictionary with total, won, lost, pending, postponed and accuracy
        """
        counts = {result: 0 for result in SettlementResult}
        total = 0

        for _, items in self._all_items(user_id):
            for item in items:
                counts[item.result] += 1
                total += 1

        decided = total - counts[SettlementResult.PENDING] - counts[SettlementResult.POSTPONED]
        accuracy = round_half_up(counts[SettlementResult.WON] / decided * 100) if decided > 0 else 0

        return {
            "total": total,
            "won": counts[SettlementResult.WON],
            "lost": counts[SettlementResult.LOST],
            "pending": counts[SettlementResult.PENDING],
            "postponed": counts[SettlementResult.POSTPONED],
            "accuracy": accuracy,
        }

    def _all_items(self, user_id: Optional[str]) -> list[tuple[str, list[HistoryItem]]]:
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT date, predictions FROM daily_records
                    WHERE user_id = ?
                    ORDER BY date DESC
                """, (user_id or ANONYMOUS_USER,))
                rows = cursor.fetchall()

        except sqlite3.Error as e:
            logger.error(f"Error reading records: {e}", exc_info=True)
            return []

        return [(row["date"], self._decode_items(row["predictions"], row["date"])) for row in rows]

    def _decode_items(self, payload: str, date: str) -> list[HistoryItem]:
        """Convert a JSON column to HistoryItems, skipping malformed entries."""
        try:
            raw_items = json.loads(payload or "[]")
        except ValueError as e:
            logger.warning(f"Corrupt predictions column for {date}: {e}")
            return []

        if not isinstance(raw_items, list):
            logger.warning(f"Predictions column for {date} is not a list: {type(raw_items).__name__}")
            return []

        items: list[HistoryItem] = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping malformed history item for {date}: {raw!r}")
                continue
            items.append(HistoryItem.from_dict(raw))
        return items
