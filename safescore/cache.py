"""
Time-to-live cache shielding the football-data.org gateway from its rate limit.

Entries carry the time they were written; readers decide how old is too old
on every call, so the same key can be read under different freshness
requirements. Expired entries are evicted lazily on read. There is no size
bound: keys are (league, date range) combinations, which stay few.

An optional directory mirror keeps entries across process restarts, so a
warm-up run can pre-fill standings for later command invocations.
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

# Configure module logger
logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9_-]", re.IGNORECASE)


@dataclass
class CacheEntry:
    timestamp: float
    data: Any


class TTLCache:
    """
    In-memory key/value store with per-read expiry.

    Not synchronized: concurrent writers to one key are tolerated and the
    last write wins.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory for the JSON mirror. None keeps the cache in memory only.
            clock: Returns the current time in seconds, injectable for tests
        """
        self._store: dict[str, CacheEntry] = {}
        self._clock = clock
        self.cache_dir = cache_dir

        if self.cache_dir:
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Could not create cache directory {self.cache_dir}: {e}")
                self.cache_dir = None

    def get(self, key: str, max_age: float) -> Optional[Any]:
        """
        Return the cached value for key if it is younger than max_age.

        An entry whose age reaches max_age is treated as absent and evicted,
        so get(key, 0) never returns a value.

        Args:
            key: Cache key
            max_age: Maximum acceptable age in seconds

        Returns:
            Cached value, or None if missing or expired
        """
        now = self._clock()

        entry = self._store.get(key)
        if entry is not None:
            if now - entry.timestamp >= max_age:
                del self._store[key]
            else:
                return entry.data

        if self.cache_dir:
            return self._read_disk(key, max_age, now)

        return None

    def set(self, key: str, data: Any) -> None:
        """Store data under key, stamped with the current time."""
        self._store[key] = CacheEntry(timestamp=self._clock(), data=data)

        if self.cache_dir:
            path = self._path_for(key)
            try:
                path.write_text(json.dumps(data), encoding="utf-8")
            except (OSError, TypeError, ValueError) as e:
                logger.warning(f"Error writing disk cache for {key}: {e}")

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

        if self.cache_dir:
            try:
                self._path_for(key).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Error deleting disk cache for {key}: {e}")

    def clear(self) -> None:
        """Drop every entry, including the directory mirror's files."""
        self._store.clear()

        if self.cache_dir:
            for path in self.cache_dir.glob("*.json"):
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    logger.warning(f"Error deleting disk cache file {path.name}: {e}")

    def size(self) -> int:
        """Number of entries resident in memory, expired ones included."""
        return len(self._store)

    def _path_for(self, key: str) -> Path:
        return self.cache_dir / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def _read_disk(self, key: str, max_age: float, now: float) -> Optional[Any]:
        path = self._path_for(key)
        if not path.exists():
            return None

        try:
            written_at = path.stat().st_mtime
            if now - written_at >= max_age:
                path.unlink(missing_ok=True)
                return None

            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Error reading disk cache for {key}: {e}")
            return None

        # Refill memory with the file's original timestamp
        self._store[key] = CacheEntry(timestamp=written_at, data=data)
        return data
