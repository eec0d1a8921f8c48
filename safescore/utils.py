"""
Utility functions for the SafeScore prediction pipeline.

This module provides shared helper utilities used across the codebase.
All functions are pure helpers with no domain logic.
"""

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from requests.exceptions import HTTPError, RequestException

# Configure module logger
logger = logging.getLogger(__name__)

# Type variable for generic function typing
T = TypeVar('T')

RATE_LIMITED_STATUS = 429


def current_utc_timestamp() -> str:
    """
    Get current UTC timestamp as ISO 8601 string.

    Returns:
        ISO 8601 formatted timestamp string (e.g., "2024-01-15T10:30:45.123456+00:00")
    """
    return datetime.now(timezone.utc).isoformat()


def today_utc() -> str:
    """Current UTC date as YYYY-MM-DD."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def clamp(value: float, min_value: float, max_value: float) -> float:
    """
    Clamp a value between minimum and maximum bounds.

    Args:
        value: Value to clamp
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Clamped value between min_value and max_value

    Raises:
        ValueError: If min_value > max_value
    """
    if min_value > max_value:
        raise ValueError(f"min_value ({min_value}) must be <= max_value ({max_value})")

    return max(min_value, min(value, max_value))


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with halves rounded up.

    The built-in round() uses banker's rounding (round(62.5) == 62), which
    would shift published scores and confidences on exact halves.
    """
    return int(math.floor(value + 0.5))


def safe_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """
    Safely convert a value to int with a default fallback.

    Handles None, strings, integers, and floats. Returns default on failure.

    Args:
        value: Value to convert (string, int, float, or None)
        default: Default value if conversion fails (default: None)

    Returns:
        Integer value or default if conversion fails
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default

    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default

    return default


def stable_hash(text: str) -> int:
    """
    Deterministic non-negative 31-bit hash of a string.

    Python's hash() is salted per process, so it cannot be used for ids that
    must survive restarts. This is the classic ``h * 31 + c`` string hash on
    signed 32-bit integers, with the sign dropped.
    """
    h = 0
    for char in text:
        h = ((h << 5) - h + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def backoff_delay(attempt: int, rate_limited: bool, max_delay: float = 10.0) -> float:
    """
    Seconds to wait before the next attempt.

    Rate-limited (429) failures back off exponentially (1s, 2s, 4s, ...) up to
    max_delay; every other failure backs off linearly (2s, 4s, ...).

    Args:
        attempt: Number of the attempt that just failed (1-based)
        rate_limited: Whether the failure was an HTTP 429
        max_delay: Cap for the exponential branch

    Returns:
        Delay in seconds
    """
    if rate_limited:
        return min(1.0 * (2 ** (attempt - 1)), max_delay)
    return 2.0 * attempt


def is_rate_limited(error: Exception) -> bool:
    """True when the exception carries an HTTP 429 response."""
    response = getattr(error, "response", None)
    return isinstance(error, HTTPError) and response is not None and response.status_code == RATE_LIMITED_STATUS


def call_with_retries(
    func: Callable[[], T],
    label: str,
    max_attempts: int = 3,
    sleep: Callable[[float], None] = time.sleep,
    exceptions: tuple = (RequestException, ValueError)
) -> Optional[T]:
    """
    Call func until it succeeds or max_attempts is reached.

    Waits between attempts according to backoff_delay(). Exhausting all
    attempts is not an error: it is logged and None is returned, so that a
    batch of independent calls can carry on without the failed unit.

    Args:
        func: Zero-argument callable performing one attempt
        label: Human-readable name of the unit of work, for logs
        max_attempts: Maximum number of attempts (default: 3)
        sleep: Sleep function, injectable for tests
        exceptions: Tuple of exceptions to catch and retry on

    Returns:
        The value returned by func, or None if every attempt failed
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return func()

        except exceptions as e:
            rate_limited = is_rate_limited(e)

            if attempt < max_attempts:
                delay = backoff_delay(attempt, rate_limited)
                prefix = "[Rate Limited] " if rate_limited else ""
                logger.warning(
                    f"{prefix}{label} failed (attempt {attempt}/{max_attempts}): {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                sleep(delay)
            else:
                logger.error(f"{label} failed after {max_attempts} attempts: {e}. Skipping.")

    return None
