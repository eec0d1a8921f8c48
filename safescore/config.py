"""
Configuration management for the SafeScore prediction pipeline.

This module handles all configuration loading from environment variables
and provides type-safe access to configuration values throughout the application.
"""

import os
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


def _split_list(value: str) -> list[str]:
    """Split a comma separated environment value into trimmed items."""
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """
    Centralized configuration class for the prediction pipeline.

    All configuration values are loaded from environment variables with
    sensible defaults where appropriate. The football-data.org key must be
    provided via environment variables.
    """

    # API Keys
    FOOTBALL_DATA_API_KEY: Optional[str] = os.getenv("FOOTBALL_DATA_API_KEY")

    # External sources
    FOOTBALL_DATA_API_URL: str = os.getenv(
        "FOOTBALL_DATA_API_URL",
        "https://api.football-data.org/v4"
    )
    RESULTS_BASE_URL: str = os.getenv(
        "RESULTS_BASE_URL",
        "https://www.bbc.com/sport/football/scores-fixtures"
    )

    # Request Timeouts (seconds)
    FIXTURES_TIMEOUT: float = float(os.getenv("FIXTURES_TIMEOUT", "15"))
    STANDINGS_TIMEOUT: float = float(os.getenv("STANDINGS_TIMEOUT", "5"))
    RESULTS_TIMEOUT: float = float(os.getenv("RESULTS_TIMEOUT", "10"))

    # Rate limiting (football-data.org free tier allows 10 requests/minute)
    FIXTURES_CALL_DELAY: float = float(os.getenv("FIXTURES_CALL_DELAY", "6.5"))
    STANDINGS_CALL_DELAY: float = float(os.getenv("STANDINGS_CALL_DELAY", "1.5"))
    MAX_FETCH_ATTEMPTS: int = int(os.getenv("MAX_FETCH_ATTEMPTS", "3"))

    # Cache Configuration (seconds)
    FIXTURES_CACHE_TTL: int = int(os.getenv("FIXTURES_CACHE_TTL", "300"))
    STANDINGS_CACHE_TTL: int = int(os.getenv("STANDINGS_CACHE_TTL", "3600"))
    CACHE_DIR: Optional[Path] = Path(os.environ["CACHE_DIR"]) if os.getenv("CACHE_DIR") else None

    # Prediction defaults
    DEFAULT_LEAGUES: list[str] = _split_list(
        os.getenv("DEFAULT_LEAGUES", "Premier League,La Liga,Bundesliga,Serie A,Ligue 1")
    )

    # Database Configuration
    DB_PATH: Path = Path(os.getenv("DB_PATH", "data/safescore.db"))
    HISTORY_RETENTION_DAYS: int = int(os.getenv("HISTORY_RETENTION_DAYS", "30"))

    # Report Configuration
    REPORT_OUTPUT_DIR: Path = Path(os.getenv("REPORT_OUTPUT_DIR", "reports"))

    # Scheduler Configuration
    SETTLE_INTERVAL_HOURS: int = int(os.getenv("SETTLE_INTERVAL_HOURS", "3"))
    WARM_INTERVAL_HOURS: int = int(os.getenv("WARM_INTERVAL_HOURS", "12"))
    REPORT_TIMEZONE: str = os.getenv("REPORT_TIMEZONE", "UTC")

    # Telegram Configuration (optional)
    TELEGRAM_BOT_TOKEN: Optional[str] = os.getenv("TELEGRAM_BOT_TOKEN")
    TELEGRAM_CHAT_ID: Optional[str] = os.getenv("TELEGRAM_CHAT_ID")
    TELEGRAM_TIMEOUT: int = int(os.getenv("TELEGRAM_TIMEOUT", "30"))

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: Optional[Path] = Path(os.getenv("LOG_FILE", "logs/safescore.log")) if os.getenv("LOG_FILE") else None

    @classmethod
    def validate(cls, require_api_key: bool = True) -> tuple[bool, list[str]]:
        """
        Validate that all required configuration values are present.

        Args:
            require_api_key: Whether the football-data.org key is needed for
                the command being run (settling from the results page is not)

        Returns:
            tuple: (is_valid, list_of_errors)
        """
        errors: list[str] = []

        if require_api_key and not cls.FOOTBALL_DATA_API_KEY:
            errors.append("FOOTBALL_DATA_API_KEY is required but not set")

        # Validate numeric ranges
        if cls.MAX_FETCH_ATTEMPTS < 1:
            errors.append("MAX_FETCH_ATTEMPTS must be at least 1")

        if cls.FIXTURES_CALL_DELAY < 0 or cls.STANDINGS_CALL_DELAY < 0:
            errors.append("Call delays cannot be negative")

        if cls.FIXTURES_TIMEOUT <= 0 or cls.STANDINGS_TIMEOUT <= 0 or cls.RESULTS_TIMEOUT <= 0:
            errors.append("Request timeouts must be positive")

        if cls.FIXTURES_CACHE_TTL < 0 or cls.STANDINGS_CACHE_TTL < 0:
            errors.append("Cache TTLs cannot be negative")

        if cls.HISTORY_RETENTION_DAYS < 1:
            errors.append("HISTORY_RETENTION_DAYS must be at least 1")

        if cls.SETTLE_INTERVAL_HOURS < 1 or cls.WARM_INTERVAL_HOURS < 1:
            errors.append("Scheduler intervals must be at least 1 hour")

        return (len(errors) == 0, errors)

    @classmethod
    def ensure_directories(cls) -> None:
        """
        Ensure all required directories exist.

        Creates directories for database, cache, reports, and logs if they don't exist.
        """
        cls.DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        cls.REPORT_OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        if cls.CACHE_DIR:
            cls.CACHE_DIR.mkdir(parents=True, exist_ok=True)
        if cls.LOG_FILE:
            cls.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
