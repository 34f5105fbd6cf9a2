"""
Leg search configuration.

Settings are read from environment variables, with an optional .env file for
local development. Pass a SearchConfig to LegSearchService to override them.

Usage:
    from legsearch.config import settings

    print(settings.default_limit)
    print(settings.verbose)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def get_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


@dataclass
class SearchConfig:
    """Tunables for the leg search pipeline."""

    # Result sizes
    default_limit: int = field(default_factory=lambda: get_int("SEARCH_DEFAULT_LIMIT", 10))
    max_limit: int = field(default_factory=lambda: get_int("SEARCH_MAX_LIMIT", 50))

    # Over-fetch before in-memory filtering: max(limit * multiplier, min_fetch)
    min_fetch: int = field(default_factory=lambda: get_int("SEARCH_MIN_FETCH", 50))
    fetch_multiplier: int = field(default_factory=lambda: get_int("SEARCH_FETCH_MULTIPLIER", 3))

    # Row cap for the nested waypoint fallback
    raw_fetch_limit: int = field(default_factory=lambda: get_int("SEARCH_RAW_FETCH_LIMIT", 500))

    # Emit per-step debug logs from the search pipeline
    verbose: bool = field(default_factory=lambda: get_bool("SEARCH_VERBOSE", False))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.default_limit < 1:
            logging.warning(
                f"Search default limit {self.default_limit} must be positive, using 10"
            )
            self.default_limit = 10

        if self.max_limit < self.default_limit:
            logging.warning(
                f"Search max limit {self.max_limit} below default limit "
                f"{self.default_limit}, raising it"
            )
            self.max_limit = self.default_limit

        if self.fetch_multiplier < 1:
            logging.warning(
                f"Fetch multiplier {self.fetch_multiplier} must be at least 1, using 3"
            )
            self.fetch_multiplier = 3

        if self.min_fetch < 1:
            self.min_fetch = 50

        if self.raw_fetch_limit < 1:
            self.raw_fetch_limit = 500

    def fetch_limit(self, limit: int) -> int:
        """Rows to request from the store for a final result of ``limit`` rows."""
        return max(limit * self.fetch_multiplier, self.min_fetch)

    def configure_logging(self):
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format=self.log_format)


# Singleton instance
settings = SearchConfig()


def get_settings() -> SearchConfig:
    """Get the settings instance (useful for dependency injection)."""
    return settings
