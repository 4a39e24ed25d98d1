"""Centralised settings for the scrapejobs service.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Fetcher
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "SCRAPER_USER_AGENT",
            "Mozilla/5.0 (compatible; ScrapeJobs/1.0; +https://github.com/scrapejobs)",
        )
    )
    fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_TIMEOUT", "30.0"))
    )
    fetch_watch_interval: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_WATCH_INTERVAL", "0.05"))
    )

    # ------------------------------------------------------------------
    # Job execution
    # ------------------------------------------------------------------
    max_workers: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPER_MAX_WORKERS", "4"))
    )
    wait_poll_interval: float = field(
        default_factory=lambda: float(os.environ.get("WAIT_POLL_INTERVAL", "0.1"))
    )

    # ------------------------------------------------------------------
    # Submission rate limit
    # ------------------------------------------------------------------
    submit_rate_limit: str = field(
        default_factory=lambda: os.environ.get("SUBMIT_RATE_LIMIT", "1 per 5 seconds")
    )
    rate_limit_message: str = field(
        default_factory=lambda: os.environ.get(
            "RATE_LIMIT_MESSAGE",
            "Rate limit exceeded. Please wait 5 seconds between requests.",
        )
    )

    # ------------------------------------------------------------------
    # Job listing
    # ------------------------------------------------------------------
    default_page_size: int = field(
        default_factory=lambda: int(os.environ.get("DEFAULT_PAGE_SIZE", "10"))
    )
    max_page_size: int = field(
        default_factory=lambda: int(os.environ.get("MAX_PAGE_SIZE", "100"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )


def configure_logging(level: str | None = None) -> None:
    """Install a basic stderr handler at ``settings.log_level``.

    Safe to call more than once; ``logging.basicConfig`` is a no-op when the
    root logger already has handlers.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


# Module-level singleton — import this everywhere:
#   from scrapejobs.config import settings
settings = Settings()
