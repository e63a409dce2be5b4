"""Application settings — all configuration loaded from environment variables.

Usage:
    from config.settings import Settings
    settings = Settings()
    settings.validate()   # raises ConfigurationError if TRACKBACK_SITE is missing
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from radar.errors import ConfigurationError

DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "radar.db"


@dataclass
class Settings:
    """Centralised application configuration.

    All values are read from environment variables at instantiation time
    so that tests can override them by patching ``os.environ``.
    """

    # ── Trackback loader ────────────────────────────────────────────────────
    site: str = field(
        default_factory=lambda: os.environ.get("TRACKBACK_SITE", "")
    )
    per_page: int = field(
        default_factory=lambda: int(os.environ.get("TRACKBACK_PER_PAGE", "10"))
    )

    # ── Search backend ──────────────────────────────────────────────────────
    topsy_api_url: str = field(
        default_factory=lambda: os.environ.get(
            "TOPSY_API_URL", "http://otter.topsy.com/search.json"
        )
    )
    topsy_api_key: str = field(
        default_factory=lambda: os.environ.get("TOPSY_API_KEY", "")
    )

    # ── HTTP ────────────────────────────────────────────────────────────────
    http_timeout: float = field(
        default_factory=lambda: float(os.environ.get("HTTP_TIMEOUT", "15"))
    )
    http_max_retries: int = field(
        default_factory=lambda: int(os.environ.get("HTTP_MAX_RETRIES", "3"))
    )

    # ── Storage ─────────────────────────────────────────────────────────────
    db_path: Path = field(
        default_factory=lambda: Path(os.environ.get("DB_PATH") or DEFAULT_DB_PATH)
    )

    # ── Flask ───────────────────────────────────────────────────────────────
    debug: bool = field(
        default_factory=lambda: os.environ.get("FLASK_DEBUG", "0") == "1"
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("PORT", "5001"))
    )

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if any required setting is missing."""
        if not self.site:
            raise ConfigurationError(
                "TRACKBACK_SITE environment variable is not set. "
                "Copy .env.example to .env and set the site to track."
            )
        if self.per_page <= 0:
            raise ConfigurationError("TRACKBACK_PER_PAGE must be a positive integer.")
