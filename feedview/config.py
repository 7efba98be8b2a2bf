"""
feedview configuration. All environment variables in one place.

Read from environment at import time. Nothing here is required; every
value has a default suitable for local development.

API URL resolution order:
  1. FEED_API_URL environment variable
  2. --api-url command line flag (passed to resolve_api_url)
  3. The origin the view runs under (FEED_ORIGIN):
     a localhost origin talks to the development backend, any other
     origin is same-origin.
"""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import urlsplit

DEV_API_URL = "http://localhost:3000"
DEFAULT_ORIGIN = "http://localhost"


def _env_bool(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings from environment variables."""

    # Backend
    API_URL: str = os.environ.get("FEED_API_URL", "")
    ORIGIN: str = os.environ.get("FEED_ORIGIN", DEFAULT_ORIGIN)
    REQUEST_TIMEOUT_SECONDS: float = float(os.environ.get("FEED_REQUEST_TIMEOUT_SECONDS", "10"))

    # Feed
    PAGE_SIZE: int = int(os.environ.get("FEED_PAGE_SIZE", "20"))
    SEARCH_DEBOUNCE_MS: int = int(os.environ.get("FEED_SEARCH_DEBOUNCE_MS", "300"))

    # Push channel
    RECONNECT_ATTEMPTS: int = int(os.environ.get("FEED_RECONNECT_ATTEMPTS", "10"))
    RECONNECT_DELAY_SECONDS: float = float(os.environ.get("FEED_RECONNECT_DELAY_SECONDS", "1"))

    # Preferences
    PREFERENCES_PATH: Path = Path(
        os.environ.get("FEED_PREFERENCES_PATH", str(Path.home() / ".feedview" / "preferences.json"))
    )
    PREFERS_DARK: bool | None = _env_bool("FEED_PREFERS_DARK")

    # Application
    LOG_LEVEL: str = os.environ.get("FEED_LOG_LEVEL", "WARNING")

    @property
    def SEARCH_DEBOUNCE_SECONDS(self) -> float:
        return self.SEARCH_DEBOUNCE_MS / 1000


def resolve_api_url(api_url_override: str | None = None, origin: str | None = None) -> str:
    """
    Pick the backend base URL.

    Args:
        api_url_override: Optional --api-url flag value
        origin: Origin the view is served from (defaults to settings.ORIGIN)

    Returns:
        Base URL without a trailing slash.
    """
    env_url = os.environ.get("FEED_API_URL")
    if env_url:
        return env_url.rstrip("/")

    if api_url_override:
        return api_url_override.rstrip("/")

    origin = origin or settings.ORIGIN
    parts = urlsplit(origin if "://" in origin else f"https://{origin}")
    if parts.hostname == "localhost":
        return DEV_API_URL

    # Same-origin: the endpoints live next to the page
    return f"{parts.scheme}://{parts.netloc}"


def prefers_dark_scheme() -> bool:
    """
    Ambient dark-mode preference of the platform.

    FEED_PREFERS_DARK wins when set. Otherwise the terminal's COLORFGBG
    hint is consulted ("fg;bg", background 0-6 or 8 is dark). Unknown
    platforms default to dark.
    """
    if settings.PREFERS_DARK is not None:
        return settings.PREFERS_DARK

    colorfgbg = os.environ.get("COLORFGBG", "")
    if colorfgbg:
        background = colorfgbg.rsplit(";", 1)[-1]
        if background.isdigit():
            return int(background) in (0, 1, 2, 3, 4, 5, 6, 8)

    return True


# Singleton instance
settings = Settings()
