"""Collector configuration.

Reads the YouTube Data API key and request tunables from the environment,
falling back to a .env file in the working directory for the API key.

Environment variables:
    YOUTUBE_API_KEY: API key for the YouTube Data API v3 (required)
    YOUTUBE_API_BASE_URL: API root (default: https://www.googleapis.com/youtube/v3)
    YOUTUBE_PAGE_SIZE: comment threads per page, 1-100 (default: 100)
    YOUTUBE_REQUEST_TIMEOUT: per-request timeout in seconds (default: 30)
"""

import os
from pathlib import Path
from typing import Optional

from commentgraph.utils.errors import ConfigurationError


DEFAULT_API_BASE_URL = "https://www.googleapis.com/youtube/v3"

# The API caps maxResults at 100 for both commentThreads and comments
MAX_PAGE_SIZE = 100

# Effectively unbounded top-level budget per video
DEFAULT_MAX_COMMENTS = 10 ** 13


def _env_number(name: str, default, cast):
    """Read a numeric setting from the environment.

    Raises:
        ConfigurationError: If the variable is set to something cast rejects
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a {cast.__name__}, got {raw!r}") from None


API_BASE_URL = os.getenv("YOUTUBE_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/")
PAGE_SIZE = min(MAX_PAGE_SIZE, max(1, _env_number("YOUTUBE_PAGE_SIZE", MAX_PAGE_SIZE, int)))
REQUEST_TIMEOUT = _env_number("YOUTUBE_REQUEST_TIMEOUT", 30.0, float)


def _read_dotenv_value(key: str, env_path: Path) -> Optional[str]:
    """Return the value of key from a .env file, or None if absent."""
    if not env_path.exists():
        return None
    with open(env_path, "r") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            name, value = line.split("=", 1)
            if name.strip() == key:
                return value.strip().strip('"').strip("'")
    return None


def load_api_key(api_key: Optional[str] = None, env_path: Optional[Path] = None) -> str:
    """Resolve the YouTube Data API key.

    Lookup order: the explicit argument, the YOUTUBE_API_KEY environment
    variable, then YOUTUBE_API_KEY in a .env file (default: ./.env).

    Raises:
        ConfigurationError: If no non-empty key is found
    """
    key = (api_key or "").strip()
    if not key:
        key = os.environ.get("YOUTUBE_API_KEY", "").strip()
    if not key:
        key = (_read_dotenv_value("YOUTUBE_API_KEY", env_path or Path.cwd() / ".env") or "").strip()
    if not key:
        raise ConfigurationError(
            "Please provide a valid youtube api key "
            "(YOUTUBE_API_KEY not found in environment or .env file)."
        )
    return key
