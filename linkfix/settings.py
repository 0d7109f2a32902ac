"""Environment-backed defaults and ``.env`` loading.

Values are read at call time rather than import time so that late
``.env`` loading and test monkeypatching both work.

Environment Variables:
    LINKFIX_MAX_PAGES: Maximum pages to crawl (default: 100)
    LINKFIX_TIMEOUT: Per-request timeout in seconds (default: 15)
    LINKFIX_CONCURRENCY: Concurrent link checks (default: 5)
    LINKFIX_MIN_CONFIDENCE: Fix threshold used by the CLI (default: 0.5)
    LINKFIX_USER_AGENT: User agent for HTTP checks and the browser
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv

from . import __version__

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "linkfix"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"

DEFAULT_MAX_PAGES = 100
DEFAULT_TIMEOUT = 15.0
DEFAULT_CONCURRENCY = 5
DEFAULT_MIN_CONFIDENCE = 0.5
DEFAULT_USER_AGENT = f"linkfix/{__version__} (link-checker)"


def load_config(
    *,
    cwd: Optional[Path] = None,
    config_env_file: Path = CONFIG_ENV_FILE,
    load_env: Callable[[Path], bool] = load_dotenv,
) -> Optional[Path]:
    """Load ``.env`` from the working directory, else the user config dir.

    Returns the file that was loaded, or None when neither exists.
    """
    local_env = (cwd or Path.cwd()) / ".env"
    if local_env.is_file():
        load_env(local_env)
        return local_env

    if config_env_file.is_file():
        load_env(config_env_file)
        return config_env_file

    return None


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        LOGGER.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def max_pages() -> int:
    return _env_number("LINKFIX_MAX_PAGES", DEFAULT_MAX_PAGES, int)


def timeout() -> float:
    return _env_number("LINKFIX_TIMEOUT", DEFAULT_TIMEOUT, float)


def concurrency() -> int:
    return _env_number("LINKFIX_CONCURRENCY", DEFAULT_CONCURRENCY, int)


def min_confidence() -> float:
    return _env_number("LINKFIX_MIN_CONFIDENCE", DEFAULT_MIN_CONFIDENCE, float)


def user_agent() -> str:
    return os.getenv("LINKFIX_USER_AGENT") or DEFAULT_USER_AGENT
