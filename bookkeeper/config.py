"""Application configuration utilities for the bookkeeper backend.

This module centralises environment-driven configuration so the rest of the
code base does not need to read environment variables directly.  Logging is
configured from here as well, once per process.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load any variables defined in a local .env file. The call is idempotent and
# inexpensive, so importing it at module import time keeps the API ergonomic.
load_dotenv()


@dataclass(frozen=True)
class AppConfig:
    """Strongly-typed container for runtime configuration.

    Attributes:
        project_root: Root directory of the project. Used to derive default
            paths so the app works out of the box after cloning the repo.
        database_file: Absolute path to the SQLite database file that holds
            every tenant's ledger.
        default_currency: Currency assigned to new companies that do not
            specify one.
        default_page_size: Page size used when a transaction listing does not
            ask for one.
        max_page_size: Upper bound accepted by the HTTP layer for page sizes.
        cors_origins: Origins allowed to call the API from a browser.
        log_level: Name of the root logging level.
    """

    project_root: Path
    database_file: Path
    default_currency: str
    default_page_size: int
    max_page_size: int
    cors_origins: tuple[str, ...]
    log_level: str


def load_config() -> AppConfig:
    """Create a new :class:`AppConfig` instance based on environment settings.

    Environment variables override the default values, allowing users to
    customise the runtime without touching the source code.
    """

    project_root = Path(__file__).resolve().parent.parent
    database_file = Path(
        getenv_with_default(
            "BOOKKEEPER_DB_FILE",
            project_root / "bookkeeper.db",
        )
    )
    default_currency = getenv_with_default("BOOKKEEPER_DEFAULT_CURRENCY", "SAR").upper()
    default_page_size = int(getenv_with_default("BOOKKEEPER_PAGE_SIZE", "10"))
    max_page_size = int(getenv_with_default("BOOKKEEPER_MAX_PAGE_SIZE", "100"))
    cors_origins = load_cors_origins()
    log_level = getenv_with_default("LOG_LEVEL", "INFO").upper()

    # Ensure the directories exist so later code can safely create files.
    database_file.parent.mkdir(parents=True, exist_ok=True)

    return AppConfig(
        project_root=project_root,
        database_file=database_file,
        default_currency=default_currency,
        default_page_size=default_page_size,
        max_page_size=max_page_size,
        cors_origins=cors_origins,
        log_level=log_level,
    )


def load_cors_origins() -> tuple[str, ...]:
    """Return the browser origins allowed to call the API.

    Reads only the environment, so it is safe to call at import time.
    """

    return tuple(
        origin.strip()
        for origin in getenv_with_default("BOOKKEEPER_CORS_ORIGINS", "*").split(",")
        if origin.strip()
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a console handler on the root logger.

    Unknown level names fall back to ``INFO`` rather than failing start-up.
    """

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def getenv_with_default(name: str, default: Optional[Path | str] = None) -> Optional[str]:
    """Return the value of an environment variable or a sensible default.

    ``None`` values are propagated so callers can make explicit decisions about
    optional configuration values. Paths are converted to strings, keeping the
    return type uniform and easy to serialise.
    """

    from os import getenv

    value = getenv(name)
    if value is not None:
        return value
    if default is None:
        return None
    return str(default)
