"""Runtime settings read from the environment (and an optional ``.env``)."""
from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r; not an integer, using %s", name, raw, default)
        return default


DB_FILE = Path(os.getenv("CASHCAST_DB") or PACKAGE_DIR / "cashcast.db")
DEFAULT_USER = os.getenv("CASHCAST_USER", "default")
LOG_LEVEL = os.getenv("CASHCAST_LOG_LEVEL", "INFO").upper()
LOG_FILE = Path(os.getenv("CASHCAST_LOG_FILE") or PACKAGE_DIR / "cashcast.log")

# Recurring entries are materialized through Dec 31 of their start year plus this many years
RECURRING_EXTRA_YEARS = _int_env("CASHCAST_RECURRING_EXTRA_YEARS", 0)


def configure_logging(filename: Path | None = None, level: str | None = None) -> None:
    """Send log records to a file; the terminal belongs to the UI."""
    logging.basicConfig(
        filename=filename or LOG_FILE,
        level=getattr(logging, level or LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s: %(message)s",
    )
