"""
config.py
Settings from environment variables (a local .env file is honoured).

    MEMBERSHIP_DB_PATH              SQLite file (default: membership.db next to this file)
    MEMBERSHIP_EXPIRY_WARNING_DAYS  "expiring soon" window in days (default 7)
    MEMBERSHIP_BCRYPT_ROUNDS        bcrypt cost factor (default 12)
    MEMBERSHIP_LOG_LEVEL            logging level name (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from errors import InvalidInput

DEFAULT_DB_FILE = Path(__file__).with_name("membership.db")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    db_path: Path = DEFAULT_DB_FILE
    expiry_warning_days: int = 7
    bcrypt_rounds: int = 12
    log_level: str = "INFO"


def _int_env(name: str, default: int, minimum: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise InvalidInput(f"{name} must be >= {minimum}, got {value}")
    return value


def load_settings() -> Settings:
    load_dotenv()
    db_path = os.environ.get("MEMBERSHIP_DB_PATH") or DEFAULT_DB_FILE
    return Settings(
        db_path=Path(db_path),
        expiry_warning_days=_int_env("MEMBERSHIP_EXPIRY_WARNING_DAYS", 7, 0),
        # bcrypt refuses cost factors below 4
        bcrypt_rounds=_int_env("MEMBERSHIP_BCRYPT_ROUNDS", 12, 4),
        log_level=os.environ.get("MEMBERSHIP_LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def configure_logging(settings: Settings) -> None:
    # No-op once the root logger has handlers, so Streamlit reruns are safe
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
