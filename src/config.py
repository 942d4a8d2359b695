# src/config.py
"""
Runtime configuration, read once from the environment.

Environment (all optional):
- COSMOS_CONNECTION_STRING: full Cosmos connection string (wins over the rest)
- COSMOS_ENDPOINT / COSMOS_KEY: endpoint + key; no key → DefaultAzureCredential
- COSMOS_DATABASE:          database name            (default "daily_logs_test")
- DAILY_LOG_CONTAINER:      daily-log container name (default "daily_logs")
- DAILY_LOG_TIMEZONE:       IANA zone defining "today" (default "UTC")
- LOG_DIR:                  root of the per-category log files (default "logs")
- LOG_STORE_SINK:           "1" to copy category logs into Cosmos at startup
- STRESS_TEST_BATCH_SIZE:   entries per bulk call in the write comparison
- STRESS_TEST_DATE:         date bucket used by the write comparison
                            (default 1970-01-01, never a real day)
- FRONTEND_ORIGIN:          comma/space-separated CORS origins

Public API:
- Settings
- load_settings() -> Settings
- parse_origins(env_value) -> list[str]
"""

from __future__ import annotations

import logging
import os as _os
import re
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_logger = logging.getLogger(__name__)

# stress writes stay out of the real daily buckets unless STRESS_TEST_DATE says otherwise
DEFAULT_STRESS_TEST_DATE = "1970-01-01"


# ───────────────────────── env helpers ─────────────────────────

_BOOL_WORDS = {
    "1": True, "true": True, "yes": True, "on": True,
    "0": False, "false": False, "no": False, "off": False,
}


def _env_bool(name: str, default: bool = False) -> bool:
    return _BOOL_WORDS.get(_env_str(name).lower(), default)


def _env_str(name: str, default: str = "") -> str:
    return (_os.getenv(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        _logger.warning("%s=%r is not an integer – using %s", name, raw, default)
        return default


def parse_origins(env_value: str) -> list[str]:
    """Origins from a comma/space-separated value, first occurrence wins, no trailing "/"."""
    cleaned = (o.rstrip("/") for o in re.split(r"[,\s]+", env_value or ""))
    return list(dict.fromkeys(o for o in cleaned if o))


# ───────────────────────── settings ─────────────────────────

@dataclass(frozen=True)
class Settings:
    cosmos_connection_string: str = ""
    cosmos_endpoint:          str = ""
    cosmos_key:               str = ""
    cosmos_database:          str = "daily_logs_test"
    daily_log_container:      str = "daily_logs"
    daily_log_timezone:       str = "UTC"
    log_dir:                  str = "logs"
    log_store_sink:           bool = False
    stress_test_batch_size:   int = 500
    stress_test_date:         str = DEFAULT_STRESS_TEST_DATE
    frontend_origins:         Tuple[str, ...] = field(default_factory=tuple)

    def zone(self) -> tzinfo:
        """Timezone used to decide which date bucket "today" is."""
        if self.daily_log_timezone.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(self.daily_log_timezone)
        except ZoneInfoNotFoundError:
            _logger.warning("tzdata %r missing – fallback UTC", self.daily_log_timezone)
            return timezone.utc


def load_settings() -> Settings:
    return Settings(
        cosmos_connection_string=_env_str("COSMOS_CONNECTION_STRING"),
        cosmos_endpoint=_env_str("COSMOS_ENDPOINT"),
        cosmos_key=_env_str("COSMOS_KEY"),
        cosmos_database=_env_str("COSMOS_DATABASE", "daily_logs_test"),
        daily_log_container=_env_str("DAILY_LOG_CONTAINER", "daily_logs"),
        daily_log_timezone=_env_str("DAILY_LOG_TIMEZONE", "UTC"),
        log_dir=_env_str("LOG_DIR", "logs"),
        log_store_sink=_env_bool("LOG_STORE_SINK", False),
        stress_test_batch_size=max(1, _env_int("STRESS_TEST_BATCH_SIZE", 500)),
        stress_test_date=_env_str("STRESS_TEST_DATE", DEFAULT_STRESS_TEST_DATE),
        frontend_origins=tuple(parse_origins(_env_str("FRONTEND_ORIGIN"))),
    )


__all__ = ["Settings", "load_settings", "parse_origins", "DEFAULT_STRESS_TEST_DATE"]
