# ── src/routers/daily_log/models.py ───────────────────────────────────
"""
Document and result shapes for the daily-log containers.

Stored document (one per calendar date, partition key `/date`):

    {
        "id":         "2025-10-01",      # == date
        "date":       "2025-10-01",
        "logs":       [LogEntry, …],     # append-only, insertion order
        "log_count":  <len(logs)>,
        "created_at": <UTC ISO>,
        "updated_at": <UTC ISO>
    }
"""
from __future__ import annotations

from datetime import date as _date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

LogLevel = Literal["info", "warn", "error", "debug"]
LOG_LEVELS: tuple = ("info", "warn", "error", "debug")


def validate_date(value: str) -> str:
    """Return `value` when it is a YYYY-MM-DD calendar date, else raise ValueError."""
    try:
        return _date.fromisoformat(value).isoformat()
    except (TypeError, ValueError) as exc:
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}") from exc


def _optional_date(value: Optional[str]) -> Optional[str]:
    return validate_date(value) if value else None


# ── entries -----------------------------------------------------------
class NewLogEntry(BaseModel):
    level:     LogLevel             = Field(..., description="info | warn | error | debug")
    message:   str                  = Field(..., description="Free-text log body")
    metadata:  Dict[str, Any]       = Field(default_factory=dict)
    source:    Optional[str]        = Field(None, description="Emitting component (optional)")
    category:  Optional[str]        = Field(None, description="Coarse classification (optional)")

    def stamp(self, timestamp: str) -> "LogEntry":
        return LogEntry(**self.model_dump(), timestamp=timestamp)


class LogEntry(NewLogEntry):
    model_config = ConfigDict(frozen=True)

    timestamp: str


# ── containers --------------------------------------------------------
class DailyLogContainer(BaseModel):
    id:          str
    date:        str
    logs:        List[LogEntry] = Field(default_factory=list)
    log_count:   int            = 0
    created_at:  Optional[str]  = None
    updated_at:  Optional[str]  = None


class DailyLogStats(BaseModel):
    date:          str
    total_logs:    int
    level_counts:  Dict[str, int]
    categories:    Dict[str, int]


# ── operation results -------------------------------------------------
class AddLogResult(BaseModel):
    success:            bool
    container_created:  bool
    date:               str
    error:              Optional[str] = None


class AddLogsResult(BaseModel):
    success:            bool
    added_count:        int
    date:               str
    container_created:  bool
    error:              Optional[str] = None


class EnsureContainerResult(BaseModel):
    exists:   bool
    created:  bool
    date:     str
    error:    Optional[str] = None


# ── search ------------------------------------------------------------
class LogSearchQuery(BaseModel):
    start_date:  Optional[str]       = Field(None, description="Inclusive, YYYY-MM-DD")
    end_date:    Optional[str]       = Field(None, description="Inclusive, YYYY-MM-DD")
    level:       Optional[LogLevel]  = None
    category:    Optional[str]       = None
    message:     Optional[str]       = Field(None, description="Case-insensitive substring")
    skip:        int                 = Field(0, ge=0)
    limit:       Optional[int]       = Field(None, ge=1)

    @field_validator("start_date", "end_date")
    @classmethod
    def check_dates(cls, value: Optional[str]) -> Optional[str]:
        return _optional_date(value)


class LogSearchResult(BaseModel):
    logs:         List[LogEntry]           = Field(default_factory=list)
    total_count:  int                      = 0
    containers:   List[DailyLogContainer]  = Field(default_factory=list)


__all__ = [
    "LogLevel", "LOG_LEVELS", "validate_date",
    "NewLogEntry", "LogEntry", "DailyLogContainer", "DailyLogStats",
    "AddLogResult", "AddLogsResult", "EnsureContainerResult",
    "LogSearchQuery", "LogSearchResult",
]
