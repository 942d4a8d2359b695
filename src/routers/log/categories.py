# ── src/routers/log/categories.py ─────────────────────────────────────
"""
Category-keyed loggers.

Each category gets its own `logging.Logger` (built on first use) with:
- a console handler,
- a size-capped rotating file of JSON lines   <log_dir>/<category>/<category>.log
- a second rotating file with ERROR and above <log_dir>/<category>/<category>-error.log

`enable_store_sink(store)` additionally copies every record into the Cosmos
container `logs_<category>`; it stays off unless called.

Dispatch goes through one mapping (category → logger); callers pass the
category as data instead of picking a per-category method.
"""
from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from enum import Enum
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from azure.core.exceptions import AzureError
from pydantic import BaseModel, Field

from storage import CosmosStore

_logger = logging.getLogger(__name__)

MAX_BYTES    = 10 * 1024 * 1024     # per file
BACKUP_COUNT = 30

LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info":  logging.INFO,
    "warn":  logging.WARNING,
    "error": logging.ERROR,
}
_LEVEL_NAMES = {v: k for k, v in LEVELS.items()}


class LogCategory(str, Enum):
    AUTH       = "auth"
    API        = "api"
    DATABASE   = "database"
    SECURITY   = "security"
    CLOUD      = "cloud"
    SYSTEM     = "system"
    USER       = "user"
    MICROPHONE = "microphone"


class LogData(BaseModel):
    message:   str             = Field(..., description="Free-text log body")
    user_id:   Optional[str]   = None
    action:    Optional[str]   = None
    metadata:  Dict[str, Any]  = Field(default_factory=dict)


# ───────────────────────── record → dict ─────────────────────────

def record_to_dict(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        "level":     _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
        "category":  getattr(record, "category", None),
        "message":   record.getMessage(),
        "user_id":   getattr(record, "user_id", None),
        "action":    getattr(record, "action", None),
        "metadata":  getattr(record, "metadata", None) or {},
    }


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record):
        return json.dumps(record_to_dict(record), default=str)


class CosmosLogHandler(logging.Handler):
    """Writes each record as its own document into a Cosmos container."""

    def __init__(self, container, level=logging.NOTSET):
        super().__init__(level)
        self.container = container

    def emit(self, record):
        try:
            doc = record_to_dict(record)
            doc["id"] = uuid.uuid4().hex
            self.container.create_item(body=doc)
        except Exception:
            self.handleError(record)


def _store_handler(store: CosmosStore, category: LogCategory) -> CosmosLogHandler:
    return CosmosLogHandler(store.ensure_container(f"logs_{category.value}"))


# ───────────────────────── registry ─────────────────────────

class CategoryLoggers:
    def __init__(self, log_dir: str = "logs", console: bool = True,
                 max_bytes: int = MAX_BYTES, backup_count: int = BACKUP_COUNT):
        self.log_dir = log_dir
        self.console = console
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self._loggers: Dict[LogCategory, logging.Logger] = {}
        self._store: Optional[CosmosStore] = None

    def _file_handler(self, path: str, level: int) -> RotatingFileHandler:
        handler = RotatingFileHandler(
            path, maxBytes=self.max_bytes, backupCount=self.backup_count, encoding="utf-8"
        )
        handler.setLevel(level)
        handler.setFormatter(JsonLineFormatter())
        return handler

    def _build(self, category: LogCategory) -> logging.Logger:
        name = category.value
        folder = os.path.join(self.log_dir, name)
        os.makedirs(folder, exist_ok=True)

        logger = logging.getLogger(f"daily_log.category.{name}")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        if self.console:
            console = logging.StreamHandler()
            console.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)s [%(category)s] %(message)s"
            ))
            logger.addHandler(console)

        logger.addHandler(self._file_handler(os.path.join(folder, f"{name}.log"), logging.DEBUG))
        logger.addHandler(self._file_handler(os.path.join(folder, f"{name}-error.log"), logging.ERROR))

        if self._store is not None:
            try:
                logger.addHandler(_store_handler(self._store, category))
            except AzureError:
                # this category keeps its console + file handlers, without the sink
                _logger.exception("Store sink for category %s unavailable", name)
        return logger

    def get(self, category) -> logging.Logger:
        category = LogCategory(category)
        if category not in self._loggers:
            self._loggers[category] = self._build(category)
        return self._loggers[category]

    def log(self, category, level: str, data: LogData) -> None:
        if level not in LEVELS:
            raise ValueError(f"Unsupported level: {level}")
        category = LogCategory(category)
        self.get(category).log(
            LEVELS[level],
            data.message,
            extra={
                "category": category.value,
                "user_id":  data.user_id,
                "action":   data.action,
                "metadata": dict(data.metadata),
            },
        )

    def enable_store_sink(self, store: CosmosStore) -> None:
        """Copy every category (existing and future loggers) into `logs_<category>`."""
        if self._store is not None:
            return
        handlers = {c: _store_handler(store, c) for c in self._loggers}
        self._store = store
        for category, handler in handlers.items():
            self._loggers[category].addHandler(handler)

    @property
    def store_sink_enabled(self) -> bool:
        return self._store is not None

    def close(self) -> None:
        for logger in self._loggers.values():
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
        self._loggers = {}
        self._store = None


__all__ = [
    "LogCategory", "LogData", "LEVELS", "CategoryLoggers",
    "CosmosLogHandler", "JsonLineFormatter", "record_to_dict",
]
