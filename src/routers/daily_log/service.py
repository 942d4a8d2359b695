# ── src/routers/daily_log/service.py ──────────────────────────────────
"""
Daily-log containers on Cosmos DB.

One document per calendar date holds that day's entries. Writes never read
the document first:

* single entry  → `patch_item` (add /logs/-, incr /log_count, set /updated_at);
                  on 404 a `create_item` of the full document; on 409 (lost
                  the creation race) the patch again.
* many entries  → `create_item` of the full document; on 409 one
                  transactional batch of patches per BATCH_CAPACITY entries.

Cosmos applies each patch / batch atomically, so concurrent writers to the
same date never lose an append or an increment.

Storage failures are logged and turned into the operation's failure value
(`success=False`, None, [] …); `StoreNotConnectedError` propagates.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from azure.core.exceptions import AzureError
from azure.cosmos import exceptions

from storage import CosmosStore
from .models import (
    LOG_LEVELS,
    AddLogResult,
    AddLogsResult,
    DailyLogContainer,
    DailyLogStats,
    EnsureContainerResult,
    LogEntry,
    LogSearchQuery,
    LogSearchResult,
    NewLogEntry,
    validate_date,
)

_logger = logging.getLogger(__name__)

# ── Cosmos limits ---------------------------------------------------------
_MAX_PATCH_OPS     = 10                      # operations per patch
_ENTRIES_PER_PATCH = _MAX_PATCH_OPS - 2      # leaves room for incr + set
_MAX_BATCH_OPS     = 100                     # operations per transactional batch
BATCH_CAPACITY     = _ENTRIES_PER_PATCH * _MAX_BATCH_OPS

# ── Queries ---------------------------------------------------------------
_SEARCH_QUERY     = "SELECT VALUE l FROM c JOIN l IN c.logs"
_CONTAINERS_QUERY = "SELECT * FROM c"
_DATES_QUERY      = "SELECT DISTINCT VALUE c.date FROM c"
_KEYS_QUERY       = "SELECT c.id, c.date FROM c"


# ── Helpers ---------------------------------------------------------------
def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    # fixed width so that string order == time order
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _append_ops(entries: Sequence[dict], updated_at: str) -> List[dict]:
    ops: List[dict] = [{"op": "add", "path": "/logs/-", "value": e} for e in entries]
    ops.append({"op": "incr", "path": "/log_count", "value": len(entries)})
    ops.append({"op": "set",  "path": "/updated_at", "value": updated_at})
    return ops


def _chunks(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


def _date_range(start: Optional[str], end: Optional[str]) -> Tuple[List[str], List[dict]]:
    clauses: List[str] = []
    params:  List[dict] = []
    if start:
        clauses.append("c.date >= @start_date")
        params.append({"name": "@start_date", "value": start})
    if end:
        clauses.append("c.date <= @end_date")
        params.append({"name": "@end_date", "value": end})
    return clauses, params


def _where(query: str, clauses: List[str]) -> str:
    return f"{query} WHERE {' AND '.join(clauses)}" if clauses else query


def compute_stats(container: DailyLogContainer) -> DailyLogStats:
    """Tally a container's entries per level and per category."""
    level_counts: Dict[str, int] = {level: 0 for level in LOG_LEVELS}
    categories:   Dict[str, int] = {}

    for entry in container.logs:
        if entry.level in level_counts:
            level_counts[entry.level] += 1
        if entry.category:
            categories[entry.category] = categories.get(entry.category, 0) + 1

    return DailyLogStats(
        date=container.date,
        total_logs=container.log_count or len(container.logs),
        level_counts=level_counts,
        categories=categories,
    )


# ── Service ---------------------------------------------------------------
class DailyLogService:
    def __init__(
        self,
        store: CosmosStore,
        container_name: str = "daily_logs",
        zone: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._store = store
        self._container_name = container_name
        self._zone = zone
        self._clock = clock

    # ── internals ---------------------------------------------------------
    def _container(self):
        return self._store.container(self._container_name)

    def today(self) -> str:
        return self._clock().astimezone(self._zone).date().isoformat()

    def _resolve_date(self, value: Optional[str]) -> str:
        return validate_date(value) if value else self.today()

    def _now(self) -> str:
        return _iso(self._clock())

    @staticmethod
    def _new_document(date: str, entries: List[dict], now: str) -> dict:
        return {
            "id":         date,
            "date":       date,
            "logs":       entries,
            "log_count":  len(entries),
            "created_at": now,
            "updated_at": now,
        }

    @staticmethod
    def _create(container, document: dict) -> bool:
        """Insert branch of the upsert; False when the date already has a container."""
        try:
            container.create_item(body=document)
        except exceptions.CosmosResourceExistsError:
            return False
        _logger.info("Created daily container for %s", document["date"])
        return True

    @staticmethod
    def _append(container, date: str, entry: dict, now: str) -> None:
        container.patch_item(
            item=date,
            partition_key=date,
            patch_operations=_append_ops([entry], now),
        )

    @staticmethod
    def _append_batch(container, date: str, entries: Sequence[dict], now: str) -> None:
        operations = [
            ("patch", (date, _append_ops(part, now)))
            for part in _chunks(entries, _ENTRIES_PER_PATCH)
        ]
        container.execute_item_batch(batch_operations=operations, partition_key=date)

    # ── writes ------------------------------------------------------------
    def add_log(self, entry: NewLogEntry, target_date: Optional[str] = None) -> AddLogResult:
        date = self._resolve_date(target_date)
        container = self._container()
        now = self._now()
        document = entry.stamp(now).model_dump()

        try:
            try:
                self._append(container, date, document, now)
                created = False
            except exceptions.CosmosResourceNotFoundError:
                created = self._create(container, self._new_document(date, [document], now))
                if not created:
                    self._append(container, date, document, now)
        except AzureError as exc:
            _logger.exception("Adding log to daily container %s failed", date)
            return AddLogResult(success=False, container_created=False, date=date, error=str(exc))

        return AddLogResult(success=True, container_created=created, date=date)

    def add_logs(self, entries: Sequence[NewLogEntry], target_date: Optional[str] = None) -> AddLogsResult:
        date = self._resolve_date(target_date)
        if not entries:
            return AddLogsResult(success=True, added_count=0, date=date, container_created=False)

        container = self._container()
        now = self._now()
        documents = [e.stamp(now).model_dump() for e in entries]
        created, added = False, 0

        try:
            created = self._create(container, self._new_document(date, documents, now))
            if created:
                added = len(documents)
            else:
                for chunk in _chunks(documents, BATCH_CAPACITY):
                    self._append_batch(container, date, chunk, now)
                    added += len(chunk)
        except AzureError as exc:
            _logger.exception("Adding %s logs to daily container %s failed", len(documents), date)
            return AddLogsResult(
                success=False, added_count=added, date=date,
                container_created=created, error=str(exc),
            )

        return AddLogsResult(success=True, added_count=added, date=date, container_created=created)

    def ensure_container(self, date: Optional[str] = None) -> EnsureContainerResult:
        target = self._resolve_date(date)
        container = self._container()
        now = self._now()

        try:
            created = self._create(container, self._new_document(target, [], now))
        except AzureError as exc:
            _logger.exception("Ensuring daily container %s failed", target)
            return EnsureContainerResult(exists=False, created=False, date=target, error=str(exc))

        return EnsureContainerResult(exists=not created, created=created, date=target)

    # ── reads -------------------------------------------------------------
    def get_daily_logs(self, date: Optional[str] = None) -> Optional[DailyLogContainer]:
        target = self._resolve_date(date)
        container = self._container()
        try:
            item = container.read_item(item=target, partition_key=target)
        except exceptions.CosmosResourceNotFoundError:
            return None
        except AzureError:
            _logger.exception("Reading daily container %s failed", target)
            return None
        return DailyLogContainer.model_validate(item)

    def search_logs(self, query: LogSearchQuery) -> LogSearchResult:
        """
        Entries across the containers in [start_date, end_date], filtered by
        level / category / message substring, newest first, then skip/limit.
        """
        container = self._container()
        range_clauses, range_params = _date_range(query.start_date, query.end_date)

        clauses, params = list(range_clauses), list(range_params)
        if query.level:
            clauses.append("l.level = @level")
            params.append({"name": "@level", "value": query.level})
        if query.category:
            clauses.append("l.category = @category")
            params.append({"name": "@category", "value": query.category})
        if query.message:
            clauses.append("CONTAINS(l.message, @message, true)")
            params.append({"name": "@message", "value": query.message})

        try:
            rows = list(container.query_items(
                query=_where(_SEARCH_QUERY, clauses),
                parameters=params,
                enable_cross_partition_query=True,
            ))
            docs = list(container.query_items(
                query=_where(_CONTAINERS_QUERY, range_clauses),
                parameters=range_params,
                enable_cross_partition_query=True,
            ))
        except AzureError:
            _logger.exception("Searching daily logs failed")
            return LogSearchResult()

        # ORDER BY over a JOIN alias is not supported by Cosmos → sort here
        rows.sort(key=lambda r: r.get("timestamp") or "", reverse=True)
        stop = query.skip + query.limit if query.limit else None
        page = rows[query.skip:stop]

        docs.sort(key=lambda d: d.get("date") or "", reverse=True)
        return LogSearchResult(
            logs=[LogEntry.model_validate(r) for r in page],
            total_count=len(page),
            containers=[DailyLogContainer.model_validate(d) for d in docs],
        )

    def list_dates(self) -> List[str]:
        container = self._container()
        try:
            dates = list(container.query_items(query=_DATES_QUERY, enable_cross_partition_query=True))
        except AzureError:
            _logger.exception("Listing daily log dates failed")
            return []
        return sorted(dates, reverse=True)

    def get_daily_stats(self, date: Optional[str] = None) -> Optional[DailyLogStats]:
        found = self.get_daily_logs(date)
        if found is None:
            return None
        return compute_stats(found)

    # ── admin -------------------------------------------------------------
    def clear_all(self) -> int:
        """Delete every daily container; returns how many were removed."""
        container = self._container()
        deleted = 0
        try:
            keys = list(container.query_items(query=_KEYS_QUERY, enable_cross_partition_query=True))
            for key in keys:
                container.delete_item(item=key["id"], partition_key=key["date"])
                deleted += 1
        except AzureError:
            _logger.exception("Clearing daily containers failed after %s deletes", deleted)
            return deleted

        _logger.info("Cleared %s daily log containers", deleted)
        return deleted

    def delete_container(self, date: str) -> bool:
        target = validate_date(date)
        container = self._container()
        try:
            container.delete_item(item=target, partition_key=target)
        except exceptions.CosmosResourceNotFoundError:
            _logger.info("Daily container for %s not found", target)
            return False
        except AzureError:
            _logger.exception("Deleting daily container %s failed", target)
            return False

        _logger.info("Deleted daily container for %s", target)
        return True


__all__ = ["DailyLogService", "compute_stats", "BATCH_CAPACITY"]
