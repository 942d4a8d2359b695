# ── src/routers/stress_test/runner.py ─────────────────────────────────
"""
Times two ways of writing N entries into one daily container:

* per_entry – N × `add_log` (one atomic patch each)
* bulk      – `add_logs` in chunks of `batch_size` (one create / batch each)

Entries are deterministic (levels and categories cycled) and go into their
own date bucket (`target_date`, default 1970-01-01), so `cleanup()` never
touches a real day. Results come back as data; nothing is printed.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from config import DEFAULT_STRESS_TEST_DATE
from routers.daily_log.models import LOG_LEVELS, NewLogEntry, validate_date
from routers.daily_log.service import DailyLogService
from routers.log.categories import LogCategory

_logger = logging.getLogger(__name__)

_CATEGORIES = [c.value for c in LogCategory]


class StressTestResult(BaseModel):
    method:              str
    log_count:           int
    duration_ms:         float
    logs_per_second:     int
    average_latency_ms:  float
    errors:              int


class StressComparison(BaseModel):
    per_entry:   StressTestResult
    bulk:        StressTestResult
    comparison:  Dict[str, Any]


def make_entries(count: int, method: str) -> List[NewLogEntry]:
    return [
        NewLogEntry(
            level=LOG_LEVELS[i % len(LOG_LEVELS)],
            message=f"stress test log {i + 1} - {method}",
            category=_CATEGORIES[i % len(_CATEGORIES)],
            source="stress-test",
            metadata={"index": i, "method": method},
        )
        for i in range(count)
    ]


def _change_pct(before: float, after: float) -> Optional[float]:
    if not before:
        return None
    return round((after - before) / before * 100, 2)


class StressTestRunner:
    def __init__(self, service: DailyLogService, batch_size: int = 500,
                 target_date: str = DEFAULT_STRESS_TEST_DATE,
                 timer: Callable[[], float] = time.perf_counter):
        if batch_size < 1:
            raise ValueError("batch_size must be ≥ 1")
        self.service = service
        self.batch_size = batch_size
        self.target_date = validate_date(target_date)
        self._timer = timer

    def _result(self, method: str, written: int, started: float,
                latencies: List[float], errors: int) -> StressTestResult:
        duration = self._timer() - started
        return StressTestResult(
            method=method,
            log_count=written,
            duration_ms=round(duration * 1000, 3),
            logs_per_second=round(written / duration) if duration > 0 else 0,
            average_latency_ms=round(sum(latencies) / len(latencies) * 1000, 3) if latencies else 0.0,
            errors=errors,
        )

    def run_per_entry(self, count: int) -> StressTestResult:
        entries = make_entries(count, "per_entry")
        written, errors, latencies = 0, 0, []

        started = self._timer()
        for entry in entries:
            t0 = self._timer()
            result = self.service.add_log(entry, self.target_date)
            latencies.append(self._timer() - t0)
            if result.success:
                written += 1
            else:
                errors += 1
        return self._result("per_entry", written, started, latencies, errors)

    def run_bulk(self, count: int) -> StressTestResult:
        entries = make_entries(count, "bulk")
        written, errors, latencies = 0, 0, []

        started = self._timer()
        for i in range(0, len(entries), self.batch_size):
            t0 = self._timer()
            result = self.service.add_logs(entries[i:i + self.batch_size], self.target_date)
            latencies.append(self._timer() - t0)
            written += result.added_count
            if not result.success:
                errors += 1
        return self._result("bulk", written, started, latencies, errors)

    def compare(self, count: int) -> StressComparison:
        per_entry = self.run_per_entry(count)
        bulk = self.run_bulk(count)
        _logger.info(
            "Write comparison (%s entries): per_entry=%s/s bulk=%s/s",
            count, per_entry.logs_per_second, bulk.logs_per_second,
        )
        return StressComparison(
            per_entry=per_entry,
            bulk=bulk,
            comparison={
                "speed_change_pct":   _change_pct(per_entry.logs_per_second, bulk.logs_per_second),
                "latency_change_pct": _change_pct(per_entry.average_latency_ms, bulk.average_latency_ms),
                "errors":             {"per_entry": per_entry.errors, "bulk": bulk.errors},
            },
        )

    def cleanup(self) -> bool:
        """Drop the container the runs wrote into."""
        return self.service.delete_container(self.target_date)


__all__ = ["StressTestRunner", "StressTestResult", "StressComparison", "make_entries"]
