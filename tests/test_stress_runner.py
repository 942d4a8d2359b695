import pytest
from azure.cosmos import exceptions

from routers.stress_test.runner import StressTestRunner, make_entries


class StepTimer:
    """Each reading is `step` seconds after the previous one."""

    def __init__(self, step=0.5):
        self.step = step
        self.value = 0.0

    def __call__(self):
        self.value += self.step
        return self.value


@pytest.fixture
def runner(service):
    return StressTestRunner(service, batch_size=4, target_date="2025-11-01", timer=StepTimer())


def test_entries_cycle_levels_and_categories():
    entries = make_entries(9, "bulk")

    assert [e.level for e in entries[:5]] == ["info", "warn", "error", "debug", "info"]
    assert entries[0].category == "auth"
    assert entries[8].category == "auth"
    assert entries[2].message == "stress test log 3 - bulk"
    assert entries[2].metadata == {"index": 2, "method": "bulk"}
    assert {e.source for e in entries} == {"stress-test"}


def test_per_entry_writes_each_entry(runner, container):
    result = runner.run_per_entry(2)

    assert result.method == "per_entry"
    assert result.log_count == 2
    assert result.errors == 0
    assert result.duration_ms == 2500.0
    assert result.average_latency_ms == 500.0
    assert container.docs["2025-11-01"]["log_count"] == 2


def test_bulk_writes_in_chunks(runner, container):
    result = runner.run_bulk(10)

    assert result.method == "bulk"
    assert result.log_count == 10
    assert result.errors == 0
    assert container.write_calls() == ["create_item", "create_item", "execute_item_batch",
                                       "create_item", "execute_item_batch"]
    assert container.docs["2025-11-01"]["log_count"] == 10


def test_failures_are_counted(runner, container):
    container.fail_with = exceptions.CosmosHttpResponseError(status_code=503, message="busy")

    per_entry = runner.run_per_entry(3)
    bulk = runner.run_bulk(3)

    assert (per_entry.log_count, per_entry.errors) == (0, 3)
    assert (bulk.log_count, bulk.errors) == (0, 1)


def test_compare_reports_both_runs(runner, container):
    outcome = runner.compare(8)

    assert outcome.per_entry.log_count == outcome.bulk.log_count == 8
    assert set(outcome.comparison) == {"speed_change_pct", "latency_change_pct", "errors"}
    assert outcome.comparison["errors"] == {"per_entry": 0, "bulk": 0}
    assert container.docs["2025-11-01"]["log_count"] == 16


def test_cleanup_drops_target_date(runner, container):
    runner.run_bulk(2)

    assert runner.cleanup() is True
    assert "2025-11-01" not in container.docs


def test_default_bucket_is_not_a_real_day(service, container, make_entry):
    service.add_log(make_entry(message="real production entry"))
    runner = StressTestRunner(service, batch_size=10, timer=StepTimer())

    runner.run_per_entry(3)
    runner.run_bulk(5)
    assert container.docs["1970-01-01"]["log_count"] == 8

    assert runner.cleanup() is True

    today = service.get_daily_logs()
    assert today is not None
    assert today.date == "2025-10-01"
    assert today.log_count == 1
    assert [e.message for e in today.logs] == ["real production entry"]
    assert "1970-01-01" not in container.docs


def test_target_date_is_validated(service):
    with pytest.raises(ValueError):
        StressTestRunner(service, target_date="today")


def test_batch_size_must_be_positive(service):
    with pytest.raises(ValueError):
        StressTestRunner(service, batch_size=0)
