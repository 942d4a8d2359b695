import pytest

from routers.daily_log.models import DailyLogContainer, LogSearchQuery
from routers.daily_log.service import compute_stats


@pytest.fixture
def seeded(service, make_entry):
    service.add_log(make_entry("info", "Boot OK", "system"), "2025-09-30")
    service.add_log(make_entry("error", "disk FULL", "system"), "2025-09-30")
    service.add_log(make_entry("info", "login", "auth"), "2025-10-01")
    service.add_log(make_entry("error", "Token expired", "auth"), "2025-10-01")
    service.add_log(make_entry("warn", "slow query", "database"), "2025-10-02")
    service.add_log(make_entry("error", "db connection lost", "database"), "2025-10-02")
    service.add_log(make_entry("error", "late error", "api"), "2025-10-03")
    return service


class TestStats:
    def test_levels_and_total(self, service, make_entry):
        for level in ("info", "info", "error"):
            service.add_log(make_entry(level, category="auth"), "2025-10-01")

        stats = service.get_daily_stats("2025-10-01")

        assert stats.total_logs == 3
        assert stats.level_counts == {"info": 2, "error": 1, "warn": 0, "debug": 0}
        assert stats.categories == {"auth": 3}

    def test_uncategorised_entries_are_not_tallied(self):
        container = DailyLogContainer.model_validate({
            "id": "2025-10-01", "date": "2025-10-01", "log_count": 2,
            "logs": [
                {"level": "debug", "message": "a", "timestamp": "t1"},
                {"level": "warn", "message": "b", "category": "api", "timestamp": "t2"},
            ],
        })

        stats = compute_stats(container)

        assert stats.categories == {"api": 1}
        assert stats.level_counts["debug"] == 1

    def test_empty_container_total_falls_back_to_length(self):
        container = DailyLogContainer(id="2025-10-01", date="2025-10-01")
        assert compute_stats(container).total_logs == 0

    def test_missing_date_is_none(self, service):
        assert service.get_daily_stats("2024-02-29") is None


class TestSearch:
    def test_range_and_level(self, seeded):
        result = seeded.search_logs(LogSearchQuery(
            start_date="2025-10-01", end_date="2025-10-02", level="error",
        ))

        assert [e.message for e in result.logs] == ["db connection lost", "Token expired"]
        assert all(e.level == "error" for e in result.logs)
        assert result.total_count == 2
        assert [c.date for c in result.containers] == ["2025-10-02", "2025-10-01"]

    def test_newest_first_without_filters(self, seeded):
        result = seeded.search_logs(LogSearchQuery())

        stamps = [e.timestamp for e in result.logs]
        assert stamps == sorted(stamps, reverse=True)
        assert len(result.logs) == 7
        assert len(result.containers) == 4

    def test_message_is_case_insensitive_substring(self, seeded):
        result = seeded.search_logs(LogSearchQuery(message="full"))
        assert [e.message for e in result.logs] == ["disk FULL"]

    def test_category_filter(self, seeded):
        result = seeded.search_logs(LogSearchQuery(category="auth"))
        assert {e.message for e in result.logs} == {"login", "Token expired"}

    def test_skip_and_limit(self, seeded):
        result = seeded.search_logs(LogSearchQuery(level="error", skip=1, limit=2))

        assert [e.message for e in result.logs] == ["db connection lost", "Token expired"]
        assert result.total_count == 2

    def test_query_pushes_filters_to_cosmos(self, seeded, container):
        container.queries.clear()

        seeded.search_logs(LogSearchQuery(start_date="2025-10-01", level="warn", message="slow"))

        sql, params = container.queries[0]
        assert sql.startswith("SELECT VALUE l FROM c JOIN l IN c.logs WHERE ")
        assert "c.date >= @start_date" in sql
        assert "c.date <= @end_date" not in sql
        assert "CONTAINS(l.message, @message, true)" in sql
        assert params == {"@start_date": "2025-10-01", "@level": "warn", "@message": "slow"}

    def test_failure_is_empty_result(self, seeded, container):
        from azure.cosmos import exceptions
        container.fail_with = exceptions.CosmosHttpResponseError(status_code=400, message="bad query")

        result = seeded.search_logs(LogSearchQuery(level="info"))

        assert result.logs == []
        assert result.total_count == 0
        assert result.containers == []

    def test_invalid_range_date_is_rejected(self):
        with pytest.raises(ValueError):
            LogSearchQuery(start_date="yesterday")
