# ── src/routers/daily_log/__init__.py ─────────────────────────────────
"""
Daily-log container sub-router.

One Cosmos document per calendar date (id == date == partition key) holds
the day's entries in insertion order plus a running `log_count`:

    POST /daily-logs/add-log            append one entry (upsert by date)
    POST /daily-logs/add-multiple       append many entries in one write
    POST /daily-logs/ensure-container   pre-create an empty date bucket
    GET  /daily-logs[/date/{date}]      fetch a container
    GET  /daily-logs/api/search         filter entries across a date range
    GET  /daily-logs/api/dates          dates with containers, newest first
    GET  /daily-logs/api/stats[/{date}] per-level / per-category tallies
"""
from .endpoints import router  # re-export for `include_router`
