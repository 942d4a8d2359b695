# ── src/routers/stress_test/__init__.py ───────────────────────────────
"""
Write-strategy comparison against the daily-log container.

    GET  /stress-test/per-entry?count=N   N single-entry upserts
    GET  /stress-test/bulk?count=N        the same N entries, chunked bulk appends
    GET  /stress-test/compare?count=N     both, plus relative speed / latency
    POST /stress-test/cleanup             drop the stress-test date bucket
"""
from .endpoints import router  # re-export for `include_router`
