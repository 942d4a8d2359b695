# ── src/routers/log/__init__.py ───────────────────────────────────────
"""
Category logging sub-router.

    POST /api/log/{category}   write one record through the category logger
    POST /api/log/store-sink   additionally copy every category into Cosmos

Categories: auth, api, database, security, cloud, system, user, microphone.
Each one writes JSON lines to <LOG_DIR>/<category>/ (size-capped, rotated)
and to the console.
"""
from .endpoints import router  # re-export for `include_router`
