# ── src/main.py ───────────────────────────────────────────────────────────────
import logging
from contextlib import asynccontextmanager
from typing import Optional

from azure.core.exceptions import AzureError
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, load_settings
from storage import CosmosStore
from routers.daily_log.service import DailyLogService
from routers.log.categories import CategoryLoggers
from routers.stress_test.runner import StressTestRunner

_logger = logging.getLogger(__name__)


# ── wiring -------------------------------------------------------------------
def attach_services(app: FastAPI, settings: Settings, store: CosmosStore,
                    loggers: CategoryLoggers) -> None:
    """Put the shared objects on app.state, where the router dependencies look."""
    service = DailyLogService(store, settings.daily_log_container, settings.zone())
    app.state.settings = settings
    app.state.store = store
    app.state.daily_log_service = service
    app.state.category_loggers = loggers
    app.state.stress_runner = StressTestRunner(
        service,
        batch_size=settings.stress_test_batch_size,
        target_date=settings.stress_test_date,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    store = CosmosStore(settings)
    try:
        store.open()
    except (AzureError, ValueError):
        # stays disconnected; routes answer 503 until /daily-logs/api/test-connection succeeds
        _logger.exception("Cosmos store unavailable at startup")

    loggers = CategoryLoggers(settings.log_dir)
    if settings.log_store_sink and store.is_connected:
        loggers.enable_store_sink(store)

    attach_services(app, settings, store, loggers)
    try:
        yield
    finally:
        loggers.close()
        store.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Daily Log Service", lifespan=lifespan)
    app.state.settings = settings

    # ── CORS
    # credentials only ever go to the configured FRONTEND_ORIGIN list, never to "*"
    if settings.frontend_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # ── core modules ---------------------------------------------------------
    from routers.healthz.endpoints  import router as health_router
    from routers.daily_log          import router as daily_log_router
    from routers.log                import router as log_router
    from routers.stress_test        import router as stress_router

    # ── include routes -------------------------------------------------------
    app.include_router(health_router)
    app.include_router(daily_log_router)
    app.include_router(log_router)
    app.include_router(stress_router)

    # ── root -----------------------------------------------------------------
    @app.get("/", include_in_schema=False)
    def root():
        return {
            "status": "ok",
            "info": (
                "/healthz, /daily-logs/*, /api/log/{category}, "
                "/stress-test/{per-entry|bulk|compare}"
            ),
        }

    return app


app = create_app()
