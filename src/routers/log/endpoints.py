# ── src/routers/log/endpoints.py ──────────────────────────────────────
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import Field

from azure.core.exceptions import AzureError
from .categories import CategoryLoggers, LogCategory, LogData

# ── Pydantic payload ---------------------------------------------------
class LogPayload(LogData):
    level:  str  = Field("info", description="info | warn | error | debug")

# ── Dependency ---------------------------------------------------------
def get_category_loggers(request: Request) -> CategoryLoggers:
    return request.app.state.category_loggers

# ── Router -------------------------------------------------------------
router = APIRouter()

# declared before /api/log/{category} so "store-sink" is not read as a category
@router.post("/api/log/store-sink", summary="Copy every category logger into Cosmos")
def enable_store_sink(request: Request,
                      loggers: CategoryLoggers = Depends(get_category_loggers)):
    store = request.app.state.store
    if not store.is_connected:
        raise HTTPException(status_code=503, detail="Cosmos store is not connected")
    try:
        loggers.enable_store_sink(store)
    except AzureError as exc:
        raise HTTPException(status_code=502, detail=f"Cosmos sink setup failed: {exc}") from exc
    return {"status": "success", "store_sink": loggers.store_sink_enabled}

@router.post("/api/log/{category}", summary="Write one record to a category logger")
def write_log(
    category: LogCategory,
    payload: LogPayload,
    loggers: CategoryLoggers = Depends(get_category_loggers),
):
    try:
        loggers.log(category, payload.level, payload)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return {"status": "success", "category": category.value, "level": payload.level}
