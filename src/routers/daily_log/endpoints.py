# ── src/routers/daily_log/endpoints.py ────────────────────────────────
from typing import List, Optional

from azure.core.exceptions import AzureError
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field, ValidationError

from storage import CosmosStore
from .models import (
    AddLogResult,
    AddLogsResult,
    DailyLogContainer,
    DailyLogStats,
    EnsureContainerResult,
    LogLevel,
    LogSearchQuery,
    LogSearchResult,
    NewLogEntry,
)
from .service import DailyLogService

# ── Pydantic payloads --------------------------------------------------
class AddLogRequest(NewLogEntry):
    target_date:  Optional[str]  = Field(None, description="YYYY-MM-DD; defaults to today")


class AddMultipleLogsRequest(BaseModel):
    logs:         List[NewLogEntry]  = Field(..., description="Entries appended in order")
    target_date:  Optional[str]      = Field(None, description="YYYY-MM-DD; defaults to today")


class CreateContainerRequest(BaseModel):
    date:  Optional[str]  = Field(None, description="YYYY-MM-DD; defaults to today")


# ── Dependencies -------------------------------------------------------
def get_store(request: Request) -> CosmosStore:
    return request.app.state.store


def get_daily_log_service(request: Request) -> DailyLogService:
    if not request.app.state.store.is_connected:
        raise HTTPException(status_code=503, detail="Cosmos store is not connected")
    return request.app.state.daily_log_service


def _bad_date(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=422, detail=str(exc))


# ── Router -------------------------------------------------------------
router = APIRouter(prefix="/daily-logs", tags=["daily-logs"])


# ── writes -------------------------------------------------------------
@router.post("/add-log", response_model=AddLogResult, summary="Append one entry to a daily container")
def add_log(payload: AddLogRequest, service: DailyLogService = Depends(get_daily_log_service)):
    entry = NewLogEntry(**payload.model_dump(exclude={"target_date"}))
    try:
        return service.add_log(entry, payload.target_date)
    except ValueError as exc:
        raise _bad_date(exc) from exc


@router.post("/add-multiple", response_model=AddLogsResult, summary="Append many entries in one write")
def add_multiple(payload: AddMultipleLogsRequest,
                 service: DailyLogService = Depends(get_daily_log_service)):
    try:
        return service.add_logs(payload.logs, payload.target_date)
    except ValueError as exc:
        raise _bad_date(exc) from exc


@router.post("/ensure-container", response_model=EnsureContainerResult,
             summary="Create an empty daily container when missing")
def ensure_container(payload: CreateContainerRequest,
                     service: DailyLogService = Depends(get_daily_log_service)):
    try:
        return service.ensure_container(payload.date)
    except ValueError as exc:
        raise _bad_date(exc) from exc


# ── reads --------------------------------------------------------------
def _fetch(service: DailyLogService, date: Optional[str]) -> DailyLogContainer:
    try:
        found = service.get_daily_logs(date)
    except ValueError as exc:
        raise _bad_date(exc) from exc
    if found is None:
        raise HTTPException(status_code=404, detail="Daily container not found")
    return found


@router.get("", response_model=DailyLogContainer, summary="Today's container")
def get_today(service: DailyLogService = Depends(get_daily_log_service)):
    return _fetch(service, None)


@router.get("/date/{date}", response_model=DailyLogContainer, summary="Container for one date")
def get_by_date(date: str, service: DailyLogService = Depends(get_daily_log_service)):
    return _fetch(service, date)


@router.get("/api/search", response_model=LogSearchResult, summary="Search entries across dates")
def search(
    start_date: Optional[str]      = Query(None, description="Inclusive, YYYY-MM-DD"),
    end_date:   Optional[str]      = Query(None, description="Inclusive, YYYY-MM-DD"),
    level:      Optional[LogLevel] = Query(None),
    category:   Optional[str]      = Query(None),
    message:    Optional[str]      = Query(None, description="Case-insensitive substring"),
    skip:       int                = Query(0, ge=0),
    limit:      Optional[int]      = Query(None, ge=1),
    service: DailyLogService = Depends(get_daily_log_service),
):
    try:
        query = LogSearchQuery(
            start_date=start_date, end_date=end_date, level=level,
            category=category, message=message, skip=skip, limit=limit,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return service.search_logs(query)


@router.get("/api/dates", summary="Every date with a container, newest first")
def list_dates(service: DailyLogService = Depends(get_daily_log_service)):
    dates = service.list_dates()
    return {"dates": dates, "total": len(dates)}


def _stats(service: DailyLogService, date: Optional[str]) -> DailyLogStats:
    try:
        stats = service.get_daily_stats(date)
    except ValueError as exc:
        raise _bad_date(exc) from exc
    if stats is None:
        raise HTTPException(status_code=404, detail="Daily container not found")
    return stats


@router.get("/api/stats", response_model=DailyLogStats, summary="Today's level/category tallies")
def stats_today(service: DailyLogService = Depends(get_daily_log_service)):
    return _stats(service, None)


@router.get("/api/stats/{date}", response_model=DailyLogStats, summary="Tallies for one date")
def stats_for_date(date: str, service: DailyLogService = Depends(get_daily_log_service)):
    return _stats(service, date)


@router.get("/api/test-connection", summary="Open (if needed) and ping the Cosmos store")
def test_connection(store: CosmosStore = Depends(get_store)):
    try:
        store.open()
        props = store.ping()
    except (AzureError, ValueError) as exc:
        return {"success": False, "message": f"Cosmos connection failed: {exc}"}
    return {"success": True, "message": "Cosmos connection OK", "database": props.get("id")}


# ── admin --------------------------------------------------------------
@router.post("/api/clear", summary="Delete every daily container (test reset)")
def clear(service: DailyLogService = Depends(get_daily_log_service)):
    return {"deleted_count": service.clear_all()}


@router.post("/api/delete/{date}", summary="Delete the container for one date")
def delete(date: str, service: DailyLogService = Depends(get_daily_log_service)):
    try:
        deleted = service.delete_container(date)
    except ValueError as exc:
        raise _bad_date(exc) from exc
    return {"deleted": deleted, "date": date}
