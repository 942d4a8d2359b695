# ── src/routers/stress_test/endpoints.py ──────────────────────────────
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from .runner import StressComparison, StressTestResult, StressTestRunner

# ── Dependency ---------------------------------------------------------
def get_stress_runner(request: Request) -> StressTestRunner:
    if not request.app.state.store.is_connected:
        raise HTTPException(status_code=503, detail="Cosmos store is not connected")
    return request.app.state.stress_runner

# ── Router -------------------------------------------------------------
router = APIRouter(prefix="/stress-test", tags=["stress-test"])

_COUNT = Query(1000, ge=1, le=100_000, description="Entries written per strategy")

@router.get("/per-entry", response_model=StressTestResult, summary="N single-entry upserts")
def per_entry(count: int = _COUNT, runner: StressTestRunner = Depends(get_stress_runner)):
    return runner.run_per_entry(count)

@router.get("/bulk", response_model=StressTestResult, summary="Chunked bulk appends")
def bulk(count: int = _COUNT, runner: StressTestRunner = Depends(get_stress_runner)):
    return runner.run_bulk(count)

@router.get("/compare", response_model=StressComparison, summary="Run both strategies and diff them")
def compare(count: int = _COUNT, runner: StressTestRunner = Depends(get_stress_runner)):
    return runner.compare(count)

@router.post("/cleanup", summary="Delete the container the runs wrote into")
def cleanup(runner: StressTestRunner = Depends(get_stress_runner)):
    return {"deleted": runner.cleanup()}
