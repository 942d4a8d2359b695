from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()

@router.get("/healthz", include_in_schema=False)
def health_check(request: Request):
    store = request.app.state.store
    return JSONResponse({
        "status": "healthy",
        "store":  "connected" if store.is_connected else "disconnected",
    })
