"""
Health Router - API endpoints for health checks
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/live")
async def health_live():
    """Liveness probe: server process is up"""
    return {"status": "live"}


@router.get("/ready")
async def health_ready(request: Request):
    """Readiness probe: database open and services wired"""
    state = request.app.state
    db = getattr(state, "db", None)
    registry = getattr(state, "registry", None)
    executor = getattr(state, "executor", None)

    ready = db is not None and db.is_ready and registry is not None
    status_code = 200 if ready else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if ready else "not_ready",
            "jobs": len(registry) if registry is not None else 0,
            "running": executor.running_count if executor is not None else 0,
        },
    )
