"""Health and readiness endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    from src.main import get_uptime

    return {
        "status": "healthy",
        "version": settings.app_version,
        "uptime_seconds": get_uptime(),
    }


@router.get("/ready")
async def ready(request: Request) -> JSONResponse:
    from src.db.database import check_db

    db_ok = await check_db()
    embedder = getattr(request.app.state, "embedder", None)
    model_ok = bool(embedder is not None and embedder.is_loaded)

    all_ready = db_ok and model_ok
    return JSONResponse(
        status_code=200 if all_ready else 503,
        content={
            "status": "ready" if all_ready else "degraded",
            "database": db_ok,
            "embedding_model": model_ok,
        },
    )
