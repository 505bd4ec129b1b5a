"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware
from sqlalchemy import text

from bountyrec import __version__
from bountyrec.config import get_settings
from bountyrec.models.base import engine, AsyncSessionLocal, Base
from bountyrec.models import behavior, bounty, recommendation_log, tag, user_profile  # noqa: F401
from bountyrec.api.v1 import router as api_v1_router
from bountyrec.services.exceptions import MissingProfileError, NoCandidatesError

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Starting %s...", settings.app_name)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified")
    yield
    logger.info("Shutting down...")
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Personalized bounty recommendations blending declared skills with observed behavior",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=500)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MissingProfileError)
async def missing_profile_handler(request: Request, exc: MissingProfileError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(NoCandidatesError)
async def no_candidates_handler(request: Request, exc: NoCandidatesError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# Include API routers
app.include_router(api_v1_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.app_name}


@app.get("/health/detailed")
async def detailed_health_check():
    checks = {}

    # Database
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            checks["database"] = {"ok": True}
    except Exception as e:
        checks["database"] = {"ok": False, "message": str(e)}

    # Redis (Celery broker)
    try:
        r = redis.from_url(settings.redis_url, socket_timeout=5)
        r.ping()
        checks["redis"] = {"ok": True}
    except Exception as e:
        checks["redis"] = {"ok": False, "message": str(e)}

    # Celery workers only matter when behavior events are queued
    if settings.behavior_tracking_async:
        try:
            from bountyrec.tasks.celery_app import celery_app
            inspect = celery_app.control.inspect(timeout=5)
            active_workers = inspect.active()
            checks["celery_workers"] = {
                "ok": bool(active_workers),
                "workers": list(active_workers.keys()) if active_workers else [],
            }
        except Exception as e:
            checks["celery_workers"] = {"ok": False, "message": str(e)}

    all_ok = all(check.get("ok", False) for check in checks.values())
    status = "healthy" if all_ok else "degraded"

    return {
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "behavior_tracking": "async" if settings.behavior_tracking_async else "inline",
        "checks": checks,
    }
