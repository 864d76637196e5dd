"""Health, readiness, and version endpoints."""

from fastapi import APIRouter
from sqlalchemy import text

from sampler import database, redis_client
from sampler.config import get_settings
from sampler.dependencies import get_runtime
from sampler.notifications.push import HttpPushChannel

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness() -> dict[str, object]:
    """Readiness check: covers only the backends this deployment uses."""
    checks: dict[str, object] = {}

    try:
        get_runtime()
        checks["ledger"] = "ok"
    except RuntimeError as exc:
        checks["ledger"] = f"error: {exc}"

    if database.is_initialized():
        try:
            async with database.get_session_factory()() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
            checks["database"] = "ok"
        except Exception as exc:
            checks["database"] = f"error: {exc}"

    if redis_client.is_initialized():
        try:
            await redis_client.get_redis().ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    if checks["ledger"] == "ok":
        channel = get_runtime().notifications.dispatcher.channel
        if isinstance(channel, HttpPushChannel):
            # Reported only; push never gates readiness.
            checks["push"] = "ok" if await channel.ping() else "unreachable"

    all_ok = all(v == "ok" for k, v in checks.items() if k != "push")
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
