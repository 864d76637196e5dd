"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sampler.config import get_settings
from sampler.database import close_db, init_db
from sampler.dependencies import close_ledger, init_ledger
from sampler.health.router import router as health_router
from sampler.ledger.router import router as ledger_router
from sampler.middleware import setup_middleware
from sampler.notifications.router import router as notifications_router
from sampler.redis_client import close_redis, init_redis


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    if settings.store_backend == "sql":
        await init_db(settings.database_url)
    if settings.push_provider == "redis":
        await init_redis(settings.redis_url)

    init_ledger(settings)

    yield

    await close_ledger()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Sampler Ledger API",
        description="Points, tiers and notifications for in-store sampling events",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(ledger_router)
    app.include_router(notifications_router)

    return app


app = create_app()
