"""Middleware registration."""

from fastapi import FastAPI

from sampler.config import Settings
from sampler.middleware.cors import setup_cors
from sampler.middleware.error_handler import setup_error_handlers
from sampler.middleware.logging import setup_logging
from sampler.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware.

    Starlette runs middleware in reverse-add order, so CORS is added last to
    wrap every response, error responses included.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
