"""
FastAPI application entrypoint for the project tracker backend.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from tracker.api.ai import router as ai_router
from tracker.api.auth import router as auth_router
from tracker.api.routes import invite_validation_exception_handler, router as api_router
from tracker.core.config import get_settings
from tracker.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Project Tracker",
        version="0.1.0",
        description="Session exchange and team management API for the project tracker.",
    )
    app.include_router(auth_router)
    app.include_router(api_router, prefix="/api")
    app.include_router(ai_router, prefix="/api")
    app.add_exception_handler(RequestValidationError, invite_validation_exception_handler)
    return app


app = create_app()

__all__ = ["app", "create_app"]
