"""FastAPI application factory."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI

from .metrics import instrument_app, router as metrics_router
from .routers import evaluate
from .schemas import HealthResponse
from .settings import APISettings, get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, version=settings.version)
    logging.getLogger("wordcoach.api").info("Starting %s %s", settings.app_name, settings.version)

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz(current: APISettings = Depends(get_settings)) -> HealthResponse:
        return HealthResponse(
            ok=True,
            configured=bool(current.openai_api_key),
            timestamp=datetime.now(timezone.utc),
        )

    app.include_router(evaluate.router)
    app.include_router(metrics_router)
    instrument_app(app)
    return app
