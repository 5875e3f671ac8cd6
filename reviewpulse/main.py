"""Application entrypoint for the reviewpulse service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from reviewpulse.core.config import settings
from reviewpulse.dependencies import get_github_client, get_store
from reviewpulse.routers import contributions
from reviewpulse.telemetry import configure_metrics, shutdown_metrics


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.getLogger("reviewpulse").setLevel(settings.log_level.upper())
    configure_metrics()
    store = app.dependency_overrides.get(get_store, get_store)()
    store.init()
    yield
    store.close()
    if get_github_client.cache_info().currsize:
        get_github_client().close()
    shutdown_metrics()


def create_app() -> FastAPI:
    app = FastAPI(
        title="reviewpulse",
        description="Aggregates a user's authored and reviewed pull requests with review lifecycle timings.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(contributions.router)

    @app.get("/healthz", tags=["health"])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
