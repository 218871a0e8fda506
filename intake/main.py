"""PRISM — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from intake.adapters.persistence.database import async_session_factory, engine
from intake.config import settings
from intake.infrastructure.api.dependencies import build_container
from intake.infrastructure.api.routes_assignments import router as assignments_router
from intake.infrastructure.api.routes_etas import router as etas_router
from intake.infrastructure.api.routes_health import router as health_router
from intake.infrastructure.api.routes_processing import router as processing_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the container, start polling, and drain notifications on shutdown."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)

    container = build_container(settings, async_session_factory)
    app.state.container = container
    app.state.intake = container.intake
    if settings.polling_enabled:
        container.intake.start()

    yield

    await container.intake.stop()
    await container.dispatcher.drain()
    await engine.dispose()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s | %(message)s",
    )

    app = FastAPI(
        title="PRISM — Practice Request Intake & Specialist Matching",
        description="Email-driven intake, practice classification and specialist assignment",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(health_router, prefix="/api")
    app.include_router(processing_router, prefix="/api")
    app.include_router(assignments_router, prefix="/api")
    app.include_router(etas_router, prefix="/api")

    return app


app = create_app()
