"""
Barberly API

FastAPI application for availability, booking and the appointment
lifecycle. The lifespan connects the database, builds the service
container and, when enabled, runs the notification workers in-process.

Run with:
    uvicorn barberly.api.main:app --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core.config import AppSettings
from ..core.container import Container
from ..core.database import close_database, get_database, init_schema
from ..core.notifications import notification_workers
from ..core.observability import configure_logging, init_metrics, init_tracing
from .routers import admin_router, health_router, scheduling_router
from .shared.middleware import TraceMiddleware, register_error_handlers

logger = logging.getLogger(__name__)


def init_observability(settings: AppSettings) -> None:
    obs = settings.observability
    configure_logging(obs.log_level, obs.structured_logs, obs.service_name)
    init_tracing(obs.service_name, __version__, obs.otlp_endpoint)
    init_metrics(obs.service_name, obs.otlp_endpoint)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    settings = settings or AppSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan - startup and shutdown."""
        init_observability(settings)

        db = await get_database()
        await init_schema(db)
        logger.info(f"Database connected: {db.backend.value}")

        container = Container.build(db, settings)
        app.state.container = container
        try:
            async with notification_workers(
                container.dispatcher,
                container.reminders,
                settings=settings.notifications,
            ):
                yield
        finally:
            await container.close()
            await close_database()
            logger.info("Database connection closed")

    app = FastAPI(
        title="Barberly API",
        description="Barber appointment scheduling and notifications",
        version=__version__,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.add_middleware(TraceMiddleware)

    app.include_router(health_router)
    app.include_router(scheduling_router)
    app.include_router(admin_router)

    return app


app = create_app()
