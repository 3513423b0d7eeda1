"""FastAPI application factory for the drift reconciliation service.

Composition root: wires configuration, structured logging, the collaborator
adapters and the drift scheduler, and owns the scheduler's lifecycle through
the app lifespan. Nothing starts at import time.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, Response

from persistence.sqlite_repository import SQLiteRepository
from reconciliation.engine import DriftDetectionEngine
from reconciliation.scheduler import DriftScheduler
from service import __version__
from service.config import AppSettings, get_settings
from service.routes import health, verification
from shared.logging_config import configure_logging
from shared_lib.aims_client import AimsClient, AimsGateway
from sync_queue.operations import PersistentResyncQueue

logger = logging.getLogger(__name__)


def build_scheduler(settings: AppSettings) -> tuple[DriftScheduler, AimsClient]:
    """Construct the engine and scheduler with their collaborators.

    Returns:
        Tuple of (scheduler, AIMS client); the caller closes the client.
    """
    drift_config = settings.to_drift_config()
    drift_config.log_config()

    repository = SQLiteRepository(settings.database_path)
    repository.ensure_schema()

    client = AimsClient(
        settings.aims_base_url,
        settings.aims_username,
        settings.aims_password,
        company=settings.aims_company,
        cluster=settings.aims_cluster,
        timeout=settings.aims_timeout,
    )
    gateway = AimsGateway(client, repository)
    queue = PersistentResyncQueue(settings.queue_path)

    engine = DriftDetectionEngine(repository, gateway, queue, config=drift_config)
    return DriftScheduler(engine), client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """FastAPI lifespan context manager.

    Startup: load config, configure logging, build and start the scheduler.
    Shutdown: stop the scheduler, wait for an in-flight run to finish, then
    close the AIMS client.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    scheduler, client = build_scheduler(settings)
    app.state.scheduler = scheduler

    if scheduler.config.enabled:
        scheduler.start()
    else:
        logger.info("Scheduled drift verification disabled; manual checks only")

    logger.info(
        "ESL drift service starting",
        extra={
            "version": __version__,
            "port": settings.port,
            "aims_base_url": settings.aims_base_url,
            "entity_type": scheduler.config.entity_type,
        },
    )

    yield

    scheduler.stop()
    # A tick already running still needs the AIMS client
    await scheduler.wait_idle()
    await client.close()
    logger.info("ESL drift service shutting down")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title="ESL drift reconciliation",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.include_router(health.router)
    app.include_router(verification.router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next) -> Response:  # type: ignore[no-untyped-def]
        """Log all incoming requests with method, path, status, and response time."""
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "HTTP request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        return response

    return app


app = create_app()


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "service.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=False,  # We handle request logging ourselves
    )
