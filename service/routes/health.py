"""GET /health: service status endpoint.

Returns service status including version, uptime, scheduler state and the
summary of the most recent verification run.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from service import __version__

router = APIRouter()
logger = logging.getLogger(__name__)

# Import time of this module, used as the service start time
_start_time = time.time()


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    """Return service health status."""
    uptime_seconds = int(time.time() - _start_time)

    # scheduler is set by the lifespan on app.state
    scheduler = getattr(request.app.state, "scheduler", None)
    last_summary = scheduler.last_summary if scheduler is not None else None

    return JSONResponse(
        content={
            "status": "ok",
            "version": __version__,
            "uptime_seconds": uptime_seconds,
            "scheduler_running": bool(scheduler and scheduler.is_running),
            "tick_in_flight": bool(scheduler and scheduler.tick_in_flight),
            "last_run": last_summary.to_dict() if last_summary else None,
        }
    )
