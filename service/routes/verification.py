"""POST /verification: operator-triggered drift check.

Runs the verification pipeline immediately and returns the raw per-store
results alongside what the reporter logs.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from reconciliation.scheduler import VerificationInProgressError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/verification")
async def verify_now(request: Request) -> JSONResponse:
    """Run a manual verification and return its results."""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        return JSONResponse(status_code=503, content={"error": "Verification service not ready"})

    try:
        results = await scheduler.verify_now()
    except VerificationInProgressError as exc:
        return JSONResponse(status_code=409, content={"error": str(exc)})
    except Exception as exc:
        # Store listing failed; nothing was verified
        logger.error("Manual verification failed", extra={"error": str(exc)})
        return JSONResponse(status_code=502, content={"error": f"Verification failed: {exc}"})

    return JSONResponse(
        content={
            "verified": all(r.verified for r in results),
            "results": [r.to_dict() for r in results],
        }
    )
