"""Health check endpoints."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness probe - checks the session store and model credentials."""
    checks = {}
    all_ok = True

    # Check session store
    if getattr(request.app.state, "store", None) is not None:
        checks["store"] = "ok"
    else:
        checks["store"] = "not initialized"
        all_ok = False

    # Check model access
    if settings.OPENAI_API_KEY:
        checks["llm"] = "ok"
    else:
        checks["llm"] = "not configured"
        all_ok = False

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ok" if all_ok else "degraded", "checks": checks},
    )
