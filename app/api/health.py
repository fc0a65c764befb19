"""
app/api/health.py

Purpose: Service info and orchestration probes

- / describes the running bot session
- /health reports in-memory session counts
- /ready flips once the dispatcher is wired by the lifespan
- /live always answers while the process is up
"""

import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.config import settings

APP_VERSION = "1.0.0"

router = APIRouter(tags=["Health"])


def _dispatcher(request: Request):
    return getattr(request.app.state, "dispatcher", None)


@router.get("/")
async def service_info():
    return {
        "name": "verigate",
        "version": APP_VERSION,
        "description": "WhatsApp Verification Gateway",
        "session": settings.SESSION_NAME,
        "transport": settings.TRANSPORT,
        "environment": settings.ENVIRONMENT,
    }


@router.get("/health")
async def health_check(request: Request):
    """
    Session counts for the running gateway, 503 until startup completes.
    """
    dispatcher = _dispatcher(request)
    body = {
        "status": "healthy" if dispatcher else "starting",
        "timestamp": time.time(),
        "version": APP_VERSION,
        "session": settings.SESSION_NAME,
        "sessions": dispatcher.store.stats() if dispatcher else {},
    }
    return JSONResponse(content=body, status_code=200 if dispatcher else 503)


@router.get("/ready")
async def readiness_check(request: Request):
    if _dispatcher(request) is None:
        return JSONResponse(status_code=503, content={"status": "not_ready", "reason": "gateway_not_started"})
    return {"status": "ready"}


@router.get("/live")
async def liveness_check():
    return {"status": "alive"}
