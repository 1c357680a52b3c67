"""
Prompt & Pause Backend — Health Check Route
============================================

What:  GET /health for container probes and uptime monitoring.

Status levels:
    - healthy:   database reachable and email configured
    - degraded:  database reachable, email not configured (notify runs fail)
    - unhealthy: database unreachable (HTTP 503)

Prompt providers are reported, not probed: the chain always answers through
its local fallback, so a missing provider never makes the service unhealthy.
"""

import logging
import time

from fastapi import APIRouter, Request, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from promptpause import __version__
from promptpause.database import engine
from promptpause.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    email_client = getattr(request.app.state, "email_client", None)
    email_status = "configured" if email_client and email_client.is_configured else "not_configured"
    if email_status != "configured" and overall == "healthy":
        overall = "degraded"

    generator = getattr(request.app.state, "prompt_generator", None)
    providers = generator.provider_ids if generator else ["local"]

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        prompt_providers=providers,
        email=email_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
