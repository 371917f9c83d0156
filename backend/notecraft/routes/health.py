"""
NoteCraft Backend: Health Check Route
=======================================

What:  GET /health for container health checks and load balancers.
How:   Probes the database (SELECT 1) and the LLM provider (circuit state,
       then a cheap reachability call).

Status levels:
    healthy:    everything reachable
    degraded:   database fine, LLM provider down or circuit open
                (notes still work; AI features fail fast)
    unhealthy:  database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text

from notecraft import __version__
from notecraft.database import engine
from notecraft.dependencies import get_llm_service
from notecraft.schemas.common import HealthResponse
from notecraft.services.llm_base import LLMService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "connected"
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", e)
        return "disconnected"


async def _llm_status(llm: LLMService) -> str:
    breaker = getattr(llm, "circuit_breaker", None)
    if breaker is not None and breaker.state == breaker.OPEN:
        return "circuit_open"
    return "available" if await llm.health_check() else "unavailable"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    response: Response,
    llm: LLMService = Depends(get_llm_service),
) -> HealthResponse:
    database = await _database_status()
    llm_state = await _llm_status(llm)

    if database != "connected":
        overall = "unhealthy"
        response.status_code = 503
    elif llm_state != "available":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=database,
        llm=llm_state,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
