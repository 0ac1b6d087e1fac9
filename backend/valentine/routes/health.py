"""
Valentine Backend: Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Pings the database handle with SELECT 1 and reports uptime.
Who:   Called by Docker health checks, load balancers and monitoring.

Status levels:
    - healthy:   database reachable
    - unhealthy: database unreachable or never connected
"""

import logging
import time

from fastapi import APIRouter, Request

from valentine import __version__
from valentine.schemas.surprise import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Process start, for uptime reporting
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Report database connectivity; never raises."""
    database = getattr(request.app.state, "database", None)
    connected = database is not None and await database.ping()

    if not connected:
        logger.warning("Health check: database unreachable")

    return HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=__version__,
        database="connected" if connected else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
