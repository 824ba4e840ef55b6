"""Health check and diagnostics endpoints (limiter, in-flight map, counters)."""

import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from riftwatch.logging_config import get_logger
from riftwatch.riot.resources import RiotResources

log = get_logger(__name__)


def create_app(resources: RiotResources, start_time: Optional[float] = None) -> FastAPI:
    """Build the diagnostics app around an already wired ``RiotResources``."""
    app = FastAPI(title="riftwatch diagnostics")
    app.state.resources = resources
    app.state.start_time = start_time if start_time is not None else time.time()

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """
        Basic health check endpoint.

        Returns:
            JSON with status and uptime information
        """
        uptime = int(time.time() - app.state.start_time)
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": uptime,
            "service": "riftwatch"
        })

    @app.get("/readiness")
    async def readiness_check() -> Response:
        """
        Readiness probe.

        Returns:
            200 if the cache database answers
            503 otherwise
        """
        try:
            resources.cache.ping()
        except SQLAlchemyError as e:
            log.error(f"Readiness check failed: {e}")
            return Response(status_code=503, content=f"Not ready: {e}")
        return Response(status_code=200, content="Ready")

    @app.get("/liveness")
    async def liveness_check() -> Response:
        return Response(status_code=200, content="Alive")

    @app.get("/metrics")
    async def metrics() -> Dict[str, Any]:
        """
        Pipeline metrics: limiter occupancy, in-flight requests and counters.
        """
        return {
            "uptime_seconds": int(time.time() - app.state.start_time),
            "limiter": resources.limiter.stats().as_dict(),
            "inflight": resources.dedup.pending(),
            "counters": resources.metrics.snapshot(),
        }

    return app


if __name__ == "__main__":
    import uvicorn

    from riftwatch.app import build_resources
    from riftwatch.config import settings
    from riftwatch.logging_config import setup_logging

    setup_logging(settings.LOG_LEVEL)
    uvicorn.run(create_app(build_resources()), host="0.0.0.0", port=8000)
