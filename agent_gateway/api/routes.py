"""
=============================================================================
API Routes
=============================================================================

FastAPI routes for the flight agent gateway.

ENDPOINTS:
----------
- POST /api/agent  - Turn a free-text flight request into a plan
- GET /api/health  - Liveness, version and in-memory state sizes
- GET /metrics     - Prometheus exposition

Rate limiting, CORS and preflight handling live in
agent_gateway.api.middleware and run before any of these.
=============================================================================
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from agent_gateway.api.handlers import QUERY_ERROR_MESSAGE, utc_timestamp
from agent_gateway.api.prometheus import prometheus_metrics_endpoint, record_cache_lookup
from agent_gateway.api.schemas import AgentRequest, HealthResponse
from agent_gateway.cache.response_cache import fingerprint
from agent_gateway.config.settings import APP_VERSION
from agent_gateway.errors import ValidationError
from agent_gateway.gateway import GatewayState

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Dependency Injection
# =============================================================================


async def get_gateway(request: Request) -> GatewayState:
    """Get the gateway state from app state."""
    return request.app.state.gateway


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/api/agent")
async def handle_agent(
    body: AgentRequest,
    gateway: Annotated[GatewayState, Depends(get_gateway)],
) -> JSONResponse:
    """
    Process a flight request.

    FLOW:
    -----
    1. Enforce MAX_QUERY_LENGTH from the app's settings (400)
    2. Fingerprint (query, context) and look it up in the response cache
    3. On a hit, replay the cached response with X-Cache: HIT
    4. On a miss, run the agent pipeline (prompt -> LLM -> parser)
    5. Store the result and answer with X-Cache: MISS

    Errors raised by the pipeline are ApiError subclasses and are turned
    into JSON by the registered exception handlers. Failed requests are
    never cached.
    """
    limit = gateway.settings.max_query_length
    if len(body.query) > limit:
        raise ValidationError(
            QUERY_ERROR_MESSAGE,
            details={"reason": f"Query exceeds maximum length of {limit} characters"},
        )

    key = fingerprint(body.query, body.context)

    cached = gateway.cache.get(key)
    if cached is not None:
        logger.info(f"[API] Cache hit for query: {body.query[:30]!r}")
        record_cache_lookup(hit=True)
        return JSONResponse(content=cached.to_payload(), headers={"X-Cache": "HIT"})

    record_cache_lookup(hit=False)
    logger.info(f"[API] Processing query: {body.query[:50]!r}")

    response = await gateway.pipeline.run(body.query, body.context)
    gateway.cache.set(key, response)

    return JSONResponse(content=response.to_payload(), headers={"X-Cache": "MISS"})


@router.get("/api/health", response_model=HealthResponse)
async def health(
    gateway: Annotated[GatewayState, Depends(get_gateway)],
) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        timestamp=utc_timestamp(),
        version=APP_VERSION,
        cache_size=len(gateway.cache),
        rate_limits=len(gateway.rate_limiter),
    )


@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Scrape with: curl http://localhost:8000/metrics
    """
    return await prometheus_metrics_endpoint()
