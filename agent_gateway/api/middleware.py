"""
=============================================================================
Gateway Middleware
=============================================================================

Runs in front of every route:

1. OPTIONS (CORS preflight) -> 204 with CORS headers, nothing else runs
2. Per-request maintenance (idle client eviction, cache sweep)
3. Rate limiting keyed by client IP -> 429 before any routing
4. CORS headers on every response, success or error
5. Unexpected exceptions -> 500 JSON (still with CORS headers)
=============================================================================
"""

import logging

from fastapi import Request
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from agent_gateway.api.handlers import CORS_HEADERS, error_response
from agent_gateway.api.prometheus import record_rate_limited, record_request
from agent_gateway.errors import InternalError, RateLimitedError

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"
CLIENT_IP_HEADERS = ("CF-Connecting-IP", "X-Forwarded-For")
KNOWN_ENDPOINTS = {"/api/health", "/api/agent", "/metrics"}


def resolve_client_id(request: Request) -> str:
    """Client IP from the forwarding headers, or "unknown"."""
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            # X-Forwarded-For may hold a proxy chain; the client is first
            first = value.split(",")[0].strip()
            if first:
                return first
    return UNKNOWN_CLIENT


async def gateway_middleware(request: Request, call_next: RequestResponseEndpoint) -> Response:
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=CORS_HEADERS)

    gateway = request.app.state.gateway
    gateway.run_maintenance()

    client_id = resolve_client_id(request)
    if not gateway.rate_limiter.allow(client_id):
        logger.info(f"[API] Rate limit exceeded for client={client_id}")
        record_rate_limited()
        response = error_response(RateLimitedError(gateway.rate_limiter.retry_after(client_id)))
    else:
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"[API] Unhandled error on {request.method} {request.url.path}")
            response = error_response(InternalError())

    response.headers.update(CORS_HEADERS)

    endpoint = request.url.path if request.url.path in KNOWN_ENDPOINTS else "other"
    record_request(endpoint, response.status_code)
    return response
