"""
=============================================================================
Prometheus Metrics Module
=============================================================================

Prometheus metrics for monitoring the gateway.

METRICS EXPOSED:
----------------
- gateway_requests_total: Responses by endpoint and status code
- gateway_rate_limited_total: Requests rejected by the rate limiter
- gateway_cache_lookups_total: Agent cache lookups by result (hit/miss)
- gateway_upstream_errors_total: Failed LLM calls by kind
- gateway_llm_latency_seconds: Histogram of successful LLM call latency
- gateway_cache_entries / gateway_rate_limit_clients: Current state sizes
=============================================================================
"""

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

# =============================================================================
# Prometheus Metrics Definitions
# =============================================================================

REQUEST_COUNTER = Counter(
    "gateway_requests_total",
    "Total number of responses served",
    ["endpoint", "status"],
)

RATE_LIMITED_COUNTER = Counter(
    "gateway_rate_limited_total",
    "Requests rejected by the per-client rate limiter",
)

CACHE_LOOKUP_COUNTER = Counter(
    "gateway_cache_lookups_total",
    "Agent response cache lookups",
    ["result"],
)

UPSTREAM_ERROR_COUNTER = Counter(
    "gateway_upstream_errors_total",
    "Failed upstream LLM calls",
    ["kind"],
)

LLM_LATENCY_HISTOGRAM = Histogram(
    "gateway_llm_latency_seconds",
    "Latency of successful upstream LLM calls in seconds",
    buckets=[0.25, 0.5, 1.0, 2.0, 3.0, 5.0, 10.0, 15.0, 30.0, 60.0],
)

CACHE_ENTRIES = Gauge(
    "gateway_cache_entries",
    "Records currently held by the response cache",
)

RATE_LIMIT_CLIENTS = Gauge(
    "gateway_rate_limit_clients",
    "Clients currently tracked by the rate limiter",
)


# =============================================================================
# Metric Recording Functions
# =============================================================================


def record_request(endpoint: str, status: int) -> None:
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()


def record_rate_limited() -> None:
    RATE_LIMITED_COUNTER.inc()


def record_cache_lookup(hit: bool) -> None:
    CACHE_LOOKUP_COUNTER.labels(result="hit" if hit else "miss").inc()


def record_upstream_error(kind: str) -> None:
    """kind is "status" for non-2xx replies, "transport" for network failures."""
    UPSTREAM_ERROR_COUNTER.labels(kind=kind).inc()


def record_llm_latency(seconds: float) -> None:
    LLM_LATENCY_HISTOGRAM.observe(seconds)


def set_state_sizes(cache_entries: int, rate_limit_clients: int) -> None:
    CACHE_ENTRIES.set(cache_entries)
    RATE_LIMIT_CLIENTS.set(rate_limit_clients)


# =============================================================================
# Endpoint Handler
# =============================================================================


async def prometheus_metrics_endpoint() -> Response:
    """
    Generate Prometheus metrics in text format.

    Returns metrics in Prometheus exposition format for scraping.
    """
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
