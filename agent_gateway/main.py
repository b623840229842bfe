"""
=============================================================================
Flight Agent Gateway - Main Application
=============================================================================

FastAPI application entry point.

The gateway state (rate limiter, response cache, agent pipeline) is built
once in create_app() and stored in app.state, so every request shares the
same in-memory maps for the lifetime of the process.

Startup sequence:
1. Load settings and configure logging
2. Build the LLM client (or enter mock mode without a credential)
3. Build the rate limiter, response cache and agent pipeline
4. Start REST API
=============================================================================
"""

import logging
import sys
import time
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI

from agent_gateway.api.handlers import register_exception_handlers
from agent_gateway.api.middleware import gateway_middleware
from agent_gateway.api.routes import router as api_router
from agent_gateway.config.langfuse import get_langfuse_client
from agent_gateway.config.settings import APP_VERSION, Settings, get_settings
from agent_gateway.gateway import build_gateway_state
from agent_gateway.llm.client import LLMClient

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.effective_log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup/shutdown logging and tracing flush."""
    gateway = app.state.gateway
    logger.info(
        f"[STARTUP] Flight Agent Gateway v{APP_VERSION} ready "
        f"(mode={'mock' if gateway.pipeline.mock_mode else 'llm'}, "
        f"rate_limit={gateway.rate_limiter.capacity}/{gateway.rate_limiter.window_seconds:.0f}s)"
    )

    yield

    logger.info("[SHUTDOWN] Shutting down...")
    langfuse_client = get_langfuse_client()
    if langfuse_client is not None:
        langfuse_client.flush()


def create_app(
    settings: Settings | None = None,
    llm_client: LLMClient | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Flight Agent Gateway",
        description="Rate-limited, cached LLM gateway that turns flight requests into plans",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    app.state.gateway = build_gateway_state(settings, llm_client=llm_client, clock=clock)

    app.middleware("http")(gateway_middleware)
    register_exception_handlers(app)
    app.include_router(api_router)

    return app


configure_logging(get_settings())

# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "agent_gateway.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
