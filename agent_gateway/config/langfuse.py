"""
=============================================================================
Langfuse Observability Configuration
=============================================================================

Langfuse v3 integration for LangChain observability.

Tracing is optional for the gateway: when LANGFUSE_PUBLIC_KEY and
LANGFUSE_SECRET_KEY are not configured, no callback handler is attached
to LLM calls.

IMPORTANT: Langfuse CallbackHandler reads credentials from environment variables:
- LANGFUSE_PUBLIC_KEY
- LANGFUSE_SECRET_KEY
- LANGFUSE_BASE_URL (standardized from settings)
=============================================================================
"""

import logging
import os
from functools import lru_cache

from langfuse import Langfuse, observe
from langfuse.langchain import CallbackHandler

from agent_gateway.config.settings import get_settings

logger = logging.getLogger(__name__)


def _ensure_langfuse_env_vars():
    """
    Ensure Langfuse environment variables are set from settings.

    The Langfuse CallbackHandler reads from env vars directly,
    so we need to set them before creating handlers.
    """
    settings = get_settings()

    if settings.langfuse_public_key and not os.environ.get("LANGFUSE_PUBLIC_KEY"):
        os.environ["LANGFUSE_PUBLIC_KEY"] = settings.langfuse_public_key

    if settings.langfuse_secret_key and not os.environ.get("LANGFUSE_SECRET_KEY"):
        os.environ["LANGFUSE_SECRET_KEY"] = settings.langfuse_secret_key

    if settings.langfuse_base_url and not os.environ.get("LANGFUSE_BASE_URL"):
        os.environ["LANGFUSE_BASE_URL"] = settings.langfuse_base_url
        os.environ["LANGFUSE_HOST"] = settings.langfuse_base_url


@lru_cache
def get_langfuse_client() -> Langfuse | None:
    """Get cached Langfuse client instance, or None when tracing is off."""
    settings = get_settings()
    if not settings.langfuse_enabled:
        logger.info("[LANGFUSE] Credentials not configured, tracing disabled")
        return None

    return Langfuse(
        public_key=settings.langfuse_public_key,
        secret_key=settings.langfuse_secret_key,
        host=settings.langfuse_base_url,
    )


def get_langfuse_callbacks() -> list[CallbackHandler]:
    """
    LangChain callbacks for one LLM call.

    Returns an empty list when tracing is disabled so callers can always
    pass the result straight into the invoke() config.
    """
    if get_langfuse_client() is None:
        return []

    _ensure_langfuse_env_vars()
    return [CallbackHandler()]


def traced(name: str):
    """Langfuse @observe when tracing is enabled, identity decorator otherwise."""

    def decorator(func):
        if not get_settings().langfuse_enabled:
            return func
        return observe(name=name)(func)

    return decorator


__all__ = [
    "get_langfuse_client",
    "get_langfuse_callbacks",
    "traced",
]
