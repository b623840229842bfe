"""Flight Agent Gateway: rate-limited, cached LLM planning service."""

from agent_gateway.config.settings import APP_VERSION

__version__ = APP_VERSION
