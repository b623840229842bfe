"""
=============================================================================
Configuration Settings Module
=============================================================================

Pydantic-based settings management with environment variable support.
All configuration is loaded from .env file or environment variables.

MOCK MODE NOTE:
---------------
OPENROUTER_API_KEY is optional. When it is empty the gateway never calls
the upstream provider and answers every agent request with a static,
clearly-labelled placeholder plan. This is how local development runs.
=============================================================================
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

APP_VERSION = "0.1.0"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Upstream LLM (OpenRouter, OpenAI-compatible)
    # -------------------------------------------------------------------------
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "mistralai/mistral-7b-instruct:free"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 1024
    llm_timeout_seconds: float = 30.0

    # OpenRouter attribution headers
    app_referer: str = "http://localhost"
    app_title: str = "Flight Finder Agent"

    # -------------------------------------------------------------------------
    # Abuse controls and caching
    # -------------------------------------------------------------------------
    rate_limit_requests: int = 20
    rate_limit_window_seconds: float = 60.0
    rate_limit_idle_seconds: float = 600.0
    maintenance_interval_seconds: float = 60.0

    cache_ttl_seconds: float = 600.0

    max_query_length: int = 2000
    summary_result_limit: int = 10

    # -------------------------------------------------------------------------
    # Langfuse Observability (optional)
    # -------------------------------------------------------------------------
    langfuse_public_key: str = ""
    langfuse_secret_key: str = ""
    langfuse_base_url: str = "https://us.cloud.langfuse.com"

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    log_level: str = "INFO"
    verbose_logging: bool = False
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def has_llm_credentials(self) -> bool:
        """True when a real upstream call can be made."""
        return bool(self.openrouter_api_key.strip())

    @property
    def langfuse_enabled(self) -> bool:
        return bool(self.langfuse_public_key and self.langfuse_secret_key)

    @property
    def effective_log_level(self) -> str:
        """VERBOSE_LOGGING wins over LOG_LEVEL."""
        return "DEBUG" if self.verbose_logging else self.log_level.upper()


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
