"""
=============================================================================
API Schemas
=============================================================================

Pydantic models for request/response validation.

The agent response mirrors what the LLM is asked to produce: free-text
reasoning plus a JSON plan. Summarize requests additionally carry the
plain-text summary, since those replies have no tags to extract.
=============================================================================
"""

import json
from typing import Any

from pydantic import BaseModel, field_validator

from agent_gateway.config.settings import APP_VERSION


class AgentRequest(BaseModel):
    """Request body for POST /api/agent."""

    query: str
    context: dict[str, Any] | None = None

    @field_validator("query", mode="before")
    @classmethod
    def check_query(cls, value: Any) -> Any:
        if not isinstance(value, str) or not value.strip() or not _is_encodable(value):
            raise ValueError("Missing or invalid query parameter")
        return value

    @field_validator("context")
    @classmethod
    def check_context(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        if value is None:
            return value
        if not _is_encodable(json.dumps(value, ensure_ascii=False, default=str)):
            raise ValueError("context contains text that is not valid UTF-8")
        return value


def _is_encodable(text: str) -> bool:
    """False for strings holding lone surrogates, which JSON escapes allow."""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class AgentResponse(BaseModel):
    """Response body for POST /api/agent."""

    thinking: str = ""
    plan: dict[str, Any] | None = None
    summary: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(exclude={"summary"})
        if self.summary is not None:
            payload["summary"] = self.summary
        return payload


class HealthResponse(BaseModel):
    """Response body for GET /api/health."""

    status: str
    timestamp: str
    version: str = APP_VERSION
    cache_size: int
    rate_limits: int


class ErrorResponse(BaseModel):
    """Body of every non-2xx JSON response."""

    error: str
    status: int
    timestamp: str
    details: dict[str, Any] | None = None
