"""
=============================================================================
Gateway Error Taxonomy
=============================================================================

Every failure inside the gateway is raised as an ApiError subclass that
carries its HTTP status and optional structured details. Components never
write responses themselves: the exception handlers registered in
agent_gateway.api.routes turn an ApiError into a JSON body exactly once.

STATUS MAP:
-----------
- ValidationError         -> 400
- NotFoundError           -> 404
- MethodNotAllowedError   -> 405
- RateLimitedError        -> 429
- InternalError           -> 500
- UnprocessablePlanError  -> 500
- UpstreamError           -> 502
=============================================================================
"""

from typing import Any


class ApiError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status_code}, message={self.message!r})"


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class MethodNotAllowedError(ApiError):
    status_code = 405
    default_message = "Method not allowed"


class RateLimitedError(ApiError):
    """Raised by the router when the limiter rejects a client."""

    status_code = 429
    default_message = "Rate limit exceeded. Try again in a minute."

    def __init__(self, retry_after: int, message: str | None = None):
        super().__init__(message, details={"retry_after_seconds": retry_after})
        self.retry_after = retry_after


class UpstreamError(ApiError):
    """The LLM provider returned a non-success status or was unreachable."""

    status_code = 502
    default_message = "Error communicating with AI service"


class UnprocessablePlanError(ApiError):
    """The <plan> section was present but did not decode to a JSON object."""

    status_code = 500
    default_message = "LLM returned an unprocessable plan"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"
