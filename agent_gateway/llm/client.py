"""
=============================================================================
LLM Client
=============================================================================

Single upstream chat-completion call through LangChain's ChatOpenAI,
pointed at OpenRouter's OpenAI-compatible endpoint.

FAILURE MODEL:
--------------
- Non-success HTTP status -> UpstreamError with the upstream status and
  the parsed error body attached as details.
- Transport failure (connect error, timeout) -> UpstreamError with the
  reason attached.
- No retries: max_retries=0 on the SDK and no retry wrapper here. A failed
  call surfaces immediately.

When no credential is configured this class is never constructed; the
pipeline answers with the mock plan instead.
=============================================================================
"""

import logging
import time
from typing import Any

import httpx
import openai
from langchain_openai import ChatOpenAI

from agent_gateway.api.prometheus import record_llm_latency, record_upstream_error
from agent_gateway.config.langfuse import get_langfuse_callbacks
from agent_gateway.config.settings import Settings
from agent_gateway.errors import UpstreamError

logger = logging.getLogger(__name__)


def build_chat_model(
    settings: Settings, http_async_client: httpx.AsyncClient | None = None
) -> ChatOpenAI:
    """ChatOpenAI configured for OpenRouter."""
    return ChatOpenAI(
        base_url=settings.openrouter_base_url,
        api_key=settings.openrouter_api_key,
        model=settings.openrouter_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
        default_headers={
            "HTTP-Referer": settings.app_referer,
            "X-Title": settings.app_title,
        },
        http_async_client=http_async_client,
    )


def _response_body(error: openai.APIStatusError) -> Any:
    """Best-effort decode of the upstream error body."""
    if error.body is not None:
        return error.body
    try:
        return error.response.json()
    except ValueError:
        return error.response.text


class LLMClient:
    """Issues the upstream call and normalizes its failures."""

    def __init__(self, chat_model: ChatOpenAI, model_name: str = ""):
        self._chat_model = chat_model
        self.model_name = model_name or getattr(chat_model, "model_name", "")

    @classmethod
    def from_settings(
        cls, settings: Settings, http_async_client: httpx.AsyncClient | None = None
    ) -> "LLMClient":
        return cls(build_chat_model(settings, http_async_client), settings.openrouter_model)

    async def call(self, messages: list[dict[str, str]]) -> str:
        """Send messages upstream and return the raw text content of the reply."""
        logger.info(f"[LLM] Calling model={self.model_name} messages={len(messages)}")
        start_time = time.perf_counter()

        try:
            response = await self._chat_model.ainvoke(
                messages, config={"callbacks": get_langfuse_callbacks()}
            )
        except openai.APIStatusError as e:
            body = _response_body(e)
            logger.error(f"[LLM] Upstream returned status={e.status_code}: {body}")
            record_upstream_error("status")
            raise UpstreamError(
                details={"upstream_status": e.status_code, "upstream_body": body}
            ) from e
        except (openai.APIConnectionError, httpx.HTTPError) as e:
            logger.error(f"[LLM] Transport failure: {e!r}")
            record_upstream_error("transport")
            raise UpstreamError(details={"reason": str(e) or type(e).__name__}) from e

        elapsed = time.perf_counter() - start_time
        record_llm_latency(elapsed)
        logger.info(f"[LLM] Reply received in {elapsed:.2f}s")

        content = response.content
        if isinstance(content, list):
            # Some providers return content blocks instead of a plain string
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return content
