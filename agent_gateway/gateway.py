"""
Process-wide gateway state.

One GatewayState is built per application in create_app() and reached by
handlers through request.app.state.gateway. It owns the rate limiter, the
response cache and the agent pipeline.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from agent_gateway.api.prometheus import set_state_sizes
from agent_gateway.api.schemas import AgentResponse
from agent_gateway.cache.response_cache import ResponseCache
from agent_gateway.config.settings import Settings
from agent_gateway.graph.builder import AgentPipeline
from agent_gateway.graph.nodes import AgentNodes
from agent_gateway.llm.client import LLMClient
from agent_gateway.prompts.manager import PromptBuilder
from agent_gateway.ratelimit.limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class GatewayState:
    settings: Settings
    rate_limiter: RateLimiter
    cache: ResponseCache[AgentResponse]
    pipeline: AgentPipeline
    clock: Callable[[], float] = time.monotonic
    next_maintenance_at: float = 0.0

    def run_maintenance(self) -> bool:
        """
        Per-request housekeeping.

        Returns immediately until the maintenance interval has elapsed, then
        evicts idle rate-limit clients and sweeps expired cache records.
        Returns True when a sweep actually ran.
        """
        now = self.clock()
        if now < self.next_maintenance_at:
            return False
        self.next_maintenance_at = now + self.settings.maintenance_interval_seconds

        self.rate_limiter.evict_idle()
        self.cache.sweep()
        set_state_sizes(len(self.cache), len(self.rate_limiter))
        return True


def build_gateway_state(
    settings: Settings,
    llm_client: LLMClient | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> GatewayState:
    """
    Wire the gateway components together.

    llm_client overrides the client built from settings. Without an
    override and without a configured credential the pipeline runs in
    mock mode.
    """
    if llm_client is None and settings.has_llm_credentials:
        llm_client = LLMClient.from_settings(settings)

    if llm_client is None:
        logger.warning("[STARTUP] OPENROUTER_API_KEY not set, agent runs in mock mode")

    nodes = AgentNodes(
        prompt_builder=PromptBuilder(summary_result_limit=settings.summary_result_limit),
        llm_client=llm_client,
    )

    return GatewayState(
        settings=settings,
        rate_limiter=RateLimiter(
            capacity=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
            idle_seconds=settings.rate_limit_idle_seconds,
            clock=clock,
        ),
        cache=ResponseCache(default_ttl_seconds=settings.cache_ttl_seconds, clock=clock),
        pipeline=AgentPipeline(nodes),
        clock=clock,
        next_maintenance_at=clock() + settings.maintenance_interval_seconds,
    )
