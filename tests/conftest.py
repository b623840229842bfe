"""
Test configuration and fixtures.
"""

import httpx
import pytest

from agent_gateway.config.settings import Settings
from agent_gateway.main import create_app

PLAN_REPLY = """
<thinking>
The user wants flights from New York to Los Angeles. NYC has three airports.
</thinking>

<plan>
{
  "steps": [
    {
      "action": "generate_search_queries",
      "parameters": {
        "origins": ["JFK", "LGA", "EWR"],
        "destinations": ["LAX"],
        "departureDateRange": "next-weekend",
        "returnDateRange": "one-way"
      }
    },
    {"action": "execute_flight_fetch", "parameters": {"useExtension": true}}
  ]
}
</plan>
"""


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLLMClient:
    """Stands in for LLMClient; records every message list it receives."""

    def __init__(self, reply: str = PLAN_REPLY, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[list[dict[str, str]]] = []

    async def call(self, messages: list[dict[str, str]]) -> str:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's .env and environment."""
    return Settings(
        _env_file=None,
        openrouter_api_key="",
        langfuse_public_key="",
        langfuse_secret_key="",
        rate_limit_requests=20,
        rate_limit_window_seconds=60.0,
        rate_limit_idle_seconds=600.0,
        maintenance_interval_seconds=60.0,
        cache_ttl_seconds=600.0,
        summary_result_limit=10,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def make_client(settings: Settings, clock: FakeClock):
    """Factory for an httpx client bound to a fresh gateway app."""

    def _make(llm_client=None, **overrides) -> httpx.AsyncClient:
        app_settings = settings.model_copy(update=overrides) if overrides else settings
        app = create_app(app_settings, llm_client=llm_client, clock=clock)
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver",
        )

    return _make


@pytest.fixture
def sample_query() -> str:
    """Sample user query for testing."""
    return "Find flights from NYC to LA"


@pytest.fixture
def sample_results() -> list[dict]:
    """Flight listings as relayed back by the browser extension."""
    return [
        {
            "airline": f"Airline {i}",
            "price": 150 + i * 25,
            "origin": "JFK",
            "destination": "LAX",
            "stops": i % 2,
        }
        for i in range(15)
    ]
