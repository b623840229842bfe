"""
=============================================================================
Gateway API Tests
=============================================================================

End-to-end tests against the ASGI app with a fake clock and, where an LLM
is needed, a FakeLLMClient. No network access.

WHAT THESE TESTS VERIFY:
------------------------
1. Mock mode answers without a credential and is cached like any reply
2. Cache HIT/MISS behavior and TTL expiry
3. Rate limiting: 429 after capacity, reset per window, per-IP isolation
4. Input validation and routing errors as JSON with CORS headers
5. Upstream failures are 502 and never cached
=============================================================================
"""

import pytest

from agent_gateway.config.settings import APP_VERSION
from agent_gateway.errors import UpstreamError
from agent_gateway.prompts.manager import SUMMARY_SYSTEM_PROMPT
from tests.conftest import FakeClock, FakeLLMClient

AGENT = "/api/agent"
HEALTH = "/api/health"

CORS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "GET, POST, OPTIONS",
    "access-control-allow-headers": "Content-Type, Authorization",
}


def assert_cors(response) -> None:
    for name, value in CORS.items():
        assert response.headers[name] == value


def assert_error_shape(response, status: int) -> dict:
    assert response.status_code == status
    assert response.headers["content-type"].startswith("application/json")
    body = response.json()
    assert body["status"] == status
    assert isinstance(body["error"], str) and body["error"]
    assert body["timestamp"]
    assert_cors(response)
    return body


# =============================================================================
# Health and preflight
# =============================================================================


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, make_client):
        async with make_client() as client:
            response = await client.get(HEALTH)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == APP_VERSION
        assert body["cache_size"] == 0
        assert body["rate_limits"] == 1
        assert "T" in body["timestamp"]
        assert_cors(response)

    @pytest.mark.asyncio
    async def test_health_reports_cache_size(self, make_client, sample_query):
        async with make_client() as client:
            await client.post(AGENT, json={"query": sample_query})
            response = await client.get(HEALTH)

        assert response.json()["cache_size"] == 1

    @pytest.mark.asyncio
    async def test_metrics(self, make_client):
        async with make_client() as client:
            await client.get(HEALTH)
            response = await client.get("/metrics")

        assert response.status_code == 200
        assert "gateway_requests_total" in response.text


class TestPreflight:
    @pytest.mark.asyncio
    async def test_options_returns_204_with_cors(self, make_client):
        async with make_client() as client:
            response = await client.options(AGENT)

        assert response.status_code == 204
        assert response.content == b""
        assert_cors(response)

    @pytest.mark.asyncio
    async def test_options_is_not_rate_limited(self, make_client):
        async with make_client(rate_limit_requests=1) as client:
            await client.get(HEALTH)
            for _ in range(5):
                response = await client.options("/anything")
                assert response.status_code == 204

            assert (await client.get(HEALTH)).status_code == 429


# =============================================================================
# Agent endpoint
# =============================================================================


class TestMockMode:
    @pytest.mark.asyncio
    async def test_mock_plan_then_cache_hit(self, make_client, sample_query):
        async with make_client() as client:
            first = await client.post(AGENT, json={"query": sample_query})
            second = await client.post(AGENT, json={"query": sample_query})

        assert first.status_code == 200
        assert first.headers["x-cache"] == "MISS"
        body = first.json()
        assert body["thinking"].startswith("[MOCK RESPONSE")
        assert body["plan"]["steps"][0]["action"] == "generate_search_queries"
        assert body["plan"]["mock"] is True
        assert "summary" not in body
        assert_cors(first)

        assert second.status_code == 200
        assert second.headers["x-cache"] == "HIT"
        assert second.json() == body


class TestCaching:
    @pytest.mark.asyncio
    async def test_llm_called_once_for_repeat_request(
        self, make_client, fake_llm: FakeLLMClient, sample_query
    ):
        async with make_client(fake_llm) as client:
            first = await client.post(AGENT, json={"query": sample_query})
            second = await client.post(AGENT, json={"query": sample_query})

        assert first.headers["x-cache"] == "MISS"
        assert second.headers["x-cache"] == "HIT"
        assert first.json() == second.json()
        assert first.json()["plan"]["steps"][0]["parameters"]["origins"] == ["JFK", "LGA", "EWR"]
        assert len(fake_llm.calls) == 1

    @pytest.mark.asyncio
    async def test_expired_entry_calls_llm_again(
        self, make_client, fake_llm: FakeLLMClient, clock: FakeClock, sample_query
    ):
        async with make_client(fake_llm) as client:
            await client.post(AGENT, json={"query": sample_query})
            clock.advance(601)
            response = await client.post(AGENT, json={"query": sample_query})

        assert response.headers["x-cache"] == "MISS"
        assert len(fake_llm.calls) == 2

    @pytest.mark.asyncio
    async def test_context_key_order_hits_cache(self, make_client, fake_llm: FakeLLMClient):
        async with make_client(fake_llm) as client:
            await client.post(
                AGENT,
                json={"query": "q", "context": {"task": "handle_error", "errorDetails": "x"}},
            )
            response = await client.post(
                AGENT,
                json={"query": "q", "context": {"errorDetails": "x", "task": "handle_error"}},
            )

        assert response.headers["x-cache"] == "HIT"
        assert len(fake_llm.calls) == 1

    @pytest.mark.asyncio
    async def test_different_context_misses(self, make_client, fake_llm: FakeLLMClient, sample_query):
        async with make_client(fake_llm) as client:
            await client.post(AGENT, json={"query": sample_query})
            response = await client.post(
                AGENT, json={"query": sample_query, "context": {"userFeedback": "nonstop only"}}
            )

        assert response.headers["x-cache"] == "MISS"
        assert len(fake_llm.calls) == 2


class TestConversationTasks:
    @pytest.mark.asyncio
    async def test_summarize_reply(self, make_client, sample_query, sample_results):
        llm = FakeLLMClient(reply="The cheapest option is Airline 0 at $150, nonstop.")
        async with make_client(llm) as client:
            response = await client.post(
                AGENT,
                json={"query": sample_query, "context": {"task": "summarize", "results": sample_results}},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["summary"] == "The cheapest option is Airline 0 at $150, nonstop."
        assert body["plan"] is None
        assert body["thinking"] == ""

        messages = llm.calls[0]
        assert messages[0] == {"role": "system", "content": SUMMARY_SYSTEM_PROMPT}
        assert "Airline 10" not in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_feedback_reaches_prompt(self, make_client, fake_llm: FakeLLMClient, sample_query):
        async with make_client(fake_llm) as client:
            await client.post(
                AGENT, json={"query": sample_query, "context": {"userFeedback": "morning flights"}}
            )

        user_message = fake_llm.calls[0][1]["content"]
        assert user_message == f"Original query: {sample_query}\nFeedback: morning flights"

    @pytest.mark.asyncio
    async def test_unknown_task_uses_base_prompt(
        self, make_client, fake_llm: FakeLLMClient, sample_query
    ):
        async with make_client(fake_llm) as client:
            response = await client.post(
                AGENT, json={"query": sample_query, "context": {"task": "book_hotel"}}
            )

        assert response.status_code == 200
        assert fake_llm.calls[0][1] == {"role": "user", "content": sample_query}

    @pytest.mark.asyncio
    async def test_summarize_with_bad_results(self, make_client, fake_llm: FakeLLMClient):
        async with make_client(fake_llm) as client:
            response = await client.post(
                AGENT, json={"query": "q", "context": {"task": "summarize", "results": "many"}}
            )

        body = assert_error_shape(response, 400)
        assert "results" in body["error"]
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_summarize_with_bad_results_in_mock_mode(self, make_client):
        async with make_client() as client:
            response = await client.post(
                AGENT, json={"query": "q", "context": {"task": "summarize", "results": "many"}}
            )

        body = assert_error_shape(response, 400)
        assert "results" in body["error"]


# =============================================================================
# Failures
# =============================================================================


class TestUpstreamFailures:
    @pytest.mark.asyncio
    async def test_upstream_error_is_502_and_not_cached(self, make_client, sample_query):
        llm = FakeLLMClient(
            error=UpstreamError(details={"upstream_status": 500, "upstream_body": {"message": "boom"}})
        )
        async with make_client(llm) as client:
            first = await client.post(AGENT, json={"query": sample_query})
            second = await client.post(AGENT, json={"query": sample_query})

        body = assert_error_shape(first, 502)
        assert body["error"] == "Error communicating with AI service"
        assert body["details"]["upstream_status"] == 500
        assert "x-cache" not in first.headers

        assert second.status_code == 502
        assert len(llm.calls) == 2

    @pytest.mark.asyncio
    async def test_malformed_plan_is_500_and_not_cached(self, make_client, sample_query):
        llm = FakeLLMClient(reply="<thinking>ok</thinking><plan>{not json</plan>")
        async with make_client(llm) as client:
            first = await client.post(AGENT, json={"query": sample_query})
            second = await client.post(AGENT, json={"query": sample_query})

        assert_error_shape(first, 500)
        assert second.status_code == 500
        assert len(llm.calls) == 2

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_500_json(self, make_client, sample_query):
        llm = FakeLLMClient(error=RuntimeError("kaboom"))
        async with make_client(llm) as client:
            response = await client.post(AGENT, json={"query": sample_query})

        body = assert_error_shape(response, 500)
        assert "kaboom" not in body["error"]


# =============================================================================
# Validation and routing
# =============================================================================


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [{}, {"query": ""}, {"query": "   "}, {"query": 42}, {"query": None}],
    )
    async def test_invalid_query(self, make_client, payload):
        async with make_client() as client:
            response = await client.post(AGENT, json=payload)

        body = assert_error_shape(response, 400)
        assert body["error"] == "Missing or invalid query parameter"
        assert "query" in body["error"]

    @pytest.mark.asyncio
    async def test_query_too_long(self, make_client):
        async with make_client() as client:
            response = await client.post(AGENT, json={"query": "x" * 2001})

        body = assert_error_shape(response, 400)
        assert body["error"] == "Missing or invalid query parameter"

    @pytest.mark.asyncio
    async def test_query_limit_follows_app_settings(self, make_client, fake_llm: FakeLLMClient):
        async with make_client(fake_llm, max_query_length=10) as client:
            too_long = await client.post(AGENT, json={"query": "Find flights from NYC to LA"})
            short = await client.post(AGENT, json={"query": "NYC to LA"})

        body = assert_error_shape(too_long, 400)
        assert body["error"] == "Missing or invalid query parameter"
        assert short.status_code == 200
        assert len(fake_llm.calls) == 1

    @pytest.mark.asyncio
    async def test_lone_surrogate_in_query(self, make_client):
        async with make_client() as client:
            response = await client.post(
                AGENT,
                content=b'{"query": "flights \\ud800 to LA"}',
                headers={"Content-Type": "application/json"},
            )

        body = assert_error_shape(response, 400)
        assert body["error"] == "Missing or invalid query parameter"

    @pytest.mark.asyncio
    async def test_lone_surrogate_in_context(self, make_client, fake_llm: FakeLLMClient):
        async with make_client(fake_llm) as client:
            response = await client.post(
                AGENT,
                content=b'{"query": "q", "context": {"userFeedback": "\\udc00"}}',
                headers={"Content-Type": "application/json"},
            )

        body = assert_error_shape(response, 400)
        assert body["error"] == "Invalid request body"
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_context_must_be_object(self, make_client):
        async with make_client() as client:
            response = await client.post(AGENT, json={"query": "q", "context": ["a"]})

        body = assert_error_shape(response, 400)
        assert body["error"] == "Invalid request body"

    @pytest.mark.asyncio
    async def test_invalid_json(self, make_client):
        async with make_client() as client:
            response = await client.post(
                AGENT, content=b"{not json", headers={"Content-Type": "application/json"}
            )

        assert_error_shape(response, 400)


class TestRouting:
    @pytest.mark.asyncio
    async def test_wrong_method(self, make_client):
        async with make_client() as client:
            response = await client.get(AGENT)

        body = assert_error_shape(response, 405)
        assert body["error"] == "Method not allowed"

    @pytest.mark.asyncio
    async def test_unknown_path(self, make_client):
        async with make_client() as client:
            response = await client.get("/api/nope")

        body = assert_error_shape(response, 404)
        assert body["error"] == "Not found"


# =============================================================================
# Rate limiting
# =============================================================================


class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_21st_request_is_rejected(self, make_client, sample_query):
        async with make_client() as client:
            for _ in range(20):
                response = await client.post(AGENT, json={"query": sample_query})
                assert response.status_code == 200

            response = await client.post(AGENT, json={"query": sample_query})

        body = assert_error_shape(response, 429)
        assert "Rate limit exceeded" in body["error"]
        assert response.headers["retry-after"] == "60"
        assert body["details"]["retry_after_seconds"] == 60

    @pytest.mark.asyncio
    async def test_window_reset(self, make_client, clock: FakeClock):
        async with make_client(rate_limit_requests=2) as client:
            assert (await client.get(HEALTH)).status_code == 200
            assert (await client.get(HEALTH)).status_code == 200
            assert (await client.get(HEALTH)).status_code == 429

            clock.advance(61)

            assert (await client.get(HEALTH)).status_code == 200

    @pytest.mark.asyncio
    async def test_clients_are_isolated(self, make_client):
        first_ip = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
        second_ip = {"X-Forwarded-For": "198.51.100.4"}

        async with make_client(rate_limit_requests=2) as client:
            for _ in range(2):
                await client.get(HEALTH, headers=first_ip)
            assert (await client.get(HEALTH, headers=first_ip)).status_code == 429
            assert (await client.get(HEALTH, headers=second_ip)).status_code == 200

            response = await client.get(HEALTH, headers=second_ip)
            assert response.json()["rate_limits"] == 2

    @pytest.mark.asyncio
    async def test_cf_connecting_ip_wins(self, make_client):
        async with make_client(rate_limit_requests=1) as client:
            headers = {"CF-Connecting-IP": "192.0.2.1", "X-Forwarded-For": "198.51.100.4"}
            await client.get(HEALTH, headers=headers)

            assert (await client.get(HEALTH, headers=headers)).status_code == 429
            assert (
                await client.get(HEALTH, headers={"X-Forwarded-For": "198.51.100.4"})
            ).status_code == 200

    @pytest.mark.asyncio
    async def test_rate_limit_applies_before_routing(self, make_client):
        async with make_client(rate_limit_requests=1) as client:
            assert (await client.get("/nowhere")).status_code == 404
            response = await client.get("/nowhere")

        assert_error_shape(response, 429)

    @pytest.mark.asyncio
    async def test_rejected_request_never_reaches_cache_or_llm(
        self, make_client, fake_llm: FakeLLMClient
    ):
        caller = {"X-Forwarded-For": "203.0.113.9"}
        observer = {"X-Forwarded-For": "203.0.113.10"}

        async with make_client(fake_llm, rate_limit_requests=3) as client:
            for i in range(3):
                response = await client.post(
                    AGENT, json={"query": f"Flights from BOS to SFO, option {i}"}, headers=caller
                )
                assert response.status_code == 200

            rejected = await client.post(
                AGENT, json={"query": "Flights from BOS to SFO, option 3"}, headers=caller
            )
            health = await client.get(HEALTH, headers=observer)

        assert rejected.status_code == 429
        assert "x-cache" not in rejected.headers
        assert len(fake_llm.calls) == 3
        assert health.json()["cache_size"] == 3
