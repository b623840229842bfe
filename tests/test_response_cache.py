"""
=============================================================================
Response Cache Tests
=============================================================================

WHAT THESE TESTS VERIFY:
------------------------
1. Records are served until their TTL passes, then removed on read
2. set() overwrites unconditionally
3. sweep() drops every expired record
4. Fingerprints ignore context key order and treat {} like no context
=============================================================================
"""

import pytest

from agent_gateway.api.schemas import AgentResponse
from agent_gateway.cache import ResponseCache, fingerprint
from tests.conftest import FakeClock


@pytest.fixture
def cache(clock: FakeClock) -> ResponseCache[AgentResponse]:
    return ResponseCache(default_ttl_seconds=600.0, clock=clock)


class TestExpiry:
    def test_hit_within_ttl(self, cache: ResponseCache, clock: FakeClock):
        response = AgentResponse(thinking="t", plan={"steps": []})
        cache.set("k", response)

        clock.advance(600)  # expires_at is inclusive

        assert cache.get("k") == response

    def test_expired_record_is_absent_and_removed(self, cache: ResponseCache, clock: FakeClock):
        cache.set("k", AgentResponse(thinking="t"))
        clock.advance(600.01)

        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_call_ttl(self, cache: ResponseCache, clock: FakeClock):
        cache.set("short", AgentResponse(), ttl_seconds=5)
        clock.advance(6)

        assert cache.get("short") is None

    def test_missing_key(self, cache: ResponseCache):
        assert cache.get("nope") is None
        assert "nope" not in cache


class TestWrites:
    def test_set_overwrites(self, cache: ResponseCache, clock: FakeClock):
        cache.set("k", AgentResponse(thinking="first"), ttl_seconds=5)
        clock.advance(4)
        cache.set("k", AgentResponse(thinking="second"))
        clock.advance(10)

        assert cache.get("k").thinking == "second"

    def test_sweep_removes_only_expired(self, cache: ResponseCache, clock: FakeClock):
        cache.set("old", AgentResponse(), ttl_seconds=10)
        cache.set("new", AgentResponse(), ttl_seconds=1000)
        clock.advance(11)

        assert cache.sweep() == 1
        assert len(cache) == 1
        assert "new" in cache

    def test_clear(self, cache: ResponseCache):
        cache.set("a", AgentResponse())
        cache.clear()
        assert len(cache) == 0


class TestFingerprint:
    def test_context_key_order_is_irrelevant(self):
        a = fingerprint("q", {"task": "handle_error", "errorDetails": {"code": 1, "msg": "x"}})
        b = fingerprint("q", {"errorDetails": {"msg": "x", "code": 1}, "task": "handle_error"})
        assert a == b

    def test_no_context_equals_empty_context(self):
        assert fingerprint("q", None) == fingerprint("q", {})

    def test_query_and_context_both_matter(self):
        base = fingerprint("Find flights from NYC to LA", None)
        assert base != fingerprint("Find flights from NYC to SF", None)
        assert base != fingerprint("Find flights from NYC to LA", {"userFeedback": "cheaper"})

    def test_fingerprint_is_stable(self):
        assert fingerprint("q", {"a": [1, 2]}) == fingerprint("q", {"a": [1, 2]})
        assert len(fingerprint("q", None)) == 64

    def test_unencodable_text_still_hashes(self):
        assert fingerprint("flights \ud800 to LA", {"note": "\udc00"}) == fingerprint(
            "flights \ud800 to LA", {"note": "\udc00"}
        )
