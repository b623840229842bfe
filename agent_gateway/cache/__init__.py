# Cache package
from agent_gateway.cache.response_cache import CacheRecord, ResponseCache, fingerprint

__all__ = ["CacheRecord", "ResponseCache", "fingerprint"]
