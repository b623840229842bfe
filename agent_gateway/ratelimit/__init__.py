# Rate limiting package
from agent_gateway.ratelimit.limiter import RateLimiter, RateWindowState

__all__ = ["RateLimiter", "RateWindowState"]
