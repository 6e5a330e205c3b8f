"""
Rate Limiting Module
Per-client sliding window limits for the public API and the contact form.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Optional, Protocol

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from portfolio.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Rate Limit Configuration
# =============================================================================


class RateLimitTier(str, Enum):
    """Rate limit tiers for different endpoint types."""

    STANDARD = "standard"  # Every /api endpoint
    CONTACT = "contact"  # Contact form submissions


@dataclass
class RateLimitConfig:
    """Rate limit configuration for a tier."""

    requests: int  # Number of requests allowed
    window: int  # Time window in seconds
    message: str

    @classmethod
    def for_tier(cls, tier: RateLimitTier, config: Settings) -> "RateLimitConfig":
        if tier == RateLimitTier.CONTACT:
            return cls(
                requests=config.rate_limit_contact_requests,
                window=config.rate_limit_contact_window,
                message="Too many contact form submissions. Please try again later.",
            )
        return cls(
            requests=config.rate_limit_standard_requests,
            window=config.rate_limit_standard_window,
            message="Too many requests from this IP, please try again later.",
        )


class SlidingWindowLimiter(Protocol):
    async def is_rate_limited(self, key: str, limit: int, window: int) -> tuple[bool, int, int]: ...


# =============================================================================
# Redis Rate Limiter
# =============================================================================


class RedisRateLimiter:
    """
    Redis-based sliding window rate limiter.

    Request timestamps live in a sorted set per client so that several
    workers share one budget.
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._redis: Optional[aioredis.Redis] = None

    async def get_redis(self) -> aioredis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
            )
        return self._redis

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def is_rate_limited(self, key: str, limit: int, window: int) -> tuple[bool, int, int]:
        """
        Record a request and check the key's budget.

        Returns:
            Tuple of (is_limited, remaining_requests, retry_after_seconds)
        """
        redis = await self.get_redis()
        now = time.time()

        pipe = redis.pipeline()
        pipe.zremrangebyscore(key, "-inf", now - window)
        pipe.zcard(key)
        pipe.zadd(key, {str(now): now})
        pipe.expire(key, window + 1)
        pipe.zrange(key, 0, 0, withscores=True)
        results = await pipe.execute()

        current_count = results[1]
        oldest_entries = results[4]

        is_limited = current_count >= limit
        remaining = max(0, limit - current_count - 1)

        retry_after = 0
        if is_limited and oldest_entries:
            retry_after = int(window - (now - oldest_entries[0][1])) + 1

        return is_limited, remaining, retry_after


# =============================================================================
# In-Memory Fallback Rate Limiter
# =============================================================================


class InMemoryRateLimiter:
    """
    Process-local rate limiter used when Redis is unreachable.

    Only correct for a single worker; it exists so limits still hold
    while Redis is down.
    """

    def __init__(self, cleanup_interval: int = 60):
        self._requests: dict[str, list[float]] = {}
        self._last_cleanup = time.time()
        self._cleanup_interval = cleanup_interval

    def _cleanup_if_needed(self, max_window: int) -> None:
        now = time.time()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        self._last_cleanup = now
        for key in list(self._requests):
            self._requests[key] = [ts for ts in self._requests[key] if now - ts < max_window]
            if not self._requests[key]:
                del self._requests[key]

    async def is_rate_limited(self, key: str, limit: int, window: int) -> tuple[bool, int, int]:
        self._cleanup_if_needed(max(window, 3600))
        now = time.time()

        timestamps = [ts for ts in self._requests.get(key, []) if ts > now - window]
        self._requests[key] = timestamps

        if len(timestamps) >= limit:
            retry_after = int(window - (now - min(timestamps))) + 1
            return True, 0, retry_after

        timestamps.append(now)
        return False, max(0, limit - len(timestamps)), 0


# Process-wide limiter instances
_rate_limiter: Optional[RedisRateLimiter] = None
_fallback_limiter: Optional[InMemoryRateLimiter] = None
_redis_available: bool = True


def get_rate_limiter(redis_url: str) -> RedisRateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RedisRateLimiter(redis_url)
    return _rate_limiter


def get_fallback_limiter() -> InMemoryRateLimiter:
    global _fallback_limiter
    if _fallback_limiter is None:
        _fallback_limiter = InMemoryRateLimiter()
    return _fallback_limiter


async def close_rate_limiter() -> None:
    """Close the Redis connection and forget recorded requests."""
    global _rate_limiter, _fallback_limiter, _redis_available
    if _rate_limiter:
        await _rate_limiter.close()
        _rate_limiter = None
    _fallback_limiter = None
    _redis_available = True


# =============================================================================
# Helper Functions
# =============================================================================


def get_client_ip(request: Request) -> str:
    """Client address, honouring the first hop of X-Forwarded-For."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def build_rate_limit_key(tier: RateLimitTier, ip_address: str) -> str:
    return f"rate_limit:{tier.value}:ip_{ip_address}"


def get_request_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return getattr(request.app.state, "settings", default_settings)


# =============================================================================
# Rate Limit Dependency
# =============================================================================


class RateLimitDependency:
    """
    FastAPI dependency enforcing a tier's budget per client address.

    Usage:
        @router.post("")
        async def submit(_: RateLimitContact):
            ...
    """

    def __init__(self, tier: RateLimitTier = RateLimitTier.STANDARD):
        self.tier = tier

    async def _check(self, limiter: SlidingWindowLimiter, key: str, config: RateLimitConfig) -> tuple[bool, int, int]:
        return await limiter.is_rate_limited(key, config.requests, config.window)

    async def __call__(self, request: Request) -> None:
        global _redis_available

        app_settings = get_request_settings(request)
        if not app_settings.rate_limit_enabled:
            return

        config = RateLimitConfig.for_tier(self.tier, app_settings)
        key = build_rate_limit_key(self.tier, get_client_ip(request))

        try:
            result = await self._check(get_rate_limiter(app_settings.redis_url), key, config)
            _redis_available = True
        except Exception as e:
            if _redis_available:
                logger.warning(f"Redis rate limiting unavailable, using in-memory fallback: {e}")
                _redis_available = False
            result = await self._check(get_fallback_limiter(), key, config)

        is_limited, remaining, retry_after = result
        reset = int(time.time()) + config.window

        request.state.rate_limit_limit = config.requests
        request.state.rate_limit_remaining = remaining
        request.state.rate_limit_reset = reset

        if is_limited:
            logger.warning(f"Rate limit exceeded: tier={self.tier.value} key={key}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=config.message,
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(config.requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset),
                },
            )


RateLimitStandard = Annotated[None, Depends(RateLimitDependency(RateLimitTier.STANDARD))]
RateLimitContact = Annotated[None, Depends(RateLimitDependency(RateLimitTier.CONTACT))]


# =============================================================================
# Rate Limit Middleware
# =============================================================================


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Copy rate limit state from the request onto X-RateLimit-* headers."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        if hasattr(request.state, "rate_limit_limit"):
            response.headers["X-RateLimit-Limit"] = str(request.state.rate_limit_limit)
            response.headers["X-RateLimit-Remaining"] = str(getattr(request.state, "rate_limit_remaining", 0))
            response.headers["X-RateLimit-Reset"] = str(getattr(request.state, "rate_limit_reset", 0))

        return response
