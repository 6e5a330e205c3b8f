"""
Tests for per-client rate limiting.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from portfolio.core.rate_limit import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimitDependency,
    RateLimitTier,
    build_rate_limit_key,
    get_client_ip,
)


def make_request(settings, headers=None, client=("192.0.2.10", 5000)) -> Request:
    app = MagicMock()
    app.state.settings = settings
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/contact",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
        "app": app,
    }
    return Request(scope)


class TestInMemoryRateLimiter:
    """Tests for the process-local sliding window."""

    @pytest.mark.asyncio
    async def test_limits_after_budget(self):
        limiter = InMemoryRateLimiter()

        results = [await limiter.is_rate_limited("k", limit=2, window=60) for _ in range(3)]

        assert [r[0] for r in results] == [False, False, True]
        assert results[0][1] == 1
        assert results[2][2] > 0

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        limiter = InMemoryRateLimiter()
        await limiter.is_rate_limited("a", limit=1, window=60)

        limited, _, _ = await limiter.is_rate_limited("b", limit=1, window=60)

        assert not limited


class TestHelpers:
    """Tests for client identification and tier configuration."""

    def test_client_ip_prefers_forwarded_for(self, test_settings):
        request = make_request(test_settings, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        assert get_client_ip(request) == "203.0.113.7"

    def test_client_ip_falls_back_to_peer(self, test_settings):
        assert get_client_ip(make_request(test_settings)) == "192.0.2.10"
        assert get_client_ip(make_request(test_settings, client=None)) == "unknown"

    def test_key(self):
        assert build_rate_limit_key(RateLimitTier.CONTACT, "1.2.3.4") == "rate_limit:contact:ip_1.2.3.4"

    def test_tier_config(self, test_settings):
        contact = RateLimitConfig.for_tier(RateLimitTier.CONTACT, test_settings)
        standard = RateLimitConfig.for_tier(RateLimitTier.STANDARD, test_settings)

        assert (contact.requests, contact.window) == (5, 3600)
        assert (standard.requests, standard.window) == (100, 900)
        assert standard.message == "Too many requests from this IP, please try again later."


class TestRateLimitDependency:
    """Tests for the FastAPI dependency."""

    @pytest.mark.asyncio
    async def test_disabled_does_nothing(self, test_settings):
        request = make_request(test_settings)
        with patch("portfolio.core.rate_limit.get_rate_limiter") as get_limiter:
            await RateLimitDependency(RateLimitTier.CONTACT)(request)
        get_limiter.assert_not_called()

    @pytest.mark.asyncio
    async def test_uses_redis_when_available(self, settings_factory):
        request = make_request(settings_factory(rate_limit_enabled=True))
        redis_limiter = MagicMock()
        redis_limiter.is_rate_limited = AsyncMock(return_value=(False, 4, 0))

        with patch("portfolio.core.rate_limit.get_rate_limiter", return_value=redis_limiter):
            await RateLimitDependency(RateLimitTier.CONTACT)(request)

        redis_limiter.is_rate_limited.assert_awaited_once_with("rate_limit:contact:ip_192.0.2.10", 5, 3600)
        assert request.state.rate_limit_remaining == 4

    @pytest.mark.asyncio
    async def test_falls_back_to_memory_and_raises_429(self, settings_factory):
        config = settings_factory(rate_limit_enabled=True, rate_limit_contact_requests=1)
        unreachable = MagicMock()
        unreachable.is_rate_limited = AsyncMock(side_effect=ConnectionError("redis down"))
        dependency = RateLimitDependency(RateLimitTier.CONTACT)

        with patch("portfolio.core.rate_limit.get_rate_limiter", return_value=unreachable):
            await dependency(make_request(config))
            with pytest.raises(HTTPException) as exc_info:
                await dependency(make_request(config))

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail == "Too many contact form submissions. Please try again later."
        assert exc_info.value.headers["X-RateLimit-Remaining"] == "0"
        assert int(exc_info.value.headers["Retry-After"]) > 0
