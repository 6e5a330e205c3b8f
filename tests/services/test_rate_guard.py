"""
Tests for rapid submission detection.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from portfolio.services.rate_guard import RapidCheck, RateGuard
from portfolio.services.submission_store import SubmissionStore


def record(email: str, ip_address: str = "203.0.113.7"):
    return {
        "name": "Jo Smith",
        "email": email,
        "message": "Hello, I would like to talk about a project.",
        "ip_address": ip_address,
    }


@pytest.fixture
def store(async_session, test_settings) -> SubmissionStore:
    return SubmissionStore(async_session, test_settings)


class TestRateGuard:
    """Tests for RateGuard.check."""

    @pytest.mark.asyncio
    async def test_below_threshold_is_not_rapid(self, store, test_settings):
        await store.insert(record("jo@x.io"))
        await store.insert(record("jo@x.io"))

        check = await RateGuard(store, test_settings).check("jo@x.io", "198.51.100.1")

        assert check == RapidCheck(count=2, is_rapid=False, window_label="5 minutes")

    @pytest.mark.asyncio
    async def test_threshold_reached_is_rapid(self, store, test_settings):
        for _ in range(3):
            await store.insert(record("jo@x.io"))

        check = await RateGuard(store, test_settings).check("jo@x.io", "198.51.100.1")

        assert check.count == 3
        assert check.is_rapid

    @pytest.mark.asyncio
    async def test_same_address_different_emails(self, store, test_settings):
        for email in ("a@x.io", "b@x.io", "c@x.io"):
            await store.insert(record(email, ip_address="198.51.100.1"))

        check = await RateGuard(store, test_settings).check("d@x.io", "198.51.100.1")

        assert check.is_rapid

    @pytest.mark.asyncio
    async def test_check_does_not_record_anything(self, store, test_settings):
        guard = RateGuard(store, test_settings)

        first = await guard.check("jo@x.io", None)
        second = await guard.check("jo@x.io", None)

        assert first == second
        assert first.count == 0

    @pytest.mark.asyncio
    async def test_custom_window_label(self, store, test_settings):
        check = await RateGuard(store, test_settings).check("jo@x.io", None, window_minutes=15)
        assert check.window_label == "15 minutes"

    @pytest.mark.asyncio
    async def test_threshold_from_settings(self, store, settings_factory):
        await store.insert(record("jo@x.io"))

        check = await RateGuard(store, settings_factory(rapid_submission_threshold=1)).check("jo@x.io", None)

        assert check.is_rapid

    @pytest.mark.asyncio
    async def test_fails_open(self, test_settings):
        store = MagicMock()
        store.count_recent = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db gone")))
        store.rollback = AsyncMock()

        check = await RateGuard(store, test_settings).check("jo@x.io", "198.51.100.1")

        assert check == RapidCheck(count=0, is_rapid=False, window_label="5 minutes")
        store.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_leaves_session_usable(self, store, async_session, test_settings, monkeypatch):
        async def dropped_connection(*args):
            connection = await async_session.connection()
            await connection.invalidate()
            raise OperationalError("SELECT count(*)", {}, Exception("server closed the connection unexpectedly"))

        monkeypatch.setattr(store, "count_recent", dropped_connection)

        check = await RateGuard(store, test_settings).check("jo@x.io", "198.51.100.1")
        submission = await store.insert(record("jo@x.io"))

        assert check.count == 0
        assert await store.get(submission.id) is not None
