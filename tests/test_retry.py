"""Tests for backoff and rate-limit helpers."""

import asyncio
import logging

import httpx
import pytest

from ai_tools_catalog import retry
from ai_tools_catalog.retry import handle_rate_limit
from ai_tools_catalog.retry import is_rate_limit_error
from ai_tools_catalog.retry import retry_after_seconds
from ai_tools_catalog.retry import retry_with_backoff


@pytest.fixture
def sleeps(monkeypatch):
    """Record requested sleep durations instead of sleeping."""
    recorded = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(retry.asyncio, "sleep", fake_sleep)
    return recorded


def flaky(failures, value="ok"):
    calls = {"count": 0}

    async def fn():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise RuntimeError(f"failure {calls['count']}")
        return value

    return fn, calls


def status_error(status, headers=None):
    request = httpx.Request("GET", "https://api.example.com")
    response = httpx.Response(status, headers=headers, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestRetryWithBackoff:
    """Tests for retry_with_backoff."""

    def test_succeeds_on_third_attempt(self, sleeps):
        fn, calls = flaky(2)
        assert asyncio.run(retry_with_backoff(fn, max_retries=3, initial_delay=1.0)) == "ok"
        assert calls["count"] == 3
        assert sleeps == [1.0, 2.0]

    def test_raises_last_error_when_exhausted(self, sleeps):
        fn, calls = flaky(5)
        with pytest.raises(RuntimeError, match="failure 3"):
            asyncio.run(retry_with_backoff(fn, max_retries=3, initial_delay=1.0))
        assert calls["count"] == 3
        assert sleeps == [1.0, 2.0]

    def test_first_try_success_never_sleeps(self, sleeps):
        fn, _ = flaky(0)
        asyncio.run(retry_with_backoff(fn))
        assert sleeps == []

    def test_initial_delay_scales(self, sleeps):
        fn, _ = flaky(3)
        asyncio.run(retry_with_backoff(fn, max_retries=4, initial_delay=0.5))
        assert sleeps == [0.5, 1.0, 2.0]

    def test_each_retry_is_logged(self, sleeps, caplog):
        fn, _ = flaky(1)
        with caplog.at_level(logging.INFO, logger="ai_tools_catalog.retry"):
            asyncio.run(retry_with_backoff(fn, initial_delay=2.0))
        assert "Attempt 1 failed (failure 1), retrying in 2.0s" in caplog.text
        assert sleeps == [2.0]


class TestRateLimit:
    """Tests for rate-limit detection and waiting."""

    def test_http_429(self):
        assert is_rate_limit_error(status_error(429))
        assert not is_rate_limit_error(status_error(500))

    def test_message_patterns(self):
        assert is_rate_limit_error(RuntimeError("Too Many Requests"))
        assert is_rate_limit_error(RuntimeError("API rate limit exceeded"))
        assert not is_rate_limit_error(RuntimeError("connection reset"))

    def test_retry_after_header(self):
        assert retry_after_seconds(status_error(429, {"Retry-After": "7"})) == 7
        assert retry_after_seconds(status_error(429)) == 60
        assert retry_after_seconds(status_error(429, {"Retry-After": "soon"}), default=5) == 5

    def test_handle_rate_limit_sleeps(self, sleeps):
        assert asyncio.run(handle_rate_limit(status_error(429, {"Retry-After": "3"})))
        assert sleeps == [3]

    def test_handle_other_error_does_not_sleep(self, sleeps):
        assert not asyncio.run(handle_rate_limit(RuntimeError("boom")))
        assert sleeps == []
