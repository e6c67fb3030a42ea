"""
Rate Limiting Unit Tests

Token buckets, per-client keys and the 429 raised when an allowance is
used up.
"""

from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import TooManyRequests
from app.middleware.rate_limit import (
    PRUNE_INTERVAL,
    RateLimiter,
    TokenBucket,
    ai_limiter,
    otp_limiter,
    quiz_limiter,
    verify_limiter,
)


CLOCK = "app.middleware.rate_limit.time.monotonic"


def make_request(ip: str = "127.0.0.1", user=None, forwarded: str = None) -> MagicMock:
    request = MagicMock()
    request.client.host = ip
    request.headers = {"X-Forwarded-For": forwarded} if forwarded else {}
    request.state.user = user
    return request


class TestTokenBucket:

    def test_starts_full_and_drains(self):
        bucket = TokenBucket(capacity=2, refill_rate=0.1)

        assert [bucket.take() for _ in range(3)] == [True, True, False]

    def test_refills_with_elapsed_time(self):
        with patch(CLOCK, return_value=100.0):
            bucket = TokenBucket(capacity=10, refill_rate=2.0)
            for _ in range(10):
                bucket.take()
        with patch(CLOCK, return_value=102.0):
            bucket.refill()

        assert bucket.tokens == pytest.approx(4.0)

    def test_refill_is_capped(self):
        with patch(CLOCK, return_value=0.0):
            bucket = TokenBucket(capacity=3, refill_rate=1.0)
        with patch(CLOCK, return_value=1000.0):
            bucket.refill()

        assert bucket.tokens == 3.0

    def test_seconds_until_available_rounds_up(self):
        with patch(CLOCK, return_value=100.0):
            bucket = TokenBucket(capacity=1, refill_rate=0.25)
            bucket.take()

        assert bucket.seconds_until_available() == 4


class TestRateLimiter:

    def test_blocks_after_allowance(self):
        limiter = RateLimiter("test", limit=3, window=60)
        request = make_request()

        for _ in range(3):
            limiter.hit(request)
        with pytest.raises(TooManyRequests) as exc_info:
            limiter.hit(request)

        assert exc_info.value.status_code == 429
        assert int(exc_info.value.headers["Retry-After"]) >= 1

    def test_clients_have_separate_allowances(self):
        limiter = RateLimiter("test", limit=1, window=60)

        limiter.hit(make_request("10.0.0.1"))
        limiter.hit(make_request("10.0.0.2"))
        with pytest.raises(TooManyRequests):
            limiter.hit(make_request("10.0.0.1"))

    def test_client_key_prefers_account_then_forwarded_ip(self):
        account = MagicMock()
        account.id = "abc"

        assert RateLimiter.client_key(make_request(user=account)) == "user:abc"
        assert RateLimiter.client_key(make_request(forwarded="203.0.113.9, 10.0.0.1")) == "ip:203.0.113.9"
        assert RateLimiter.client_key(make_request("198.51.100.7")) == "ip:198.51.100.7"

    def test_reset_restores_allowance(self):
        limiter = RateLimiter("test", limit=1, window=60)
        request = make_request()
        limiter.hit(request)

        limiter.reset()

        limiter.hit(request)

    def test_prune_drops_idle_buckets(self):
        with patch(CLOCK, return_value=1000.0):
            limiter = RateLimiter("test", limit=5, window=3600 * 2)
            limiter.hit(make_request("10.0.0.1"))
        with patch(CLOCK, return_value=5000.0):
            limiter.hit(make_request("10.0.0.2"))

            assert limiter.prune(idle_for=3600) == 1

        assert list(limiter._buckets) == ["ip:10.0.0.2"]

    def test_hits_sweep_idle_buckets_periodically(self):
        with patch(CLOCK, return_value=1000.0):
            limiter = RateLimiter("test", limit=5, window=60)
            for n in range(50):
                limiter.hit(make_request(forwarded=f"203.0.113.{n}"))

        with patch(CLOCK, return_value=1000.0 + PRUNE_INTERVAL - 1):
            limiter.hit(make_request("10.0.0.1"))
        assert len(limiter._buckets) == 51

        with patch(CLOCK, return_value=1000.0 + PRUNE_INTERVAL + 60):
            limiter.hit(make_request("10.0.0.2"))
        assert set(limiter._buckets) == {"ip:10.0.0.1", "ip:10.0.0.2"}

    def test_sweep_keeps_partly_spent_buckets(self):
        with patch(CLOCK, return_value=0.0):
            limiter = RateLimiter("test", limit=2, window=600)
            limiter.hit(make_request("10.0.0.1"))
            limiter.hit(make_request("10.0.0.1"))

        with patch(CLOCK, return_value=float(PRUNE_INTERVAL)):
            limiter.hit(make_request("10.0.0.2"))

        assert "ip:10.0.0.1" in limiter._buckets


def test_configured_limits():
    assert (otp_limiter.limit, otp_limiter.window) == (5, 60)
    assert (quiz_limiter.limit, quiz_limiter.window) == (3, 900)
    assert (ai_limiter.limit, ai_limiter.window) == (10, 60)
    assert (verify_limiter.limit, verify_limiter.window) == (10, 300)
