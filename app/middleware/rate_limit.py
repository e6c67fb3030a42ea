"""
Rate Limiting

Per-client token buckets for the abuse-prone endpoint families: OTP
issuing, code checks, quiz submissions and the AI assistant. A client is the signed-in
account when there is one, otherwise the caller's IP.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Callable, Dict, Optional

from fastapi import Request

from app.core.exceptions import TooManyRequests
from app.core.utils import client_ip


logger = logging.getLogger(__name__)

# Idle buckets are swept at most this often; a bucket idle for a full window
# is back at capacity, so dropping it changes nothing
PRUNE_INTERVAL = 60  # seconds
MAX_BUCKETS = 10_000


@dataclass
class TokenBucket:
    """Holds up to ``capacity`` tokens, refilled at ``refill_rate`` per second."""

    capacity: int
    refill_rate: float
    tokens: float = field(init=False)
    updated_at: float = field(init=False)

    def __post_init__(self):
        self.tokens = float(self.capacity)
        self.updated_at = time.monotonic()

    def refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.updated_at) * self.refill_rate)
        self.updated_at = now

    def take(self) -> bool:
        self.refill()
        if self.tokens < 1:
            return False
        self.tokens -= 1
        return True

    def seconds_until_available(self) -> int:
        if self.tokens >= 1:
            return 0
        return max(1, math.ceil((1 - self.tokens) / self.refill_rate))


class RateLimiter:
    """
    Allows ``limit`` requests per client, refilled evenly over ``window``
    seconds. A fresh client may spend the whole allowance at once.
    """

    def __init__(self, name: str, limit: int, window: float):
        self.name = name
        self.limit = limit
        self.window = window
        self._buckets: Dict[str, TokenBucket] = {}
        self._last_prune = time.monotonic()

    @staticmethod
    def client_key(request: Request) -> str:
        user = getattr(request.state, "user", None)
        if user is not None:
            return f"user:{user.id}"
        return f"ip:{client_ip(request) or 'unknown'}"

    def _bucket(self, key: str) -> TokenBucket:
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = TokenBucket(self.limit, self.limit / self.window)
        return bucket

    def hit(self, request: Request) -> None:
        """
        Spend one request from the caller's allowance.

        Raises:
            TooManyRequests: The allowance is used up; ``Retry-After``
                says when the next request will be accepted.
        """
        self._sweep()
        key = self.client_key(request)
        bucket = self._bucket(key)
        if bucket.take():
            return

        retry_after = bucket.seconds_until_available()
        logger.warning("Rate limit '%s' exceeded by %s, retry in %ss", self.name, key, retry_after)
        raise TooManyRequests(
            "Too many attempts. Try again later.",
            headers={"Retry-After": str(retry_after)},
        )

    def reset(self) -> None:
        self._buckets.clear()

    def _sweep(self) -> None:
        now = time.monotonic()
        if now - self._last_prune < PRUNE_INTERVAL and len(self._buckets) < MAX_BUCKETS:
            return
        self._last_prune = now
        removed = self.prune(idle_for=self.window)
        if removed:
            logger.debug("Rate limit '%s' pruned %d idle buckets", self.name, removed)

    def prune(self, idle_for: float = 3600) -> int:
        """Drop buckets untouched for ``idle_for`` seconds. Returns how many."""
        cutoff = time.monotonic() - idle_for
        idle = [key for key, bucket in self._buckets.items() if bucket.updated_at < cutoff]
        for key in idle:
            del self._buckets[key]
        return len(idle)


otp_limiter = RateLimiter("otp", limit=5, window=60)
quiz_limiter = RateLimiter("quiz", limit=3, window=15 * 60)
ai_limiter = RateLimiter("ai", limit=10, window=60)

# Code checks, on top of the per-slot wrong-guess cap
verify_limiter = RateLimiter("verify", limit=10, window=5 * 60)


def rate_limit(limiter: RateLimiter):
    """
    Apply ``limiter`` to an endpoint that takes a ``request: Request``
    parameter. Place it below the route decorator:

        @router.post("/submit")
        @rate_limit(quiz_limiter)
        async def submit(request: Request, ...):
            ...
    """

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request: Optional[Request] = kwargs.get("request")
            if request is None:
                request = next((arg for arg in args if isinstance(arg, Request)), None)
            if request is not None:
                limiter.hit(request)
            return await func(*args, **kwargs)
        return wrapper
    return decorator
