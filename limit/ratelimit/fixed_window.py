"""
Fixed window rate limiter.

Counts requests in non-overlapping buckets aligned to multiples of the
window length. Each bucket is a Redis integer created by INCR.

Caution: a burst that straddles a bucket boundary can let through up to
``2 * max_requests - 1`` requests within one window's worth of time. Use
``SlidingWindowLogLimiter`` where that matters.
"""

from __future__ import annotations

from limit.ratelimit.base import BaseLimiter
from limit.ratelimit.models import RateLimitInfo

_GLOB_SPECIAL = set("*?[]\\")


def _escape_glob(text: str) -> str:
    return "".join("\\" + ch if ch in _GLOB_SPECIAL else ch for ch in text)


class FixedWindowLimiter(BaseLimiter):
    """
    Fixed window rate limiter.

    Example:
        limiter = FixedWindowLimiter(
            identifier_prefix="api",
            limit_calculator=lambda key: {"max_requests": 100, "window_seconds": 60},
        )

        if limiter.allowed("user-123"):
            process_request()
    """

    def bucket_start(self, window_seconds: int, now: float) -> int:
        return (int(now) // window_seconds) * window_seconds

    def build_key(self, key: str, bucket_start: int) -> str:
        return f"{self.identifier_prefix}:{key}:{bucket_start}"

    def hit(self, key: str) -> RateLimitInfo:
        policy = self.resolve_policy(key)
        window = policy.window_seconds
        now = self.now()
        start = self.bucket_start(window, now)
        window_key = self.build_key(key, start)

        def queue(pipe):
            # INCR creates the bucket at 1, so there is no read before write.
            pipe.incr(window_key)
            # Re-armed on every call so a bucket created late still lives a full window.
            pipe.expire(window_key, window)

        count = int(self.run_batch(queue, expected=2)[0])
        allowed = count <= policy.max_requests
        reset_time = float(start + window)
        return self.log_decision(key, RateLimitInfo(
            allowed=allowed,
            count=count,
            limit=policy.max_requests,
            window=window,
            reset_time=reset_time,
            retry_after=0.0 if allowed else max(0.0, reset_time - now),
        ))

    def reset(self, key: str) -> int:
        """Delete every bucket of ``key``, whatever window created it."""
        base = f"{self.identifier_prefix}:{key}:"
        buckets = [
            found for found in self.scan_keys(_escape_glob(base) + "*")
            if found[len(base):].isdigit()
        ]
        if not buckets:
            return 0
        return int(self.run_batch(lambda pipe: pipe.delete(*buckets), expected=1)[0])
