"""
Sliding window log rate limiter.

Every attempt is recorded in a Redis sorted set scored by its timestamp
in microseconds. Before counting, entries older than the window are
removed, so the count is exact for the trailing ``window_seconds``.

Memory per key grows with ``max_requests`` (plus denied attempts inside
the window). Pruning is lazy: an idle key keeps its entries until the
key expires or the next request prunes it.
"""

from __future__ import annotations

import secrets

from limit.ratelimit.base import BaseLimiter
from limit.ratelimit.models import RateLimitInfo

MICROS = 1_000_000


class SlidingWindowLogLimiter(BaseLimiter):
    """
    Rolling window rate limiter backed by a sorted set.

    Denied attempts are logged too, so a client that keeps retrying stays
    throttled until it backs off for a whole window.

    Example:
        limiter = SlidingWindowLogLimiter(
            identifier_prefix="access",
            limit_calculator=site_limits,
            host="127.0.0.1",
            port=6379,
        )

        if not limiter.allowed("007:x"):
            raise TooManyRequests()
    """

    def build_key(self, key: str) -> str:
        return f"{self.identifier_prefix}:{key}"

    def member_for(self, micros: int) -> str:
        """Sorted set member for one attempt.

        The random suffix keeps two attempts in the same microsecond from
        collapsing into one member.
        """
        return f"{micros}-{secrets.token_hex(8)}"

    def hit(self, key: str) -> RateLimitInfo:
        policy = self.resolve_policy(key)
        window = policy.window_seconds
        set_key = self.build_key(key)

        now_micros = self.current_micros()
        window_start = now_micros - window * MICROS
        member = self.member_for(now_micros)

        def queue(pipe):
            pipe.zremrangebyscore(set_key, "-inf", f"({window_start}")
            pipe.zadd(set_key, {member: now_micros})
            pipe.zcard(set_key)
            pipe.expire(set_key, window)
            pipe.zrange(set_key, 0, 0, withscores=True)

        results = self.run_batch(queue, expected=5)
        count = int(results[2])
        oldest = results[4]
        oldest_micros = int(oldest[0][1]) if oldest else now_micros

        allowed = count <= policy.max_requests
        now = now_micros / MICROS
        reset_time = (oldest_micros + window * MICROS) / MICROS
        return self.log_decision(key, RateLimitInfo(
            allowed=allowed,
            count=count,
            limit=policy.max_requests,
            window=window,
            reset_time=reset_time,
            retry_after=0.0 if allowed else max(0.0, reset_time - now),
        ))

    def reset(self, key: str) -> int:
        set_key = self.build_key(key)
        return int(self.run_batch(lambda pipe: pipe.delete(set_key), expected=1)[0])
