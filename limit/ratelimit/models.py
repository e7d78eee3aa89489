"""
Value types shared by the rate limiters.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict

from limit.errors import InvalidPolicyError


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class LimitSpec:
    """
    Policy for one key: at most ``max_requests`` per ``window_seconds``.

    Args:
        max_requests: Maximum number of requests allowed in a window
        window_seconds: Window length in whole seconds
    """
    max_requests: int
    window_seconds: int

    def __post_init__(self):
        if not _is_positive_int(self.max_requests) or not _is_positive_int(self.window_seconds):
            raise ValueError(
                "max_requests and window_seconds must be positive integers, got "
                f"{self.max_requests!r} and {self.window_seconds!r}"
            )

    @classmethod
    def from_result(cls, key: str, value: Any) -> "LimitSpec":
        """
        Validate what a limit calculator returned for ``key``.

        Accepts a ``LimitSpec`` or a mapping with ``max_requests`` and
        ``window_seconds`` entries.

        Raises:
            InvalidPolicyError: for anything else
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise InvalidPolicyError(key, value)
        max_requests = value.get("max_requests")
        window_seconds = value.get("window_seconds")
        if not _is_positive_int(max_requests) or not _is_positive_int(window_seconds):
            raise InvalidPolicyError(key, value)
        return cls(max_requests=max_requests, window_seconds=window_seconds)


@dataclass(frozen=True)
class RateLimitInfo:
    """Outcome of a single rate limit decision."""
    allowed: bool
    count: int
    limit: int
    window: int
    reset_time: float
    retry_after: float = 0.0

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    def to_headers(self) -> Dict[str, str]:
        """Convert to HTTP rate limit headers."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_time)),
            **({"Retry-After": str(int(self.retry_after) + 1)} if not self.allowed else {}),
        }

    def seconds_until_reset(self, now: float | None = None) -> float:
        now = time.time() if now is None else now
        return max(0.0, self.reset_time - now)
