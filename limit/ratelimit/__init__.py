"""
Rate limiting module for distributed quota enforcement.

Provides fixed window and sliding window log rate limiting
algorithms that keep their state in Redis.
"""

from limit.errors import (
    ConfigurationError,
    InvalidPolicyError,
    LimitError,
    RateLimitExceeded,
    StoreCommandError,
    StoreConnectionError,
)

from .base import BaseLimiter, LimitCalculator
from .decorators import rate_limit
from .fixed_window import FixedWindowLimiter
from .models import LimitSpec, RateLimitInfo
from .sliding_window import SlidingWindowLogLimiter

ALGORITHMS = {
    "fixed": FixedWindowLimiter,
    "sliding": SlidingWindowLogLimiter,
}

__all__ = [
    "ALGORITHMS",
    "BaseLimiter",
    "ConfigurationError",
    "FixedWindowLimiter",
    "InvalidPolicyError",
    "LimitCalculator",
    "LimitError",
    "LimitSpec",
    "RateLimitExceeded",
    "RateLimitInfo",
    "SlidingWindowLogLimiter",
    "StoreCommandError",
    "StoreConnectionError",
    "rate_limit",
]
