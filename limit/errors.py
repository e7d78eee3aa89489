"""
Exception hierarchy for Limit.

Configuration and connectivity problems are raised while a limiter is
being built. Policy and store problems are raised per decision; a failed
decision is never turned into an implicit allow or deny.
"""

from __future__ import annotations


class LimitError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(LimitError, ValueError):
    """Raised when a limiter or connection is constructed with invalid options."""


class InvalidPolicyError(LimitError, ValueError):
    """Raised when a limit calculator returns a malformed policy."""

    def __init__(self, key: str, value: object, message: str | None = None):
        self.key = key
        self.value = value
        self.message = message or (
            f"Limit calculator for key '{key}' returned invalid data: {value!r}. "
            "Expected {max_requests: int > 0, window_seconds: int > 0}"
        )
        super().__init__(self.message)


class StoreConnectionError(LimitError, ConnectionError):
    """Raised when the Redis liveness probe fails."""


class StoreCommandError(LimitError):
    """Raised when a batch of Redis commands fails during a decision."""


class RateLimitExceeded(LimitError):
    """Raised by the ``rate_limit`` decorator when a call is denied."""

    def __init__(
        self,
        key: str,
        limit: int,
        window: int,
        retry_after: float,
        message: str | None = None,
    ):
        self.key = key
        self.limit = limit
        self.window = window
        self.retry_after = retry_after
        self.message = message or (
            f"Rate limit exceeded for '{key}': "
            f"{limit} requests per {window}s. "
            f"Retry after {retry_after:.1f}s"
        )
        super().__init__(self.message)
