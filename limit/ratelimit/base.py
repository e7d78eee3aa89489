"""
Base class for Redis-backed rate limiters.

A limiter holds three things: a Redis client, an identifier prefix that
namespaces every key it touches, and a limit calculator that returns the
policy for a key. All counting state lives in Redis, so any number of
processes can share the same limits.

Every decision is sent to Redis as one MULTI/EXEC transaction. Commands
from other clients cannot run between the first and last command of a
decision, so two callers racing on the same key never see each other's
half-applied updates.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Mapping, Optional, Union

import redis
from redis.client import Pipeline

from limit.config import RedisSettings
from limit.connection import create_connection, verify_connection
from limit.errors import ConfigurationError, StoreCommandError
from limit.logging_config import get_logger
from limit.ratelimit.models import LimitSpec, RateLimitInfo

logger = get_logger(__name__)

LimitCalculator = Callable[[str], Union[LimitSpec, Mapping[str, Any]]]


class BaseLimiter(ABC):
    """
    Shared construction, policy validation and batching for limiters.

    Subclasses implement ``build_key``, ``hit`` and ``reset``.
    """

    def __init__(
        self,
        identifier_prefix: str,
        limit_calculator: LimitCalculator,
        *,
        client: Optional[redis.Redis] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        password: Optional[str] = None,
        settings: Optional[RedisSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the limiter and probe Redis.

        Args:
            identifier_prefix: Namespace prefix for this limiter's Redis keys
            limit_calculator: Callable taking a key and returning
                ``{"max_requests": int, "window_seconds": int}`` or a ``LimitSpec``
            client: Existing Redis client to share; not closed by this limiter
            host: Redis host, overrides settings
            port: Redis port, overrides settings
            password: Redis password, overrides settings
            settings: Base connection settings (defaults to the environment)
            clock: Returns the current time in seconds

        Raises:
            ConfigurationError: invalid prefix or calculator
            StoreConnectionError: Redis did not answer PING
        """
        if not isinstance(identifier_prefix, str) or not identifier_prefix:
            raise ConfigurationError("identifier_prefix must be a non-empty string")
        if not callable(limit_calculator):
            raise ConfigurationError("limit_calculator must be callable")

        self.identifier_prefix = identifier_prefix
        self.limit_calculator = limit_calculator
        self._clock = clock
        self._log = logger.bind(limiter=type(self).__name__, prefix=identifier_prefix)

        if client is not None:
            self._client = client
            self._owns_client = False
            address = ""
        else:
            settings = (settings or RedisSettings.from_env()).with_overrides(
                host=host, port=port, password=password
            )
            self._client = create_connection(settings)
            self._owns_client = True
            address = settings.address

        try:
            verify_connection(self._client, address)
        except Exception:
            self.close()
            raise

    @property
    def client(self) -> redis.Redis:
        return self._client

    def resolve_policy(self, key: str) -> LimitSpec:
        """
        Ask the limit calculator for the current policy of ``key``.

        Called on every decision; policies are never cached.

        Raises:
            InvalidPolicyError: if the calculator result is malformed
        """
        return LimitSpec.from_result(key, self.limit_calculator(key))

    @abstractmethod
    def build_key(self, key: str, *args: Any) -> str:
        """Build the namespaced Redis key for ``key``."""

    @abstractmethod
    def hit(self, key: str) -> RateLimitInfo:
        """Record a request for ``key`` and decide whether it is allowed."""

    @abstractmethod
    def reset(self, key: str) -> int:
        """Forget the recorded requests for ``key``; returns the number of Redis keys removed."""

    def allowed(self, key: str) -> bool:
        """
        Check if a request for ``key`` is allowed and record it.

        Raises:
            InvalidPolicyError: the calculator returned a malformed policy
            StoreCommandError: Redis rejected or failed the batch
        """
        return self.hit(key).allowed

    def run_batch(self, queue: Callable[[Pipeline], Any], expected: Optional[int] = None) -> List[Any]:
        """
        Run commands as one transaction and return their results in order.

        Args:
            queue: Adds commands to the given pipeline
            expected: Number of results the caller needs

        Raises:
            StoreCommandError: any Redis failure, or a short result list
        """
        try:
            with self._client.pipeline(transaction=True) as pipe:
                queue(pipe)
                results = pipe.execute()
        except redis.RedisError as exc:
            self._log.error("rate_limit_batch_failed", error=str(exc))
            raise StoreCommandError(f"Redis batch failed: {exc}") from exc

        if expected is not None and len(results) != expected:
            raise StoreCommandError(
                f"Redis batch returned {len(results)} results, expected {expected}"
            )
        return results

    def scan_keys(self, pattern: str) -> List[str]:
        """
        List keys matching a Redis glob ``pattern`` with SCAN.

        Raises:
            StoreCommandError: any Redis failure
        """
        try:
            found = self._client.scan_iter(match=pattern, count=500)
            return [k.decode() if isinstance(k, bytes) else k for k in found]
        except redis.RedisError as exc:
            self._log.error("rate_limit_scan_failed", pattern=pattern, error=str(exc))
            raise StoreCommandError(f"Redis scan failed: {exc}") from exc

    def log_decision(self, key: str, info: RateLimitInfo) -> RateLimitInfo:
        self._log.debug(
            "rate_limit_decision",
            key=key,
            allowed=info.allowed,
            count=info.count,
            limit=info.limit,
            window=info.window,
        )
        return info

    def now(self) -> float:
        return self._clock()

    def current_micros(self) -> int:
        return int(self._clock() * 1_000_000)

    def close(self) -> None:
        """Close the Redis client if this limiter created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(identifier_prefix={self.identifier_prefix!r})"
