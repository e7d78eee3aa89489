"""
Redis connection settings.

Settings come from the environment (``REDIS_URL``, ``REDIS_HOST``,
``REDIS_PORT``, ``REDIS_PASSWORD``, ``REDIS_DB``, ``REDIS_SOCKET_TIMEOUT``)
and can be overridden per limiter with explicit values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from limit.errors import ConfigurationError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6379


def _parse_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class RedisSettings:
    """
    Connection parameters for the shared Redis store.

    Args:
        url: Full connection URL; takes precedence over host/port when set
        host: Redis host
        port: Redis port
        password: Optional Redis password
        db: Redis database number
        socket_timeout: Network timeout in seconds for every command
    """
    url: Optional[str] = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: Optional[str] = None
    db: int = 0
    socket_timeout: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.port, int) or isinstance(self.port, bool) or not 0 < self.port < 65536:
            raise ConfigurationError(f"port must be an integer in 1..65535, got {self.port!r}")
        if not isinstance(self.db, int) or isinstance(self.db, bool) or self.db < 0:
            raise ConfigurationError(f"db must be a non-negative integer, got {self.db!r}")
        if self.socket_timeout is not None and self.socket_timeout <= 0:
            raise ConfigurationError("socket_timeout must be > 0")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RedisSettings":
        """Build settings from environment variables."""
        env = os.environ if env is None else env
        return cls(
            url=env.get("REDIS_URL") or None,
            host=env.get("REDIS_HOST") or DEFAULT_HOST,
            port=_parse_number(env, "REDIS_PORT", DEFAULT_PORT, int),
            password=env.get("REDIS_PASSWORD") or None,
            db=_parse_number(env, "REDIS_DB", 0, int),
            socket_timeout=_parse_number(env, "REDIS_SOCKET_TIMEOUT", None, float),
        )

    def with_overrides(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        password: Optional[str] = None,
    ) -> "RedisSettings":
        """Return a copy with the explicitly given values applied.

        An explicit host or port also drops ``url`` so the explicit
        address is the one that gets used.
        """
        changes = {}
        if host is not None:
            changes["host"] = host
        if port is not None:
            changes["port"] = port
        if password is not None:
            changes["password"] = password
        if "host" in changes or "port" in changes:
            changes["url"] = None
        return replace(self, **changes) if changes else self

    @property
    def address(self) -> str:
        """Host:port (or URL without credentials) for log lines."""
        if self.url:
            return self.url.rsplit("@", 1)[-1]
        return f"{self.host}:{self.port}"
