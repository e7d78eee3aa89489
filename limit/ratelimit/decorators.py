"""
Decorator integration for rate limiters.

Example:
    limiter = SlidingWindowLogLimiter("api", lambda key: {"max_requests": 10, "window_seconds": 1})

    @rate_limit(limiter, key_func=lambda request: request.client_ip)
    async def api_endpoint(request):
        return process_request(request)
"""

from __future__ import annotations

import asyncio
import inspect
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from limit.errors import RateLimitExceeded
from limit.ratelimit.base import BaseLimiter
from limit.ratelimit.models import RateLimitInfo

T = TypeVar("T")


def rate_limit(
    limiter: BaseLimiter,
    key_func: Optional[Callable[..., str]] = None,
    on_exceeded: Optional[Callable[[str, RateLimitInfo], Any]] = None,
):
    """
    Decorator to apply rate limiting to a function.

    Args:
        limiter: Limiter that makes the decision
        key_func: Function to extract the rate limit key from the arguments
        on_exceeded: Called with (key, info) instead of raising when denied

    Raises:
        RateLimitExceeded: when a call is denied and no ``on_exceeded`` is set
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        def get_key(*args, **kwargs) -> str:
            if key_func:
                return str(key_func(*args, **kwargs))
            return "default"

        def exceeded(key: str, info: RateLimitInfo):
            return RateLimitExceeded(
                key=key,
                limit=info.limit,
                window=info.window,
                retry_after=info.retry_after,
            )

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                key = get_key(*args, **kwargs)
                # Redis round trip runs in a worker thread, not on the event loop.
                info = await asyncio.to_thread(limiter.hit, key)

                if not info.allowed:
                    if on_exceeded:
                        result = on_exceeded(key, info)
                        if inspect.isawaitable(result):
                            return await result
                        return result
                    raise exceeded(key, info)

                return await func(*args, **kwargs)
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            key = get_key(*args, **kwargs)
            info = limiter.hit(key)

            if not info.allowed:
                if on_exceeded:
                    return on_exceeded(key, info)
                raise exceeded(key, info)

            return func(*args, **kwargs)
        return sync_wrapper

    return decorator
