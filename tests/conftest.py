"""Pytest configuration and shared fixtures.

The limiter tests run against ``DummyRedis``, an in-process stand-in for
the handful of Redis commands the limiters send. Tests marked
``integration`` talk to a real Redis at ``REDIS_URL`` (default
``redis://127.0.0.1:6379/15``) and are skipped by default.
"""
import os
import re
import uuid

import pytest
import redis


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless LIMIT_INTEGRATION=1."""
    if os.environ.get("LIMIT_INTEGRATION") in ("1", "true", "True"):
        return
    skip = pytest.mark.skip(reason="Set LIMIT_INTEGRATION=1 to run integration tests")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def _glob_regex(pattern):
    """Translate a Redis MATCH pattern (``*``, ``?``, backslash escapes) to a regex."""
    out = []
    chars = iter(pattern)
    for ch in chars:
        if ch == "\\":
            out.append(re.escape(next(chars, "\\")))
        elif ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        else:
            out.append(re.escape(ch))
    return re.compile("".join(out) + r"\Z", re.DOTALL)


def _parse_bound(bound):
    text = str(bound)
    if text == "-inf":
        return float("-inf"), False
    if text == "+inf":
        return float("inf"), False
    if text.startswith("("):
        return float(text[1:]), True
    return float(text), False


class DummyPipeline:
    def __init__(self, store, transaction):
        self.store = store
        self.transaction = transaction
        self.queued = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.queued = []

    def __getattr__(self, name):
        if name not in DummyRedis.COMMANDS:
            raise AttributeError(name)

        def queue(*args, **kwargs):
            self.queued.append((name, args, kwargs))
            return self

        return queue

    def execute(self):
        self.store.batches.append((self.transaction, [name for name, _, _ in self.queued]))
        if self.store.fail_with is not None:
            raise self.store.fail_with
        return [getattr(self.store, name)(*args, **kwargs) for name, args, kwargs in self.queued]


class DummyRedis:
    """Single-threaded stand-in for the Redis commands used by the limiters."""

    COMMANDS = {"incr", "expire", "zremrangebyscore", "zadd", "zcard", "zrange", "delete"}

    def __init__(self, clock, ping_result=True):
        self.clock = clock
        self.ping_result = ping_result
        self.data = {}
        self.expires_at = {}
        self.batches = []
        self.fail_with = None
        self.closed = False

    # -- helpers ---------------------------------------------------------
    def _alive(self, key):
        deadline = self.expires_at.get(key)
        if deadline is not None and self.clock() >= deadline:
            self.data.pop(key, None)
            self.expires_at.pop(key, None)
        return key in self.data

    def ttl(self, key):
        if not self._alive(key):
            return -2
        if key not in self.expires_at:
            return -1
        return self.expires_at[key] - self.clock()

    def members(self, key):
        return dict(self.data[key]) if self._alive(key) else {}

    @property
    def commands(self):
        return [name for _, names in self.batches for name in names]

    # -- connection ------------------------------------------------------
    def ping(self):
        if isinstance(self.ping_result, Exception):
            raise self.ping_result
        return self.ping_result

    def pipeline(self, transaction=True):
        return DummyPipeline(self, transaction)

    def close(self):
        self.closed = True

    def scan_iter(self, match="*", count=None):
        regex = _glob_regex(match)
        for key in list(self.data):
            if self._alive(key) and regex.match(key):
                yield key.encode()

    # -- commands --------------------------------------------------------
    def incr(self, key):
        value = int(self.data[key]) + 1 if self._alive(key) else 1
        self.data[key] = value
        return value

    def expire(self, key, seconds):
        if not self._alive(key):
            return False
        self.expires_at[key] = self.clock() + seconds
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self._alive(key):
                removed += 1
            self.data.pop(key, None)
            self.expires_at.pop(key, None)
        return removed

    def zadd(self, key, mapping):
        self._alive(key)
        zset = self.data.setdefault(key, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update({member: float(score) for member, score in mapping.items()})
        return added

    def zremrangebyscore(self, key, min, max):
        if not self._alive(key):
            return 0
        low, low_open = _parse_bound(min)
        high, high_open = _parse_bound(max)
        zset = self.data[key]
        doomed = [
            member for member, score in zset.items()
            if (score > low if low_open else score >= low)
            and (score < high if high_open else score <= high)
        ]
        for member in doomed:
            del zset[member]
        return len(doomed)

    def zcard(self, key):
        return len(self.data[key]) if self._alive(key) else 0

    def zrange(self, key, start, end, withscores=False):
        if not self._alive(key):
            return []
        ordered = sorted(self.data[key].items(), key=lambda item: (item[1], item[0]))
        stop = None if end == -1 else end + 1
        window = ordered[start:stop]
        if withscores:
            return [(member.encode(), score) for member, score in window]
        return [member.encode() for member, _ in window]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return DummyRedis(clock)


@pytest.fixture
def make_limiter(store, clock):
    """Build a limiter of the given class wired to the dummy store."""
    def factory(limiter_cls, max_requests=3, window_seconds=10, prefix="test", calculator=None):
        if calculator is None:
            def calculator(_key):
                return {"max_requests": max_requests, "window_seconds": window_seconds}
        return limiter_cls(
            identifier_prefix=prefix,
            limit_calculator=calculator,
            client=store,
            clock=clock,
        )

    return factory


@pytest.fixture
def redis_url():
    return os.environ.get("REDIS_URL", "redis://127.0.0.1:6379/15")


@pytest.fixture
def real_redis(redis_url):
    client = redis.Redis.from_url(redis_url)
    yield client
    client.close()


@pytest.fixture
def unique_prefix(real_redis):
    """Identifier prefix whose keys are removed from Redis after the test."""
    prefix = f"it-{uuid.uuid4().hex[:12]}"
    yield prefix
    for key in real_redis.scan_iter(match=f"{prefix}:*"):
        real_redis.delete(key)
