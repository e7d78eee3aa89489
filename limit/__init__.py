"""
Limit: distributed per-key rate limiting backed by Redis.

This package contains:
- Rate limiters (fixed window counter, sliding window log)
- Redis connection settings and factory
- Structured logging setup
- A small command-line probe
"""

__version__ = "0.1.0"
