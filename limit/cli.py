from __future__ import annotations

import argparse
import json
from dataclasses import asdict

from limit.config import RedisSettings
from limit.connection import create_connection, verify_connection
from limit.logging_config import configure_from_cli
from limit.ratelimit import ALGORITHMS, BaseLimiter, LimitSpec


def _settings(redis_url: str | None) -> RedisSettings:
    settings = RedisSettings.from_env()
    if redis_url:
        settings = RedisSettings(
            url=redis_url,
            db=settings.db,
            password=settings.password,
            socket_timeout=settings.socket_timeout,
        )
    return settings


def _build_limiter(args: argparse.Namespace, policy: LimitSpec) -> BaseLimiter:
    limiter_cls = ALGORITHMS[args.algorithm]
    return limiter_cls(
        identifier_prefix=args.prefix,
        limit_calculator=lambda _key: policy,
        settings=_settings(args.redis_url),
    )


def cmd_ping(redis_url: str | None) -> None:
    settings = _settings(redis_url)
    client = create_connection(settings)
    try:
        verify_connection(client, settings.address)
    finally:
        client.close()
    print(json.dumps({"ok": True, "address": settings.address}))


def cmd_check(args: argparse.Namespace) -> None:
    policy = LimitSpec(max_requests=args.max_requests, window_seconds=args.window_seconds)
    with _build_limiter(args, policy) as limiter:
        allowed = 0
        for i in range(args.count):
            info = limiter.hit(args.key)
            allowed += int(info.allowed)
            if args.json:
                print(json.dumps({"attempt": i + 1, **asdict(info), "remaining": info.remaining}))
            else:
                verdict = "allowed" if info.allowed else "denied"
                print(
                    f"{i + 1:>4} {verdict:<8} count={info.count}/{info.limit} "
                    f"reset_in={info.seconds_until_reset(limiter.now()):.1f}s"
                )
    if not args.json:
        print(f"{allowed}/{args.count} allowed")


def cmd_reset(args: argparse.Namespace) -> None:
    # Reset never consults the policy; any valid one will do.
    with _build_limiter(args, LimitSpec(max_requests=1, window_seconds=1)) as limiter:
        removed = limiter.reset(args.key)
    print(f"reset {args.prefix}:{args.key}: removed {removed} key(s)")


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="limit", description="Probe Redis-backed rate limits")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    p.add_argument("--redis-url", default=None, help="Redis URL (default: REDIS_* environment)")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("ping", help="Check that Redis answers PING")

    def add_limiter_args(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("key")
        parser.add_argument("--prefix", required=True, help="Identifier prefix")
        parser.add_argument("--algorithm", choices=sorted(ALGORITHMS), default="sliding")

    check = sub.add_parser("check", help="Record requests and print decisions")
    add_limiter_args(check)
    check.add_argument("--max-requests", type=int, required=True)
    check.add_argument("--window-seconds", type=int, default=60)
    check.add_argument("--count", type=int, default=1, help="Number of requests to issue")
    check.add_argument("--json", action="store_true", help="One JSON object per decision")

    reset = sub.add_parser("reset", help="Forget recorded requests for a key")
    add_limiter_args(reset)

    args = p.parse_args(argv)
    configure_from_cli(verbose=args.verbose, json_output=args.json_logs)

    try:
        if args.cmd == "ping":
            cmd_ping(args.redis_url)
        elif args.cmd == "check":
            cmd_check(args)
        elif args.cmd == "reset":
            cmd_reset(args)
    except Exception as e:
        raise SystemExit(f"ERROR: {e}") from e


if __name__ == "__main__":
    main()
