from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Sequence

from .config import config_sha256, load_config, resolve_runtime_secrets
from .errors import ConfigError, InvalidModeError, UpstreamUnavailable
from .run_log import EventLog
from .service import QueryService, build_service


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="social_digest")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (defaults apply when omitted).",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Serve queries from a small built-in dataset instead of the upstream API.",
    )
    parser.add_argument(
        "--log",
        default=None,
        help="Append JSONL events to this file.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    users = subparsers.add_parser(
        "users",
        help="Print the users with the most comments across their posts.",
    )
    users.set_defaults(_handler=_cmd_users)

    posts = subparsers.add_parser(
        "posts",
        help="Print the most commented posts (popular) or the newest posts (latest).",
    )
    posts.add_argument(
        "--type",
        dest="mode",
        default="popular",
        help='Either "popular" or "latest".',
    )
    posts.set_defaults(_handler=_cmd_posts)

    health = subparsers.add_parser("health", help="Print a liveness response.")
    health.set_defaults(_handler=_cmd_health)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


async def _cmd_users(service: QueryService, args: argparse.Namespace) -> int:
    _print_json(await service.get_ranked_users())
    return 0


async def _cmd_posts(service: QueryService, args: argparse.Namespace) -> int:
    _print_json(await service.get_posts(args.mode))
    return 0


async def _cmd_health(service: QueryService, args: argparse.Namespace) -> int:
    _print_json(service.health_check())
    return 0


async def _run(args: argparse.Namespace, log: EventLog) -> int:
    cfg = load_config(args.config)
    secrets = resolve_runtime_secrets(cfg)

    log.info(
        "config_loaded",
        config_path=args.config,
        config_sha256=config_sha256(cfg),
        base_url=cfg.upstream.base_url,
        offline=bool(args.offline),
    )

    client = None
    if bool(getattr(args, "offline", False)):
        from .offline import OfflineSocialGraphClient

        client = OfflineSocialGraphClient()

    async with build_service(cfg, secrets, client=client, log=log) as service:
        log.info("query_started", command=args.command)
        try:
            return int(await args._handler(service, args))
        except Exception as e:
            log.exception("query_failed", exc=e, command=args.command)
            raise


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    log = EventLog(args.log) if args.log else EventLog.null()
    try:
        with log:
            return asyncio.run(_run(args, log))
    except (ConfigError, InvalidModeError) as e:
        _eprint(str(e))
        return 2
    except UpstreamUnavailable as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
