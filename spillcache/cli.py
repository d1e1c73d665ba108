"""
Command shell over a cache directory

    spillcache --path cache/ set greeting hello 30
    spillcache --path cache/ get greeting
    spillcache --path cache/            # read commands from stdin
"""
from logging.config import dictConfig
from typing import List, Optional
import argparse
import logging
import sys

from spillcache.cache import Cache
from spillcache.config import CacheConfig
from spillcache.eviction.manager import ALGORITHMS
from spillcache.exceptions import CacheException
from spillcache.executor import Executor
from spillcache.parser import CommandParser

logger = logging.getLogger(__name__)


def configure_logging(level: str = "WARNING") -> None:
    dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            }
        },
        'handlers': {
            'default': {
                'class': 'logging.StreamHandler',
                'formatter': 'default',
                'stream': 'ext://sys.stderr',
            }
        },
        'root': {
            'level': level.upper(),
            'handlers': ['default']
        }
    })


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spillcache", description="Run commands against a disk-backed cache.")
    parser.add_argument("--path", type=str, default=None, help="Cache directory (default: $SPILLCACHE_PATH or cache/)")
    parser.add_argument("--ttl", type=float, default=None, help="Default entry lifetime in seconds (default: 60)")
    parser.add_argument("--max-size", type=int, default=None, help="Byte budget, 0 means unlimited (default: 0)")
    parser.add_argument("--no-rehydrate", action="store_true", help="Do not load existing records on start")
    parser.add_argument(
        "--eviction",
        type=str,
        choices=sorted(ALGORITHMS),
        default=None,
        help="Eviction order (default: furthest_expiry)"
    )
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run, stdin is read when omitted")
    return parser


def _quote(arg: str) -> str:
    if not arg or any(c.isspace() for c in arg):
        return '"' + arg + '"' if '"' not in arg else "'" + arg + "'"
    return arg


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = CacheConfig.from_env(
            path=args.path,
            ttl=args.ttl,
            max_size=args.max_size,
            rehydrate_on_start=False if args.no_rehydrate else None,
            eviction_policy=args.eviction,
        )
        cache = Cache(config)
    except (CacheException, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    executor = Executor(cache, CommandParser())
    with cache:
        if args.command:
            result = executor.execute(" ".join(_quote(a) for a in args.command))
            print(result)
            return 1 if result.startswith("ERROR:") else 0

        for line in sys.stdin:
            line = line.strip()
            if not line:
                continue
            if line.lower() in ("quit", "exit"):
                break
            print(executor.execute(line))
    return 0


if __name__ == "__main__":
    sys.exit(main())
