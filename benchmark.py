"""
Script to benchmark the cache against a workload of commands.
"""
from spillcache.cache import Cache
from spillcache.config import CacheConfig
from spillcache.eviction.manager import ALGORITHMS
from spillcache.executor import Executor
from spillcache.parser import CommandParser

import argparse
import time

from pathlib import Path

from dotenv import load_dotenv
load_dotenv(override=True)

import logging
logger = logging.getLogger(__name__)

# write log to a file
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler("benchmark.log", encoding='utf-8'),
        logging.StreamHandler()
    ]
)

def command_stream(path: str):
    with Path(path).expanduser().open("r") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                yield line

if __name__ == "__main__":
    # argument parser for choosing eviction algorithm
    parser = argparse.ArgumentParser(description="Benchmark the disk cache.")
    parser.add_argument(
        "--workload",
        type=str,
        default="workload.txt",
        help="File with one command per line (default: workload.txt)"
    )
    parser.add_argument(
        "--path",
        type=str,
        default="benchmark_cache/",
        help="Cache directory (default: benchmark_cache/)"
    )
    parser.add_argument(
        "--max-size",
        type=int,
        default=0,
        help="Byte budget, 0 means unlimited (default: 0)"
    )
    parser.add_argument(
        "--eviction",
        type=str,
        choices=sorted(ALGORITHMS),
        default="furthest_expiry",
        help="Eviction algorithm to use (default: furthest_expiry)"
    )
    args = parser.parse_args()

    config = CacheConfig(
        path=args.path,
        max_size=args.max_size,
        eviction_policy=args.eviction,
        rehydrate_on_start=False,
    )
    with Cache(config) as cache:
        cache.reset()
        executor = Executor(cache, CommandParser())

        start = time.perf_counter()
        n_commands = 0
        for cmd in command_stream(args.workload):
            logger.debug(f"Executing command: {cmd}")
            result = executor.execute(cmd)
            if result.startswith("ERROR:"):
                logger.info(f"{cmd} -> {result}")
            n_commands += 1
        elapsed = time.perf_counter() - start

        stats = cache.stats()
        cache.reset()

    logger.info("Benchmarking completed.")
    logger.info(f"Commands: {n_commands} in {elapsed:.3f}s")
    logger.info(f"Metrics collected: {stats}")
    logger.info(f"Hit Ratio: {stats['hit_ratio']:.2f}")
