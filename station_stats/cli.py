"""Command line entry point: ``station-stats run|verify|generate``."""

from __future__ import annotations

import argparse
import cProfile
import logging
import pstats
import sys
import time
from typing import Optional, Sequence

from .config import EXECUTORS, Settings
from .errors import StationStatsError
from .generate import generate_measurements
from .logs import configure_logging
from .pipeline import process_file
from .reference import verify

logger = logging.getLogger(__name__)


def _add_settings_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("filename", type=str, help="Path to measurements file")
    parser.add_argument("--block-size", type=int, help="Bytes read per chunk before extending to a newline")
    parser.add_argument("--workers", type=int, help="Parallel chunk workers (default: CPU count)")
    parser.add_argument("--executor", choices=EXECUTORS, help="Worker backend")
    parser.add_argument("--delimiter", type=str, help="Key/value separator (default: ';')")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="station-stats",
        description="Per-key min/mean/max of a large '<key>;<value>' file.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Verbosity of stderr logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Aggregate a file and print the report")
    _add_settings_args(run)
    run.add_argument("--profile", metavar="OUT", help="Write a cProfile report to OUT and print the top entries")

    check = sub.add_parser("verify", help="Compare the pipeline against a polars ground truth")
    _add_settings_args(check)

    gen = sub.add_parser("generate", help="Write a random measurements file")
    gen.add_argument("filename", type=str, help="Output path")
    gen.add_argument("--rows", type=lambda s: int(s.replace("_", "")), required=True, help="Number of lines")
    gen.add_argument("--seed", type=int, help="Random seed")
    return parser


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env().with_overrides(
        block_size=args.block_size,
        workers=args.workers,
        executor=args.executor,
        delimiter=args.delimiter,
    )


def _run(args: argparse.Namespace) -> int:
    settings = _settings(args)
    profiler = cProfile.Profile() if args.profile else None

    t0 = time.time()
    if profiler is not None:
        profiler.enable()
    try:
        result = process_file(args.filename, settings)
    finally:
        if profiler is not None:
            profiler.disable()
    t1 = time.time()

    report = result.report()
    if report:
        print(report)
    logger.info("Processing took %.2f seconds", t1 - t0)

    if profiler is not None:
        profiler.dump_stats(args.profile)
        p = pstats.Stats(args.profile, stream=sys.stderr)
        p.strip_dirs().sort_stats("tottime").print_stats(20)
    return 0


def _verify(args: argparse.Namespace) -> int:
    diff = verify(args.filename, _settings(args))
    for idx, line in enumerate(diff):
        if idx == 10:
            print(f"... {len(diff) - 10} more")
            break
        print(line)
    if diff:
        logger.error("%d entries differ from the ground truth", len(diff))
        return 1
    logger.info("pipeline matches the ground truth")
    return 0


def _generate(args: argparse.Namespace) -> int:
    generate_measurements(args.filename, args.rows, seed=args.seed)
    logger.info("wrote %d rows to %s", args.rows, args.filename)
    return 0


COMMANDS = {"run": _run, "verify": _verify, "generate": _generate}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(getattr(logging, args.log_level))
    try:
        return COMMANDS[args.command](args)
    except StationStatsError as exc:
        logger.error("%s", exc)
        return 1
