#!/usr/bin/env python3
"""
Feat — Command-line entry point.

Usage
~~~~~
    # Concise test set for the reference in ref.py against every buggy/*.py
    feat config.json buggy/ ref.py

    # Isolate every call in its own interpreter, reproducible random part
    feat config.json buggy/ ref.py --mode process --seed 7

    # Provably minimum concise set, JSON output
    feat config.json buggy/ ref.py --strategy exact --json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys

from config import (
    COVER_STRATEGY, ENGINE_VERSION, EXEC_TIMEOUT_S, EXECUTION_MODE,
    MAX_WORKERS, RANDOM_SEED,
)
from errors import GenerationError, InvalidConfigError, ToolingError
from pipeline import PipelineResult, generate_tests

logger = logging.getLogger("feat")

EXIT_OK = 0
EXIT_INVALID_CONFIG = 2
EXIT_TOOLING = 3
EXIT_GENERATION = 4


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="feat",
        description="Feat — differential test-case generator",
    )
    ap.add_argument("config", help="Path to the JSON configuration file.")
    ap.add_argument("buggy_dir", help="Directory of candidate implementations (*.py).")
    ap.add_argument("reference", help="Path to the reference implementation.")
    ap.add_argument(
        "--timeout",
        type=float,
        default=EXEC_TIMEOUT_S,
        help=f"Per-call timeout in seconds (default: {EXEC_TIMEOUT_S:g}).",
    )
    ap.add_argument(
        "--workers",
        type=int,
        default=MAX_WORKERS,
        help=f"Worker pool size (default: {MAX_WORKERS}).",
    )
    ap.add_argument(
        "--mode",
        choices=("thread", "process"),
        default=EXECUTION_MODE,
        help=f"How implementations are invoked (default: {EXECUTION_MODE}).",
    )
    ap.add_argument(
        "--seed",
        type=int,
        default=RANDOM_SEED,
        help="Seed for the random part of the base set.",
    )
    ap.add_argument(
        "--strategy",
        choices=("greedy", "exact"),
        default=COVER_STRATEGY,
        help=f"Set-cover strategy (default: {COVER_STRATEGY}).",
    )
    ap.add_argument("--json", action="store_true", help="Print a JSON report.")
    ap.add_argument("--no-progress", action="store_true", dest="no_progress",
                    help="Hide the progress bars.")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    ap.add_argument("--version", action="version", version=ENGINE_VERSION)
    return ap.parse_args(argv)


def report_json(result: PipelineResult) -> str:
    kill_record = result.results.kill_record
    return json.dumps({
        "function": result.function_name,
        "base_set_size": len(result.base_tests),
        "candidates": result.results.candidate_ids,
        "killed": sorted(result.results.killed_candidates()),
        "surviving": result.results.surviving_candidates(),
        "concise_set": [
            {
                "inputs": [v.to_literal() for v in t.inputs],
                "expected": str(t.expected),
                "kills": sorted(kill_record[t]),
            }
            for t in result.concise
        ],
        "elapsed_ms": result.elapsed_ms,
    }, indent=2)


def report_text(result: PipelineResult) -> str:
    tests = ", ".join(str(t) for t in result.concise)
    return f"The concise test set for {result.function_name}: [{tests}]"


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    )

    try:
        result = generate_tests(
            args.config, args.buggy_dir, args.reference,
            mode=args.mode,
            seed=args.seed,
            strategy=args.strategy,
            timeout=args.timeout,
            max_workers=args.workers,
            progress=not args.no_progress,
        )
    except InvalidConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_INVALID_CONFIG
    except ToolingError as exc:
        logger.error("Tooling error: %s", exc)
        return EXIT_TOOLING
    except GenerationError as exc:
        logger.error("Generation error: %s", exc)
        return EXIT_GENERATION

    print(report_json(result) if args.json else report_text(result))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
