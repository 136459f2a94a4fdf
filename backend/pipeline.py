"""
Feat — End-to-end pipeline.

    ParsedSpec → base set → expected results → kill record → concise set

Any ``FeatError`` aborts the run; nothing partial is returned.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from config import (
    COVER_STRATEGY, EXEC_TIMEOUT_S, EXECUTION_MODE, MAX_WORKERS,
    RANDOM_SEED, STRICT_CODE_SAFETY,
)
from differential.concise import concise_set
from differential.execution import Implementation, load_candidates, load_implementation
from differential.tester import Tester, TestResults
from generation.base_set import BaseSetGenerator, TestCase
from parsing.config_parser import ConfigFileParser, ParsedSpec

logger = logging.getLogger("feat.pipeline")


@dataclass
class PipelineResult:
    function_name: str
    base_tests: list[TestCase]
    results: TestResults
    concise: list[TestCase]
    elapsed_ms: int = 0


def run_pipeline(
    spec: ParsedSpec,
    reference: Implementation,
    candidates: Sequence[Implementation],
    *,
    seed: int | None = RANDOM_SEED,
    strategy: str = COVER_STRATEGY,
    timeout: float = EXEC_TIMEOUT_S,
    max_workers: int = MAX_WORKERS,
    progress: bool = False,
) -> PipelineResult:
    t0 = time.perf_counter()
    logger.info("━━━ %s: %d candidate(s), seed=%s ━━━",
                spec.signature(), len(candidates), seed)

    generator = BaseSetGenerator(spec.parameters, spec.num_random, random.Random(seed))
    base_tests = generator.gen_base_set()

    tester = Tester(
        spec.function_name, reference, candidates, base_tests,
        timeout=timeout, max_workers=max_workers, progress=progress,
    )
    tester.compute_expected_results()
    results = tester.run_tests()
    concise = concise_set(results, strategy)

    elapsed = int((time.perf_counter() - t0) * 1000)
    logger.info("━━━ Done in %dms — %d of %d test cases kept ━━━",
                elapsed, len(concise), len(base_tests))
    return PipelineResult(
        function_name=spec.function_name,
        base_tests=base_tests,
        results=results,
        concise=concise,
        elapsed_ms=elapsed,
    )


def generate_tests(
    config_path: str | Path,
    buggy_dir: str | Path,
    reference_path: str | Path,
    *,
    mode: str = EXECUTION_MODE,
    restricted: bool = STRICT_CODE_SAFETY,
    **options,
) -> PipelineResult:
    """Parse the config, load every implementation from disk, run the pipeline."""
    parser = ConfigFileParser()
    spec = parser.parse(parser.read_file(config_path))
    reference = load_implementation(
        reference_path, spec.function_name, mode, restricted,
    )
    candidates = load_candidates(buggy_dir, spec.function_name, mode, restricted)
    return run_pipeline(spec, reference, candidates, **options)
