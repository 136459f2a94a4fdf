"""
Feat — Differential tester.

Phase 1 runs the reference on every test case and attaches the outcome
to the case.  Phase 2 runs every candidate on every case and records
which candidates each case kills.  Every (case, implementation) call is
an independent unit on a bounded thread pool; each unit writes only its
own ``(case index, implementation id)`` slot.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable, Sequence

from tqdm import tqdm

from config import EXEC_TIMEOUT_S, MAX_WORKERS
from differential.execution import Implementation, Outcome
from errors import ToolingError
from generation.base_set import TestCase

logger = logging.getLogger("feat.differential.tester")

_BAR_FORMAT = (
    "  {l_bar}{bar}| {n_fmt}/{total_fmt} "
    "[{elapsed}<{remaining}, {rate_fmt}]"
)


@dataclass
class TestResults:
    """Per-pair outcomes plus the kill record (ordered like ``tests``)."""
    __test__ = False

    tests: list[TestCase]
    candidate_ids: list[str]
    outcomes: dict[tuple[int, str], Outcome]
    kill_record: dict[TestCase, frozenset[str]]

    def killed_candidates(self) -> frozenset[str]:
        killed: set[str] = set()
        for ids in self.kill_record.values():
            killed |= ids
        return frozenset(killed)

    def surviving_candidates(self) -> list[str]:
        killed = self.killed_candidates()
        return [c for c in self.candidate_ids if c not in killed]

    def kills_of(self, candidate_id: str) -> list[TestCase]:
        return [t for t, ids in self.kill_record.items() if candidate_id in ids]


class Tester:
    """Runs a reference and its candidates over a base test set."""
    __test__ = False

    def __init__(
        self,
        function_name: str,
        reference: Implementation,
        candidates: Sequence[Implementation],
        tests: Sequence[TestCase],
        *,
        timeout: float = EXEC_TIMEOUT_S,
        max_workers: int = MAX_WORKERS,
        progress: bool = False,
    ) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        ids = [c.identifier for c in candidates]
        if len(set(ids)) != len(ids):
            raise ToolingError(f"duplicate candidate identifiers in {ids}")

        self.function_name = function_name
        self.reference = reference
        self.candidates = list(candidates)
        self.tests = list(tests)
        self.timeout = timeout
        self.max_workers = max_workers
        self.progress = progress

        if self.tests:
            arity = len(self.tests[0].inputs)
            for impl in [reference, *self.candidates]:
                impl.check_arity(arity)

    # ── Phase 1 ───────────────────────────────────────────────────────

    def compute_expected_results(self) -> list[Outcome]:
        units = [(i, self.reference) for i in range(len(self.tests))]
        outcomes = self._run_units(units, "reference")
        expected = []
        for i, test in enumerate(self.tests):
            outcome = outcomes[(i, self.reference.identifier)]
            test.set_expected(outcome)
            expected.append(outcome)

        failing = sum(1 for o in expected if not o.ok)
        if failing:
            logger.warning(
                "Reference %s fails on %d of %d test cases; failures are "
                "kept as expected outcomes",
                self.reference.identifier, failing, len(expected),
            )
        logger.info("Expected results computed for %d test cases", len(expected))
        return expected

    # ── Phase 2 ───────────────────────────────────────────────────────

    def run_tests(self) -> TestResults:
        if any(t.expected is None for t in self.tests):
            raise RuntimeError("compute_expected_results() must run before run_tests()")

        units = [
            (i, cand)
            for i in range(len(self.tests))
            for cand in self.candidates
        ]
        outcomes = self._run_units(units, "candidates")

        kill_record: dict[TestCase, frozenset[str]] = {}
        for i, test in enumerate(self.tests):
            kill_record[test] = frozenset(
                c.identifier
                for c in self.candidates
                if not test.expected.matches(outcomes[(i, c.identifier)])
            )

        results = TestResults(
            tests=list(self.tests),
            candidate_ids=[c.identifier for c in self.candidates],
            outcomes=outcomes,
            kill_record=kill_record,
        )
        logger.info(
            "%s: %d of %d candidate(s) killed by %d test cases",
            self.function_name, len(results.killed_candidates()),
            len(self.candidates), len(self.tests),
        )
        return results

    # ── Worker pool ───────────────────────────────────────────────────

    def _run_units(
        self, units: Iterable[tuple[int, Implementation]], label: str,
    ) -> dict[tuple[int, str], Outcome]:
        units = list(units)
        results: dict[tuple[int, str], Outcome] = {}
        if not units:
            return results

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="feat-worker",
        ) as pool:
            futures = {
                pool.submit(impl.invoke, self.tests[i].inputs, self.timeout):
                    (i, impl.identifier)
                for i, impl in units
            }
            done = as_completed(futures)
            if self.progress:
                done = tqdm(
                    done, total=len(futures), unit="call", ncols=100,
                    desc=label, bar_format=_BAR_FORMAT,
                )
            try:
                for fut in done:
                    results[futures[fut]] = fut.result()
            except ToolingError:
                pool.shutdown(wait=False, cancel_futures=True)
                raise
        return results
