"""
Feat — Concise test-set selection (set cover over the kill record).

``greedy_set_cover`` is the default: repeatedly take the test case that
kills the most still-unkilled candidates (earliest case wins a tie),
then drop any pick that the rest of the selection already covers.
``exact_set_cover`` asks Z3 for a provably minimum cover instead.
"""
from __future__ import annotations

import logging
from typing import Mapping

import z3

from config import COVER_STRATEGY, Z3_TIMEOUT_MS
from differential.tester import TestResults
from generation.base_set import TestCase

logger = logging.getLogger("feat.differential.concise")

KillRecord = Mapping[TestCase, frozenset[str]]


def _union(kill_record: KillRecord) -> set[str]:
    covered: set[str] = set()
    for ids in kill_record.values():
        covered |= ids
    return covered


def _prune_redundant(
    selected: list[TestCase], kill_record: KillRecord,
) -> list[TestCase]:
    """Drop picks whose kills the remaining picks already cover.

    Walks the selection from the last pick backwards, so earlier (larger)
    picks are the ones kept.
    """
    kept = list(selected)
    for test in reversed(selected):
        others = [t for t in kept if t is not test]
        rest: set[str] = set()
        for t in others:
            rest |= kill_record[t]
        if kill_record[test] <= rest:
            kept = others
    return kept


def greedy_set_cover(kill_record: KillRecord) -> list[TestCase]:
    """Greedy cover; every candidate killed by the input is killed by the output."""
    remaining = {t: set(ids) for t, ids in kill_record.items() if ids}
    uncovered = _union(kill_record)
    selected: list[TestCase] = []

    while uncovered and remaining:
        best: TestCase | None = None
        best_gain = 0
        # dicts keep insertion order, so the first maximum is the earliest case
        for test, ids in remaining.items():
            if len(ids) > best_gain:
                best, best_gain = test, len(ids)
        if best is None:
            break
        newly = remaining.pop(best)
        selected.append(best)
        uncovered -= newly
        for test in list(remaining):
            remaining[test] -= newly
            if not remaining[test]:
                del remaining[test]

    pruned = _prune_redundant(selected, kill_record)
    if len(pruned) < len(selected):
        logger.info("Greedy cover: pruned %d redundant pick(s)",
                    len(selected) - len(pruned))
    return pruned


def exact_set_cover(
    kill_record: KillRecord, timeout_ms: int = Z3_TIMEOUT_MS,
) -> list[TestCase]:
    """Minimum-size cover via ``z3.Optimize``; greedy if Z3 gives up."""
    tests = [t for t, ids in kill_record.items() if ids]
    if not tests:
        return []

    picks = [z3.Bool(f"pick_{i}") for i in range(len(tests))]
    opt = z3.Optimize()
    opt.set("timeout", timeout_ms)
    for cand in sorted(_union(kill_record)):
        opt.add(z3.Or([p for p, t in zip(picks, tests) if cand in kill_record[t]]))
    opt.minimize(z3.Sum([z3.If(p, 1, 0) for p in picks]))

    verdict = opt.check()
    if verdict != z3.sat:
        logger.warning("Exact cover: Z3 returned %s, falling back to greedy", verdict)
        return greedy_set_cover(kill_record)

    model = opt.model()
    chosen = [
        t for p, t in zip(picks, tests)
        if z3.is_true(model.eval(p, model_completion=True))
    ]
    logger.info("Exact cover: %d of %d killing test cases", len(chosen), len(tests))
    return chosen


def concise_set(
    results: TestResults | KillRecord, strategy: str = COVER_STRATEGY,
) -> list[TestCase]:
    """The concise test set for a run.

    Greedy covers come back in pick order, exact covers in base-set order.
    """
    kill_record = results.kill_record if isinstance(results, TestResults) else results
    if strategy == "greedy":
        return greedy_set_cover(kill_record)
    if strategy == "exact":
        return exact_set_cover(kill_record)
    raise ValueError(f"unknown cover strategy {strategy!r} (expected 'greedy' or 'exact')")
