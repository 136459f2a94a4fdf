"""
Feat — Differential execution and concise-set selection.

Public API::

    from differential import Tester, concise_set, load_candidates
"""
from differential.execution import (
    Implementation,
    InProcessImplementation,
    SubprocessImplementation,
    Outcome,
    OutcomeKind,
    find_unsafe_construct,
    implementation_from_source,
    load_candidates,
    load_implementation,
)
from differential.tester import Tester, TestResults
from differential.concise import concise_set, exact_set_cover, greedy_set_cover

__all__ = [
    "Implementation",
    "InProcessImplementation",
    "SubprocessImplementation",
    "Outcome",
    "OutcomeKind",
    "find_unsafe_construct",
    "implementation_from_source",
    "load_candidates",
    "load_implementation",
    "Tester",
    "TestResults",
    "concise_set",
    "exact_set_cover",
    "greedy_set_cover",
]
