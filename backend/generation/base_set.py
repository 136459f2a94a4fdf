"""
Feat — Base test-set construction.

The exhaustive partition is the cross product of every parameter's
exhaustive set; the random partition is ``num_random`` independent
draws.  A random draw that coincides with an earlier test case is
dropped, so the base set never holds the same inputs twice.
"""
from __future__ import annotations

import itertools
import logging
import math
import random
from typing import Any, Iterator, Sequence

from config import MAX_EXHAUSTIVE_SIZE
from errors import GenerationError
from generation.nodes import (
    GenNode, check_exhaustive_bounds, describe, draw_parameters,
    exhaustive_size, iter_exhaustive,
)
from generation.values import Value

logger = logging.getLogger("feat.generation.base_set")


class TestCase:
    """One input tuple plus the reference outcome, attached later.

    Equality and hashing use the inputs only.
    """
    __test__ = False  # not a pytest class

    __slots__ = ("_inputs", "_expected")

    def __init__(self, inputs: Sequence[Value]) -> None:
        self._inputs: tuple[Value, ...] = tuple(inputs)
        self._expected: Any = None

    @property
    def inputs(self) -> tuple[Value, ...]:
        return self._inputs

    @property
    def expected(self) -> Any:
        """The reference ``Outcome`` (``None`` until computed)."""
        return self._expected

    def set_expected(self, outcome: Any) -> None:
        if self._expected is not None:
            raise RuntimeError(f"expected outcome of {self} is already set")
        self._expected = outcome

    def args(self) -> tuple[Any, ...]:
        """Fresh native call arguments."""
        return tuple(v.to_python() for v in self._inputs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TestCase):
            return NotImplemented
        return self._inputs == other._inputs

    def __hash__(self) -> int:
        return hash(self._inputs)

    def __str__(self) -> str:
        return "(" + ", ".join(v.to_literal() for v in self._inputs) + ")"

    def __repr__(self) -> str:
        return f"TestCase{self}"


class BaseSetGenerator:
    """Builds the base test set for a list of parameter nodes."""

    def __init__(
        self,
        nodes: Sequence[GenNode],
        num_random: int,
        rng: random.Random | None = None,
        limit: int = MAX_EXHAUSTIVE_SIZE,
    ) -> None:
        if num_random < 0:
            raise GenerationError(f"num_random must be >= 0, got {num_random}")
        self.nodes = list(nodes)
        self.num_random = num_random
        self.rng = rng if rng is not None else random.Random()
        self.limit = limit

    def exhaustive_count(self) -> int:
        return math.prod(exhaustive_size(node) for node in self.nodes)

    def iter_exhaustive(self) -> Iterator[TestCase]:
        # Each parameter's own set is built once; only the product is lazy.
        per_param = [list(iter_exhaustive(node)) for node in self.nodes]
        for combo in itertools.product(*per_param):
            yield TestCase(combo)

    def gen_exhaustive(self) -> list[TestCase]:
        for pos, node in enumerate(self.nodes):
            # An empty parameter set would empty the whole cross product.
            if check_exhaustive_bounds(node, self.limit) == 0:
                raise GenerationError(
                    f"parameter {pos} ({describe(node)}) has no exhaustive values"
                )
        count = self.exhaustive_count()
        if count > self.limit:
            sizes = ", ".join(
                f"{describe(n)}={exhaustive_size(n)}" for n in self.nodes
            )
            raise GenerationError(
                f"exhaustive base set would hold {count} test cases "
                f"(limit {self.limit}): {sizes}"
            )
        return list(self.iter_exhaustive())

    def gen_random(self) -> list[TestCase]:
        return [
            TestCase(draw_parameters(self.nodes, self.rng))
            for _ in range(self.num_random)
        ]

    def gen_base_set(self) -> list[TestCase]:
        exhaustive = self.gen_exhaustive()
        seen = set(exhaustive)
        random_part: list[TestCase] = []
        for case in self.gen_random():
            if case not in seen:
                seen.add(case)
                random_part.append(case)
        logger.info(
            "Base set: %d exhaustive + %d random test cases over %d parameter(s)",
            len(exhaustive), len(random_part), len(self.nodes),
        )
        return exhaustive + random_part
