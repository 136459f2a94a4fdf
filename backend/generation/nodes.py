"""
Feat — Generator tree.

One frozen dataclass per supported type.  Scalar nodes read their
domains as candidate values; ``str`` and container nodes read them as
candidate lengths.  Generation dispatches on the node variant:

    generate_exhaustive(node)      every value under the exhaustive domain
    iter_exhaustive(node)          the same, lazily
    exhaustive_size(node)          how many values that is, without building them
    check_exhaustive_bounds(node)  the same count, with every level held to the limit
    generate_random(node, rng)     one value drawn from the random domain
"""
from __future__ import annotations

import itertools
import logging
import math
import random
from dataclasses import dataclass
from typing import Iterator, Sequence, Union

from config import MAX_EXHAUSTIVE_SIZE, RANDOM_RETRY_BUDGET
from errors import GenerationError
from generation.values import Value

logger = logging.getLogger("feat.generation.nodes")

_DEFAULT_RNG = random.Random()


def _freeze_domain(node: object, name: str) -> None:
    domain = tuple(dict.fromkeys(getattr(node, name)))
    object.__setattr__(node, name, domain)


def _check_lengths(node: object) -> None:
    for name in ("exhaustive_domain", "random_domain"):
        for n in getattr(node, name):
            if isinstance(n, bool) or not isinstance(n, int) or n < 0:
                raise GenerationError(
                    f"{type(node).__name__}: length {n!r} in {name} is not a "
                    f"non-negative integer"
                )


# ── Scalar nodes ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class BoolNode:
    """Domain entries are 0 / 1."""
    exhaustive_domain: tuple[int, ...]
    random_domain: tuple[int, ...]

    def __post_init__(self) -> None:
        _freeze_domain(self, "exhaustive_domain")
        _freeze_domain(self, "random_domain")
        for d in self.exhaustive_domain + self.random_domain:
            if d not in (0, 1):
                raise GenerationError(f"BoolNode: {d!r} is not 0 or 1")


@dataclass(frozen=True)
class IntNode:
    exhaustive_domain: tuple[int, ...]
    random_domain: tuple[int, ...]

    def __post_init__(self) -> None:
        _freeze_domain(self, "exhaustive_domain")
        _freeze_domain(self, "random_domain")


@dataclass(frozen=True)
class FloatNode:
    exhaustive_domain: tuple[float, ...]
    random_domain: tuple[float, ...]

    def __post_init__(self) -> None:
        _freeze_domain(self, "exhaustive_domain")
        _freeze_domain(self, "random_domain")


# ── Sized nodes ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class StrNode:
    """Strings over ``alphabet``; domains are string lengths."""
    alphabet: str
    exhaustive_domain: tuple[int, ...]
    random_domain: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "alphabet", "".join(dict.fromkeys(self.alphabet)))
        _freeze_domain(self, "exhaustive_domain")
        _freeze_domain(self, "random_domain")
        _check_lengths(self)


@dataclass(frozen=True)
class ListNode:
    element: GenNode
    exhaustive_domain: tuple[int, ...]
    random_domain: tuple[int, ...]

    def __post_init__(self) -> None:
        _freeze_domain(self, "exhaustive_domain")
        _freeze_domain(self, "random_domain")
        _check_lengths(self)


@dataclass(frozen=True)
class TupleNode:
    element: GenNode
    exhaustive_domain: tuple[int, ...]
    random_domain: tuple[int, ...]

    def __post_init__(self) -> None:
        _freeze_domain(self, "exhaustive_domain")
        _freeze_domain(self, "random_domain")
        _check_lengths(self)


@dataclass(frozen=True)
class SetNode:
    element: GenNode
    exhaustive_domain: tuple[int, ...]
    random_domain: tuple[int, ...]

    def __post_init__(self) -> None:
        _freeze_domain(self, "exhaustive_domain")
        _freeze_domain(self, "random_domain")
        _check_lengths(self)
        if not is_hashable(self.element):
            raise GenerationError(
                f"set elements must be hashable, got {describe(self.element)}"
            )


@dataclass(frozen=True)
class DictNode:
    key: GenNode
    value: GenNode
    exhaustive_domain: tuple[int, ...]
    random_domain: tuple[int, ...]

    def __post_init__(self) -> None:
        _freeze_domain(self, "exhaustive_domain")
        _freeze_domain(self, "random_domain")
        _check_lengths(self)
        if not is_hashable(self.key):
            raise GenerationError(
                f"dict keys must be hashable, got {describe(self.key)}"
            )


GenNode = Union[
    BoolNode, IntNode, FloatNode, StrNode,
    ListNode, TupleNode, SetNode, DictNode,
]

_SCALAR_NODES = (BoolNode, IntNode, FloatNode)
_SEQUENCE_NODES = (ListNode, TupleNode)


# ── Introspection ─────────────────────────────────────────────────────

def is_hashable(node: GenNode) -> bool:
    """Whether values of this node can be set elements / dict keys."""
    if isinstance(node, (BoolNode, IntNode, FloatNode, StrNode)):
        return True
    if isinstance(node, TupleNode):
        return is_hashable(node.element)
    return False


def describe(node: GenNode) -> str:
    """Type string in configuration-grammar form, e.g. ``dict(int:list(bool))``."""
    if isinstance(node, BoolNode):
        return "bool"
    if isinstance(node, IntNode):
        return "int"
    if isinstance(node, FloatNode):
        return "float"
    if isinstance(node, StrNode):
        return f"str({node.alphabet})"
    if isinstance(node, ListNode):
        return f"list({describe(node.element)})"
    if isinstance(node, TupleNode):
        return f"tuple({describe(node.element)})"
    if isinstance(node, SetNode):
        return f"set({describe(node.element)})"
    if isinstance(node, DictNode):
        return f"dict({describe(node.key)}:{describe(node.value)})"
    raise TypeError(f"not a generator node: {node!r}")


# ── Exhaustive generation ─────────────────────────────────────────────

def exhaustive_size(node: GenNode) -> int:
    """Number of values ``iter_exhaustive(node)`` yields."""
    if isinstance(node, _SCALAR_NODES):
        return len(node.exhaustive_domain)
    if isinstance(node, StrNode):
        k = len(node.alphabet)
        return sum(k ** n for n in node.exhaustive_domain)
    if isinstance(node, _SEQUENCE_NODES):
        k = exhaustive_size(node.element)
        return sum(k ** n for n in node.exhaustive_domain)
    if isinstance(node, SetNode):
        k = exhaustive_size(node.element)
        return sum(math.comb(k, n) for n in node.exhaustive_domain)
    if isinstance(node, DictNode):
        keys = exhaustive_size(node.key)
        vals = exhaustive_size(node.value)
        return sum(math.comb(keys, n) * vals ** n for n in node.exhaustive_domain)
    raise TypeError(f"not a generator node: {node!r}")


def _children(node: GenNode) -> tuple[GenNode, ...]:
    if isinstance(node, DictNode):
        return (node.key, node.value)
    if isinstance(node, (ListNode, TupleNode, SetNode)):
        return (node.element,)
    return ()


def check_exhaustive_bounds(node: GenNode, limit: int = MAX_EXHAUSTIVE_SIZE) -> int:
    """Size of ``node``'s exhaustive set, checked before anything is built.

    Every descendant's own exhaustive set is materialised during
    enumeration, so each one is held to ``limit`` as well.
    """
    if not node.exhaustive_domain:
        raise GenerationError(f"{describe(node)}: empty exhaustive domain")
    for child in _children(node):
        check_exhaustive_bounds(child, limit)
    size = exhaustive_size(node)
    if size > limit:
        raise GenerationError(
            f"{describe(node)}: exhaustive domain has {size} values "
            f"(limit {limit})"
        )
    return size


def iter_exhaustive(node: GenNode) -> Iterator[Value]:
    """Lazily yield every value under the exhaustive domain, without repeats.

    Sets and dicts only ever hold *distinct* elements / keys, so a
    declared size ``n`` yields collections of exactly ``n`` entries.
    """
    if not node.exhaustive_domain:
        raise GenerationError(f"{describe(node)}: empty exhaustive domain")

    if isinstance(node, BoolNode):
        for d in node.exhaustive_domain:
            yield Value.of_bool(d)
    elif isinstance(node, IntNode):
        for d in node.exhaustive_domain:
            yield Value.of_int(d)
    elif isinstance(node, FloatNode):
        for d in node.exhaustive_domain:
            yield Value.of_float(d)
    elif isinstance(node, StrNode):
        for n in node.exhaustive_domain:
            for chars in itertools.product(node.alphabet, repeat=n):
                yield Value.of_str("".join(chars))
    elif isinstance(node, _SEQUENCE_NODES):
        wrap = Value.of_list if isinstance(node, ListNode) else Value.of_tuple
        inner = list(iter_exhaustive(node.element))
        for n in node.exhaustive_domain:
            for combo in itertools.product(inner, repeat=n):
                yield wrap(combo)
    elif isinstance(node, SetNode):
        inner = list(iter_exhaustive(node.element))
        for n in node.exhaustive_domain:
            for combo in itertools.combinations(inner, n):
                yield Value.of_set(combo)
    elif isinstance(node, DictNode):
        keys = list(iter_exhaustive(node.key))
        vals = list(iter_exhaustive(node.value))
        for n in node.exhaustive_domain:
            for key_combo in itertools.combinations(keys, n):
                for val_combo in itertools.product(vals, repeat=n):
                    yield Value.of_dict(zip(key_combo, val_combo))
    else:
        raise TypeError(f"not a generator node: {node!r}")


def generate_exhaustive(
    node: GenNode, limit: int = MAX_EXHAUSTIVE_SIZE,
) -> list[Value]:
    """Materialise the exhaustive set, refusing anything larger than ``limit``."""
    check_exhaustive_bounds(node, limit)
    values = list(iter_exhaustive(node))
    logger.debug("exhaustive %s → %d values", describe(node), len(values))
    return values


# ── Random generation ─────────────────────────────────────────────────

def _choice(rng: random.Random, node: GenNode) -> int | float:
    if not node.random_domain:
        raise GenerationError(f"{describe(node)}: empty random domain")
    return rng.choice(node.random_domain)


def _draw_distinct(
    draw, target: int, budget: int, label: str,
) -> list[Value]:
    """Draw until ``target`` distinct values, tolerating ``budget`` repeats.

    When the budget runs out the collection is accepted under-sized.
    """
    picked: dict[Value, None] = {}
    repeats = 0
    while len(picked) < target:
        v = draw()
        if v not in picked:
            picked[v] = None
            continue
        repeats += 1
        if repeats > budget:
            logger.warning(
                "random %s: settled for %d of %d distinct entries",
                label, len(picked), target,
            )
            break
    return list(picked)


def generate_random(
    node: GenNode,
    rng: random.Random | None = None,
    retry_budget: int = RANDOM_RETRY_BUDGET,
) -> Value:
    """One value drawn uniformly over the random domain, children included."""
    rng = rng if rng is not None else _DEFAULT_RNG

    if isinstance(node, BoolNode):
        return Value.of_bool(_choice(rng, node))
    if isinstance(node, IntNode):
        return Value.of_int(_choice(rng, node))
    if isinstance(node, FloatNode):
        return Value.of_float(_choice(rng, node))

    n = _choice(rng, node)
    if isinstance(node, StrNode):
        if n and not node.alphabet:
            raise GenerationError(f"{describe(node)}: empty alphabet for length {n}")
        return Value.of_str("".join(rng.choice(node.alphabet) for _ in range(n)))
    if isinstance(node, ListNode):
        return Value.of_list(
            generate_random(node.element, rng, retry_budget) for _ in range(n)
        )
    if isinstance(node, TupleNode):
        return Value.of_tuple(
            generate_random(node.element, rng, retry_budget) for _ in range(n)
        )
    if isinstance(node, SetNode):
        items = _draw_distinct(
            lambda: generate_random(node.element, rng, retry_budget),
            n, retry_budget, describe(node),
        )
        return Value.of_set(items)
    if isinstance(node, DictNode):
        keys = _draw_distinct(
            lambda: generate_random(node.key, rng, retry_budget),
            n, retry_budget, describe(node),
        )
        return Value.of_dict(
            (k, generate_random(node.value, rng, retry_budget)) for k in keys
        )
    raise TypeError(f"not a generator node: {node!r}")


def draw_parameters(
    nodes: Sequence[GenNode], rng: random.Random | None = None,
) -> tuple[Value, ...]:
    """One independent random draw per parameter node."""
    return tuple(generate_random(node, rng) for node in nodes)
