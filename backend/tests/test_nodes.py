"""Generator tree: exhaustive completeness, sizes, random validity."""
import random

import pytest

from errors import GenerationError
from generation.nodes import (
    BoolNode, DictNode, FloatNode, IntNode, ListNode, SetNode, StrNode,
    TupleNode, check_exhaustive_bounds, describe, exhaustive_size,
    generate_exhaustive, generate_random, iter_exhaustive,
)
from generation.values import Value, ValueKind


def _int(ex, ran=None):
    return IntNode(ex, ran if ran is not None else ex)


# ══════════════════════════════════════════════════════════════════════
# Scalars
# ══════════════════════════════════════════════════════════════════════

def test_int_exhaustive_is_exactly_the_domain():
    node = _int([-1, 0, 4])
    assert generate_exhaustive(node) == [Value.of_int(d) for d in (-1, 0, 4)]


def test_domains_are_deduplicated():
    node = _int([2, 2, 3])
    assert node.exhaustive_domain == (2, 3)
    assert len(generate_exhaustive(node)) == 2


def test_bool_and_float_wrap_their_domains():
    assert generate_exhaustive(BoolNode([0, 1], [1])) == [
        Value.of_bool(False), Value.of_bool(True),
    ]
    assert generate_exhaustive(FloatNode([0.5, 2.0], [0.5])) == [
        Value.of_float(0.5), Value.of_float(2.0),
    ]


def test_bool_rejects_other_values():
    with pytest.raises(GenerationError):
        BoolNode([0, 2], [0])


# ══════════════════════════════════════════════════════════════════════
# Strings and containers
# ══════════════════════════════════════════════════════════════════════

def test_string_exhaustive_enumerates_every_string_per_length():
    node = StrNode("ab", [0, 2], [1])
    got = {v.payload for v in generate_exhaustive(node)}
    assert got == {"", "aa", "ab", "ba", "bb"}
    assert exhaustive_size(node) == 5


def test_list_exhaustive_size_is_k_to_the_n():
    node = ListNode(_int([0, 1, 2]), [2], [2])
    values = generate_exhaustive(node)
    assert len(values) == 3 ** 2
    assert len(set(values)) == len(values)
    assert all(v.kind is ValueKind.LIST and len(v.payload) == 2 for v in values)


def test_list_exhaustive_over_several_lengths():
    node = ListNode(_int([0, 1]), [0, 1, 3], [1])
    assert exhaustive_size(node) == 1 + 2 + 8
    assert len(generate_exhaustive(node)) == 11


def test_tuple_values_are_tuples():
    node = TupleNode(BoolNode([0, 1], [0]), [1], [1])
    assert {v.to_literal() for v in generate_exhaustive(node)} == {"(False,)", "(True,)"}


def test_set_exhaustive_holds_only_full_size_sets():
    node = SetNode(_int([1, 2, 3]), [2], [2])
    values = generate_exhaustive(node)
    assert len(values) == 3
    assert {frozenset(v.to_python()) for v in values} == {
        frozenset({1, 2}), frozenset({1, 3}), frozenset({2, 3}),
    }


def test_set_larger_than_child_domain_is_empty():
    node = SetNode(_int([1]), [3], [1])
    assert generate_exhaustive(node) == []


def test_dict_exhaustive_has_unique_keys():
    node = DictNode(_int([1, 2]), BoolNode([0, 1], [0]), [0, 1, 2], [1])
    values = generate_exhaustive(node)
    # 1 empty + 2 keys * 2 values + 1 key pair * 2^2 values
    assert len(values) == 1 + 4 + 4 == exhaustive_size(node)
    assert len(set(values)) == len(values)
    for v in values:
        keys = [k for k, _ in v.payload]
        assert len(keys) == len(set(keys))


def test_nested_exhaustive_uses_child_exhaustive_set():
    inner = ListNode(_int([0, 1]), [1], [1])          # [0], [1]
    outer = ListNode(inner, [2], [2])
    assert exhaustive_size(outer) == 4
    assert Value.from_python([[1], [0]]) in generate_exhaustive(outer)


def test_iter_exhaustive_is_lazy():
    node = ListNode(_int(list(range(10))), [8], [1])
    first = next(iter_exhaustive(node))
    assert first == Value.from_python([0] * 8)


def test_exhaustive_limit_raises_generation_error():
    node = ListNode(_int(list(range(10))), [6], [1])
    with pytest.raises(GenerationError):
        generate_exhaustive(node, limit=1000)


def test_limit_applies_to_children_of_a_small_container():
    # Only the empty list is generated, but the child set would still be built.
    node = ListNode(StrNode("abcdefghij", [10], [0]), [0], [0])
    assert exhaustive_size(node) == 1
    with pytest.raises(GenerationError):
        generate_exhaustive(node, limit=100)


def test_limit_applies_to_dict_values():
    node = DictNode(_int([0]), StrNode("abcdefghij", [8], [0]), [0], [0])
    with pytest.raises(GenerationError):
        check_exhaustive_bounds(node, limit=1000)


def test_bounds_check_returns_the_size():
    node = ListNode(_int([0, 1]), [0, 2], [0])
    assert check_exhaustive_bounds(node, limit=5) == 5


def test_empty_exhaustive_domain_is_an_error():
    with pytest.raises(GenerationError):
        generate_exhaustive(_int([], [1]))


def test_negative_length_is_rejected():
    with pytest.raises(GenerationError):
        ListNode(_int([0]), [-1], [0])


def test_unhashable_set_element_is_rejected():
    with pytest.raises(GenerationError):
        SetNode(ListNode(_int([0]), [1], [1]), [1], [1])


def test_describe_round_trips_the_type_grammar():
    node = DictNode(StrNode("xy", [1], [1]), ListNode(BoolNode([0], [0]), [1], [1]), [1], [1])
    assert describe(node) == "dict(str(xy):list(bool))"


# ══════════════════════════════════════════════════════════════════════
# Random generation
# ══════════════════════════════════════════════════════════════════════

def test_random_scalars_come_from_random_domain():
    rng = random.Random(3)
    node = IntNode([0], [5, 6, 7])
    for _ in range(50):
        assert generate_random(node, rng).payload in (5, 6, 7)


def test_random_containers_respect_every_level():
    rng = random.Random(11)
    node = ListNode(StrNode("abc", [0], [2, 3]), [0], [1, 4])
    for _ in range(50):
        v = generate_random(node, rng)
        assert len(v.payload) in (1, 4)
        for s in v.payload:
            assert len(s.payload) in (2, 3)
            assert set(s.payload) <= set("abc")


def test_random_set_reaches_target_size_when_possible():
    rng = random.Random(5)
    node = SetNode(_int([0], list(range(20))), [0], [3])
    for _ in range(30):
        assert len(generate_random(node, rng).payload) == 3


def test_random_set_settles_undersized_after_retry_budget():
    rng = random.Random(5)
    node = SetNode(_int([0], [1, 2]), [0], [5])
    v = generate_random(node, rng, retry_budget=50)
    assert len(v.payload) == 2


def test_random_dict_keys_unique_and_values_in_domain():
    rng = random.Random(9)
    node = DictNode(_int([0], [1, 2, 3]), BoolNode([0], [1]), [0], [2])
    for _ in range(20):
        v = generate_random(node, rng)
        assert len(v.payload) == 2
        assert all(val == Value.of_bool(True) for _, val in v.payload)


def test_random_is_reproducible_with_a_seed():
    node = ListNode(_int([0], list(range(100))), [0], [0, 5])
    a = [generate_random(node, random.Random(42)) for _ in range(3)]
    b = [generate_random(node, random.Random(42)) for _ in range(3)]
    assert a == b
