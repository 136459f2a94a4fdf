"""Base set: cross product across parameters, random draws, TestCase identity."""
import random

import pytest

from errors import GenerationError
from generation.base_set import BaseSetGenerator, TestCase
from generation.nodes import BoolNode, IntNode, ListNode, SetNode, StrNode
from generation.values import Value


def test_cross_product_has_a_times_b_distinct_cases():
    a = IntNode([0, 1, 2], [0])
    b = StrNode("xy", [1], [1])
    tests = BaseSetGenerator([a, b], 0).gen_base_set()
    assert len(tests) == 3 * 2
    assert len(set(tests)) == len(tests)


def test_two_int_parameters_enumerate_in_order():
    nodes = [IntNode([0, 1], [0, 1]), IntNode([0, 1], [0, 1])]
    tests = BaseSetGenerator(nodes, 0).gen_base_set()
    assert [str(t) for t in tests] == ["(0, 0)", "(0, 1)", "(1, 0)", "(1, 1)"]


def test_random_part_adds_only_new_cases():
    node = IntNode([0], list(range(1000)))
    gen = BaseSetGenerator([node], 25, rng=random.Random(1))
    tests = gen.gen_base_set()
    assert tests[0] == TestCase([Value.of_int(0)])
    assert len(tests) == len(set(tests))
    assert 1 < len(tests) <= 26


def test_random_duplicates_of_exhaustive_cases_are_dropped():
    node = BoolNode([0, 1], [0, 1])
    tests = BaseSetGenerator([node], 40, rng=random.Random(0)).gen_base_set()
    assert len(tests) == 2


def test_seeded_builds_are_identical():
    node = ListNode(IntNode([0], list(range(50))), [0], [3])
    a = BaseSetGenerator([node], 10, rng=random.Random(7)).gen_base_set()
    b = BaseSetGenerator([node], 10, rng=random.Random(7)).gen_base_set()
    assert a == b


def test_base_set_limit_applies_to_the_product():
    nodes = [IntNode(list(range(100)), [0]), IntNode(list(range(100)), [0])]
    gen = BaseSetGenerator(nodes, 0, limit=5000)
    assert gen.exhaustive_count() == 10_000
    with pytest.raises(GenerationError):
        gen.gen_base_set()


def test_parameter_with_no_exhaustive_values_is_an_error():
    # A size-3 set over a 2-value domain has nothing to enumerate.
    empty = SetNode(IntNode([0, 1], [0]), [3], [0])
    gen = BaseSetGenerator([empty, StrNode("abcdefghij", [6], [0])], 0, limit=100)
    with pytest.raises(GenerationError, match="parameter 0"):
        gen.gen_base_set()


def test_base_set_limit_applies_to_nested_sets():
    node = ListNode(StrNode("abcdefghij", [6], [0]), [0], [0])
    gen = BaseSetGenerator([node], 0, limit=100)
    assert gen.exhaustive_count() == 1
    with pytest.raises(GenerationError):
        gen.gen_base_set()


def test_negative_num_random_is_rejected():
    with pytest.raises(GenerationError):
        BaseSetGenerator([IntNode([0], [0])], -1)


# ══════════════════════════════════════════════════════════════════════
# TestCase
# ══════════════════════════════════════════════════════════════════════

def test_testcase_identity_ignores_expected_outcome():
    a = TestCase([Value.of_int(1)])
    b = TestCase([Value.of_int(1)])
    a.set_expected("anything")
    assert a == b
    assert hash(a) == hash(b)


def test_expected_outcome_is_write_once():
    t = TestCase([Value.of_int(1)])
    t.set_expected("first")
    with pytest.raises(RuntimeError):
        t.set_expected("second")
    assert t.expected == "first"


def test_args_are_native_and_fresh():
    t = TestCase([Value.from_python([1, 2]), Value.of_str("a")])
    args = t.args()
    assert args == ([1, 2], "a")
    args[0].append(3)
    assert t.args()[0] == [1, 2]
