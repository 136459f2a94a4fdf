"""Differential tester: expected outcomes, kill record, error handling."""
import pytest

from differential.execution import InProcessImplementation, Outcome, OutcomeKind
from differential.tester import Tester
from errors import ToolingError
from generation.base_set import BaseSetGenerator, TestCase
from generation.nodes import IntNode, ListNode
from generation.values import Value


def _impl(name, func):
    return InProcessImplementation(name, func)


def _pairs():
    nodes = [IntNode([0, 1], [0]), IntNode([0, 1], [0])]
    return BaseSetGenerator(nodes, 0).gen_base_set()


def _case(*ints):
    return TestCase([Value.of_int(i) for i in ints])


# ══════════════════════════════════════════════════════════════════════
# Two-phase run
# ══════════════════════════════════════════════════════════════════════

def test_kill_record_for_sum_against_constant_zero():
    tests = _pairs()
    tester = Tester(
        "add",
        _impl("ref", lambda a, b: a + b),
        [_impl("zero", lambda a, b: 0), _impl("same", lambda a, b: b + a)],
        tests,
        max_workers=4,
    )
    expected = tester.compute_expected_results()
    assert [str(o) for o in expected] == ["0", "1", "1", "2"]

    results = tester.run_tests()
    assert results.kill_record[_case(0, 0)] == frozenset()
    for killing in (_case(0, 1), _case(1, 0), _case(1, 1)):
        assert results.kill_record[killing] == frozenset({"zero"})
    assert results.killed_candidates() == frozenset({"zero"})
    assert results.surviving_candidates() == ["same"]
    assert results.kills_of("zero") == [_case(0, 1), _case(1, 0), _case(1, 1)]


def test_kill_record_keeps_base_set_order():
    tests = _pairs()
    tester = Tester("add", _impl("ref", lambda a, b: a), [_impl("c", lambda a, b: b)], tests)
    tester.compute_expected_results()
    results = tester.run_tests()
    assert list(results.kill_record) == tests
    assert results.outcomes[(1, "c")] == Outcome.success(Value.of_int(1))


def test_run_tests_requires_expected_results():
    tester = Tester("add", _impl("ref", lambda a, b: a), [], _pairs())
    with pytest.raises(RuntimeError):
        tester.run_tests()


def test_no_candidates_gives_an_empty_kill_record():
    tester = Tester("add", _impl("ref", lambda a, b: a), [], _pairs())
    tester.compute_expected_results()
    results = tester.run_tests()
    assert all(ids == frozenset() for ids in results.kill_record.values())
    assert results.surviving_candidates() == []


# ══════════════════════════════════════════════════════════════════════
# Failure outcomes
# ══════════════════════════════════════════════════════════════════════

def _divide(a, b):
    return a // b


def test_reference_exceptions_are_expected_outcomes():
    tests = _pairs()
    same_error = _impl("same_error", lambda a, b: a // b)
    other_error = _impl("other_error", lambda a, b: [][0] if b == 0 else a // b)
    tester = Tester("div", _impl("ref", _divide), [same_error, other_error], tests)
    expected = tester.compute_expected_results()
    assert expected[0].kind is OutcomeKind.EXCEPTION
    assert expected[0].error_type == "ZeroDivisionError"

    results = tester.run_tests()
    assert "same_error" not in results.killed_candidates()
    assert results.kill_record[_case(0, 0)] == frozenset({"other_error"})
    assert results.kill_record[_case(1, 1)] == frozenset()


def test_hanging_candidate_is_killed_by_timeout():
    def hang(a):
        while a >= 0:
            pass

    tests = [_case(1)]
    tester = Tester("f", _impl("ref", lambda a: a), [_impl("hang", hang)], tests, timeout=0.2)
    tester.compute_expected_results()
    results = tester.run_tests()
    assert results.outcomes[(0, "hang")].kind is OutcomeKind.TIMEOUT
    assert results.kill_record[tests[0]] == frozenset({"hang"})


def test_mutating_candidate_does_not_affect_others():
    node = ListNode(IntNode([1, 2], [1]), [2], [1])
    tests = BaseSetGenerator([node], 0).gen_base_set()

    def clobber(xs):
        xs.clear()
        return 0

    tester = Tester(
        "total", _impl("ref", sum),
        [_impl("clobber", clobber), _impl("ok", lambda xs: sum(xs))], tests,
    )
    tester.compute_expected_results()
    results = tester.run_tests()
    assert results.surviving_candidates() == ["ok"]
    assert [t.args() for t in tests] == [([1, 1],), ([1, 2],), ([2, 1],), ([2, 2],)]


# ══════════════════════════════════════════════════════════════════════
# Construction errors
# ══════════════════════════════════════════════════════════════════════

def test_duplicate_candidate_ids_are_rejected():
    cands = [_impl("dup", lambda a, b: 0), _impl("dup", lambda a, b: 1)]
    with pytest.raises(ToolingError):
        Tester("add", _impl("ref", lambda a, b: 0), cands, _pairs())


def test_arity_mismatch_is_a_tooling_error():
    with pytest.raises(ToolingError):
        Tester("add", _impl("ref", lambda a, b: 0), [_impl("one", lambda a: a)], _pairs())


def test_expected_outcomes_are_write_once():
    tests = _pairs()
    tester = Tester("add", _impl("ref", lambda a, b: a + b), [], tests)
    tester.compute_expected_results()
    with pytest.raises(RuntimeError):
        tester.compute_expected_results()
