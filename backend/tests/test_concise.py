"""Concise set: greedy cover, redundancy pruning, exact cover."""
import pytest

from differential.concise import concise_set, exact_set_cover, greedy_set_cover
from differential.tester import TestResults
from generation.base_set import TestCase
from generation.values import Value


def _case(n):
    return TestCase([Value.of_int(n)])


def _record(*kills):
    """Kill record whose i-th test case kills candidates ``m<k>`` for k in kills[i]."""
    return {
        _case(i): frozenset(f"m{k}" for k in ids)
        for i, ids in enumerate(kills)
    }


def _covered(record, selection):
    out = set()
    for t in selection:
        out |= record[t]
    return out


def _all_killed(record):
    return _covered(record, record)


# Greedy takes the 8-kill column first and then needs two more picks,
# while the two 7-kill rows alone cover everything.
ROWS_AND_COLUMNS = (
    range(1, 8),
    range(8, 15),
    (1, 2, 3, 4, 8, 9, 10, 11),
    (5, 6, 12, 13),
    (7, 14),
)


# ══════════════════════════════════════════════════════════════════════
# Greedy
# ══════════════════════════════════════════════════════════════════════

def test_greedy_covers_every_killed_candidate():
    record = _record(*ROWS_AND_COLUMNS)
    chosen = greedy_set_cover(record)
    assert _covered(record, chosen) == _all_killed(record)
    assert chosen == [_case(2), _case(3), _case(4)]


def test_greedy_tie_goes_to_the_earliest_case():
    record = _record((1,), (1,), (1,))
    assert greedy_set_cover(record) == [_case(0)]


def test_greedy_prunes_picks_made_redundant_later():
    record = _record((1, 2, 3), (1, 4), (2, 5), (3, 6))
    chosen = greedy_set_cover(record)
    assert chosen == [_case(1), _case(2), _case(3)]
    for t in chosen:
        others = [o for o in chosen if o is not t]
        assert not record[t] <= _covered(record, others)


def test_nothing_killed_gives_an_empty_set():
    assert greedy_set_cover(_record((), ())) == []
    assert greedy_set_cover({}) == []


def test_greedy_ignores_non_killing_cases():
    record = _record((), (1,), ())
    assert greedy_set_cover(record) == [_case(1)]


# ══════════════════════════════════════════════════════════════════════
# Exact
# ══════════════════════════════════════════════════════════════════════

def test_exact_finds_the_minimum_cover():
    record = _record(*ROWS_AND_COLUMNS)
    chosen = exact_set_cover(record)
    assert chosen == [_case(0), _case(1)]
    assert _covered(record, chosen) == _all_killed(record)


def test_exact_on_empty_record():
    assert exact_set_cover(_record((), ())) == []


def test_exact_is_never_larger_than_greedy():
    record = _record((1, 2), (2, 3), (3, 4), (4, 5), (5, 1), (1, 3, 5))
    exact = exact_set_cover(record)
    assert len(exact) <= len(greedy_set_cover(record))
    assert _covered(record, exact) == _all_killed(record)


# ══════════════════════════════════════════════════════════════════════
# Dispatch
# ══════════════════════════════════════════════════════════════════════

def test_concise_set_accepts_test_results():
    record = _record((1,), (1, 2))
    results = TestResults(
        tests=list(record),
        candidate_ids=["m1", "m2", "m3"],
        outcomes={},
        kill_record=record,
    )
    assert concise_set(results, "greedy") == [_case(1)]
    assert concise_set(results, "exact") == [_case(1)]
    assert results.surviving_candidates() == ["m3"]


def test_unknown_strategy():
    with pytest.raises(ValueError):
        concise_set({}, "fastest")
