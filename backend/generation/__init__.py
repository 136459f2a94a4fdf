"""
Feat — Value generation.

Public API::

    from generation import Value, BaseSetGenerator, TestCase
"""
from generation.values import Value, ValueKind
from generation.nodes import (
    BoolNode,
    IntNode,
    FloatNode,
    StrNode,
    ListNode,
    TupleNode,
    SetNode,
    DictNode,
    GenNode,
    check_exhaustive_bounds,
    describe,
    exhaustive_size,
    generate_exhaustive,
    generate_random,
    iter_exhaustive,
)
from generation.base_set import BaseSetGenerator, TestCase

__all__ = [
    "Value",
    "ValueKind",
    "BoolNode",
    "IntNode",
    "FloatNode",
    "StrNode",
    "ListNode",
    "TupleNode",
    "SetNode",
    "DictNode",
    "GenNode",
    "check_exhaustive_bounds",
    "describe",
    "exhaustive_size",
    "generate_exhaustive",
    "generate_random",
    "iter_exhaustive",
    "BaseSetGenerator",
    "TestCase",
]
