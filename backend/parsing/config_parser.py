"""
Feat — Configuration-document parser.

A configuration is a JSON object::

    {
        "fname": "merge",
        "types": ["list(int)", "dict(str(ab):bool)"],
        "exhaustive domain": ["0~2(-1~1)", "[0, 1]([1]:[0, 1])"],
        "random domain": ["0~5(-10~10)", "0~3(1~2:0~1)"],
        "num random": 50
    }

Each parameter's type string is walked together with its two domain
strings, so every node is built with its own domains attached.
Closing parentheses are optional (``list(int`` == ``list(int)``).
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from errors import GenerationError, InvalidConfigError
from generation.nodes import (
    BoolNode, DictNode, FloatNode, GenNode, IntNode, ListNode,
    SetNode, StrNode, TupleNode, describe, is_hashable,
)

logger = logging.getLogger("feat.parsing.config")

_SCALAR_TYPES = ("int", "float", "bool")
_ITERABLE_TYPES = ("list", "tuple", "set")

_KEY_FNAME = "fname"
_KEY_TYPES = "types"
_KEY_EX_DOMAIN = "exhaustive domain"
_KEY_RAN_DOMAIN = "random domain"
_KEY_NUM_RANDOM = "num random"


@dataclass(frozen=True)
class ParsedSpec:
    """Everything the core needs from a configuration document."""
    function_name: str
    parameters: tuple[GenNode, ...]
    num_random: int

    def signature(self) -> str:
        params = ", ".join(describe(p) for p in self.parameters)
        return f"{self.function_name}({params})"


# ── Low-level splitting ───────────────────────────────────────────────

def _split_compound(text: str) -> tuple[str, str | None]:
    """``'list(int)'`` → ``('list', 'int')``; ``'int'`` → ``('int', None)``."""
    idx = text.find("(")
    if idx == -1:
        return text.strip(), None
    head = text[:idx].strip()
    inner = text[idx + 1:]
    stripped = inner.rstrip()
    if stripped.endswith(")") and stripped.count(")") > stripped.count("("):
        inner = stripped[:-1]
    return head, inner


def _split_pair(text: str, what: str) -> tuple[str, str]:
    idx = text.find(":")
    if idx == -1:
        raise InvalidConfigError(f"{what} {text!r} has no ':' separator")
    return text[:idx], text[idx + 1:]


# ── Domain values ─────────────────────────────────────────────────────

def _parse_number(raw: str, as_float: bool) -> int | float:
    raw = raw.strip()
    try:
        value = float(raw) if as_float else int(raw)
    except ValueError:
        kind = "float" if as_float else "integer"
        raise InvalidConfigError(f"invalid {kind} {raw!r} in domain") from None
    if as_float and not math.isfinite(value):
        raise InvalidConfigError(f"non-finite float {raw!r} in domain")
    return value


def _parse_values(domain: str, as_float: bool = False) -> list[int | float]:
    """``'[1, 2, 2]'`` → ``[1, 2]``; ``'-1~1'`` → ``[-1, 0, 1]``; ``'4'`` → ``[4]``."""
    domain = domain.strip()
    if domain.startswith("[") and domain.endswith("]"):
        body = domain[1:-1]
        if not body.strip():
            raise InvalidConfigError("empty domain '[]'")
        values = [_parse_number(v, as_float) for v in body.split(",")]
    elif "~" in domain[1:]:
        # Search from 1 so a leading minus is never taken for the separator.
        tilde = domain.index("~", 1)
        lo = _parse_number(domain[:tilde], False)
        hi = _parse_number(domain[tilde + 1:], False)
        if lo > hi:
            raise InvalidConfigError(f"empty range {domain!r}")
        values = [float(v) if as_float else v for v in range(lo, hi + 1)]
    elif domain:
        # A bare number is shorthand for a one-element list.
        values = [_parse_number(domain, as_float)]
    else:
        raise InvalidConfigError("empty domain")
    return list(dict.fromkeys(values))


def _parse_lengths(domain: str) -> list[int]:
    values = _parse_values(domain)
    for n in values:
        if n < 0:
            raise InvalidConfigError(f"negative length {n} in domain {domain!r}")
    return values


def _parse_scalar_domain(type_name: str, domain: str) -> list[int | float]:
    if "(" in domain or ":" in domain:
        raise InvalidConfigError(
            f"compound domain {domain!r} given for scalar type {type_name}"
        )
    if type_name == "float":
        return _parse_values(domain, as_float=True)
    values = _parse_values(domain)
    if type_name == "bool" and any(v not in (0, 1) for v in values):
        raise InvalidConfigError(f"bool domain {domain!r} may only hold 0 and 1")
    return values


# ── Structural descent ────────────────────────────────────────────────

def parse_parameter(type_str: str, ex_domain: str, ran_domain: str) -> GenNode:
    """Build one parameter's node tree, pairing each node with its domains."""
    type_str = type_str.strip()
    if not type_str or type_str.endswith(("(", ":")):
        raise InvalidConfigError(f"invalid type {type_str!r}")
    for dom in (ex_domain, ran_domain):
        if dom.strip().endswith(("(", ":")):
            raise InvalidConfigError(f"invalid domain {dom!r}")
    if (":" in type_str) != (":" in ex_domain) or (":" in type_str) != (":" in ran_domain):
        raise InvalidConfigError(
            f"type {type_str!r} and domains {ex_domain!r} / {ran_domain!r} "
            f"are incompatible"
        )

    head, inner = _split_compound(type_str)

    if head in _SCALAR_TYPES:
        if inner is not None:
            raise InvalidConfigError(f"scalar type {head!r} takes no arguments")
        ex = _parse_scalar_domain(head, ex_domain)
        ran = _parse_scalar_domain(head, ran_domain)
        if head == "int":
            return IntNode(ex, ran)
        if head == "float":
            return FloatNode(ex, ran)
        return BoolNode(ex, ran)

    if head == "str":
        alphabet = inner or ""
        if "(" in ex_domain or "(" in ran_domain:
            raise InvalidConfigError(f"compound domain given for {type_str!r}")
        ex = _parse_lengths(ex_domain)
        ran = _parse_lengths(ran_domain)
        if not alphabet and any(ex + ran):
            raise InvalidConfigError(
                f"{type_str!r} has an empty alphabet but non-zero lengths"
            )
        return StrNode(alphabet, ex, ran)

    if head not in _ITERABLE_TYPES and head != "dict":
        raise InvalidConfigError(f"unsupported type {head!r}")
    if not inner or not inner.strip():
        raise InvalidConfigError(f"{head!r} is missing its element type")

    ex_sizes, ex_inner = _split_compound(ex_domain)
    ran_sizes, ran_inner = _split_compound(ran_domain)
    if ex_inner is None or ran_inner is None:
        raise InvalidConfigError(
            f"{type_str!r} needs compound domains 'sizes(child)', got "
            f"{ex_domain!r} / {ran_domain!r}"
        )
    ex = _parse_lengths(ex_sizes)
    ran = _parse_lengths(ran_sizes)

    try:
        if head == "dict":
            key_type, val_type = _split_pair(inner, "dict type")
            ex_key, ex_val = _split_pair(ex_inner, "dict domain")
            ran_key, ran_val = _split_pair(ran_inner, "dict domain")
            key = parse_parameter(key_type, ex_key, ran_key)
            if not is_hashable(key):
                raise InvalidConfigError(f"dict key type {describe(key)} is unhashable")
            value = parse_parameter(val_type, ex_val, ran_val)
            return DictNode(key, value, ex, ran)

        child = parse_parameter(inner, ex_inner, ran_inner)
        if head == "set" and not is_hashable(child):
            raise InvalidConfigError(f"set element type {describe(child)} is unhashable")
        if head == "list":
            return ListNode(child, ex, ran)
        if head == "tuple":
            return TupleNode(child, ex, ran)
        return SetNode(child, ex, ran)
    except GenerationError as exc:
        raise InvalidConfigError(str(exc)) from exc


# ── Document level ────────────────────────────────────────────────────

def _require_str_list(doc: dict[str, Any], key: str) -> list[str]:
    items = doc.get(key)
    if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
        raise InvalidConfigError(f"missing or invalid {key!r}: expected a list of strings")
    return items


class ConfigFileParser:
    """Reads and validates configuration documents."""

    def read_file(self, filepath: str | Path) -> str:
        try:
            return Path(filepath).read_text(encoding="utf-8")
        except OSError as exc:
            raise InvalidConfigError(f"cannot read config {filepath}: {exc}") from exc

    def parse(self, contents: str) -> ParsedSpec:
        try:
            doc = json.loads(contents)
        except json.JSONDecodeError as exc:
            raise InvalidConfigError(f"invalid json: {exc}") from exc
        return self.parse_document(doc)

    def parse_document(self, doc: Any) -> ParsedSpec:
        if not isinstance(doc, dict):
            raise InvalidConfigError("configuration must be a JSON object")

        fname = doc.get(_KEY_FNAME)
        if not isinstance(fname, str) or not fname.isidentifier():
            raise InvalidConfigError("missing or invalid function name")

        types = _require_str_list(doc, _KEY_TYPES)
        ex_domains = _require_str_list(doc, _KEY_EX_DOMAIN)
        ran_domains = _require_str_list(doc, _KEY_RAN_DOMAIN)
        if not len(types) == len(ex_domains) == len(ran_domains):
            raise InvalidConfigError(
                f"{len(types)} types but {len(ex_domains)} exhaustive and "
                f"{len(ran_domains)} random domains"
            )

        nodes = tuple(
            parse_parameter(t, ex, ran)
            for t, ex, ran in zip(types, ex_domains, ran_domains)
        )

        num_random = doc.get(_KEY_NUM_RANDOM)
        if isinstance(num_random, bool) or not isinstance(num_random, int) or num_random < 0:
            raise InvalidConfigError("missing or invalid 'num random'")

        spec = ParsedSpec(function_name=fname, parameters=nodes, num_random=num_random)
        logger.info("Parsed config: %s, %d random", spec.signature(), num_random)
        return spec
