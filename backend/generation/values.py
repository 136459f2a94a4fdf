"""
Feat — Value model.

A ``Value`` is an immutable, tagged datum: the inputs Feat generates and
the outputs it observes.  Equality is tag-aware (``True`` is not ``1``,
``(1,)`` is not ``[1]``) and structural; sets and dicts ignore order.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any


class ValueKind(enum.Enum):
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STR = "str"
    LIST = "list"
    TUPLE = "tuple"
    SET = "set"
    DICT = "dict"
    # Output-only tags.
    NONE = "none"
    OBJECT = "object"


_SCALARS = (ValueKind.BOOL, ValueKind.INT, ValueKind.FLOAT, ValueKind.STR)


@dataclass(frozen=True, eq=False)
class Value:
    """Tagged value.

    ``payload`` layout per kind:

    - scalars: the Python ``bool`` / ``int`` / ``float`` / ``str``
    - ``LIST`` / ``TUPLE`` / ``SET``: tuple of child ``Value`` (generation order)
    - ``DICT``: tuple of ``(key, value)`` pairs of ``Value``
    - ``NONE``: ``None``
    - ``OBJECT``: ``(type name, repr text)``
    """
    kind: ValueKind
    payload: Any

    # ── Constructors ──────────────────────────────────────────────────

    @classmethod
    def of_bool(cls, b: bool) -> Value:
        return cls(ValueKind.BOOL, bool(b))

    @classmethod
    def of_int(cls, n: int) -> Value:
        return cls(ValueKind.INT, int(n))

    @classmethod
    def of_float(cls, x: float) -> Value:
        return cls(ValueKind.FLOAT, float(x))

    @classmethod
    def of_str(cls, s: str) -> Value:
        return cls(ValueKind.STR, s)

    @classmethod
    def of_list(cls, items: Any) -> Value:
        return cls(ValueKind.LIST, tuple(items))

    @classmethod
    def of_tuple(cls, items: Any) -> Value:
        return cls(ValueKind.TUPLE, tuple(items))

    @classmethod
    def of_set(cls, items: Any) -> Value:
        # Keep first occurrence, drop repeats.
        return cls(ValueKind.SET, tuple(dict.fromkeys(items)))

    @classmethod
    def of_dict(cls, pairs: Any) -> Value:
        merged: dict[Value, Value] = {}
        for key, val in pairs:
            merged[key] = val
        return cls(ValueKind.DICT, tuple(merged.items()))

    @classmethod
    def none(cls) -> Value:
        return cls(ValueKind.NONE, None)

    @classmethod
    def opaque(cls, type_name: str, text: str) -> Value:
        return cls(ValueKind.OBJECT, (type_name, text))

    @classmethod
    def from_python(cls, obj: Any) -> Value:
        """Capture a native Python object; unsupported types become ``OBJECT``."""
        if obj is None:
            return cls.none()
        # bool before int: bool is an int subclass.
        if isinstance(obj, bool):
            return cls.of_bool(obj)
        if isinstance(obj, int):
            return cls.of_int(obj)
        if isinstance(obj, float):
            return cls.of_float(obj)
        if isinstance(obj, str):
            return cls.of_str(obj)
        if isinstance(obj, list):
            return cls.of_list(cls.from_python(x) for x in obj)
        if isinstance(obj, tuple):
            return cls.of_tuple(cls.from_python(x) for x in obj)
        if isinstance(obj, (set, frozenset)):
            return cls.of_set(cls.from_python(x) for x in obj)
        if isinstance(obj, dict):
            return cls.of_dict(
                (cls.from_python(k), cls.from_python(v)) for k, v in obj.items()
            )
        return cls.opaque(type(obj).__name__, repr(obj))

    # ── Conversions ───────────────────────────────────────────────────

    def to_python(self) -> Any:
        """Build a fresh native object (safe to hand to code that mutates it)."""
        kind = self.kind
        if kind in _SCALARS or kind is ValueKind.NONE:
            return self.payload
        if kind is ValueKind.LIST:
            return [v.to_python() for v in self.payload]
        if kind is ValueKind.TUPLE:
            return tuple(v.to_python() for v in self.payload)
        if kind is ValueKind.SET:
            return {v.to_python() for v in self.payload}
        if kind is ValueKind.DICT:
            return {k.to_python(): v.to_python() for k, v in self.payload}
        raise TypeError(f"OBJECT value {self.payload[1]} has no native form")

    def to_literal(self) -> str:
        """Python source text that evaluates to this value."""
        kind = self.kind
        if kind is ValueKind.FLOAT:
            x = self.payload
            if math.isnan(x):
                return "float('nan')"
            if math.isinf(x):
                return "float('inf')" if x > 0 else "float('-inf')"
            return repr(x)
        if kind in _SCALARS or kind is ValueKind.NONE:
            return repr(self.payload)
        if kind is ValueKind.LIST:
            return "[" + ", ".join(v.to_literal() for v in self.payload) + "]"
        if kind is ValueKind.TUPLE:
            if len(self.payload) == 1:
                return "(" + self.payload[0].to_literal() + ",)"
            return "(" + ", ".join(v.to_literal() for v in self.payload) + ")"
        if kind is ValueKind.SET:
            if not self.payload:
                return "set()"
            return "{" + ", ".join(v.to_literal() for v in self.payload) + "}"
        if kind is ValueKind.DICT:
            return "{" + ", ".join(
                f"{k.to_literal()}: {v.to_literal()}" for k, v in self.payload
            ) + "}"
        return self.payload[1]

    # ── Equality ──────────────────────────────────────────────────────

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        if self.kind is not other.kind:
            return False
        kind = self.kind
        if kind is ValueKind.FLOAT:
            a, b = self.payload, other.payload
            return a == b or (math.isnan(a) and math.isnan(b))
        if kind is ValueKind.SET:
            return (len(self.payload) == len(other.payload)
                    and frozenset(self.payload) == frozenset(other.payload))
        if kind is ValueKind.DICT:
            return dict(self.payload) == dict(other.payload)
        return self.payload == other.payload

    def __hash__(self) -> int:
        kind = self.kind
        if kind is ValueKind.FLOAT and math.isnan(self.payload):
            return hash((kind, "nan"))
        if kind is ValueKind.SET:
            return hash((kind, frozenset(self.payload)))
        if kind is ValueKind.DICT:
            return hash((kind, frozenset(self.payload)))
        return hash((kind, self.payload))

    def __str__(self) -> str:
        return self.to_literal()

    def __repr__(self) -> str:
        return f"Value({self.kind.value}, {self.to_literal()})"
