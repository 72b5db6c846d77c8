"""Configured on/off values: typing, evaluation and comparison."""

import json
import os
import time
from enum import Enum
from typing import Any, Mapping, NamedTuple


class ValueType(str, Enum):
    """How a configured literal is interpreted."""

    STR = "str"
    NUM = "num"
    BOOL = "bool"
    JSON = "json"
    ENV = "env"
    DATE = "date"


class TypedValue(NamedTuple):
    value: Any
    type: ValueType


def _type_of(value: Any) -> ValueType:
    if isinstance(value, bool):
        return ValueType.BOOL
    if isinstance(value, (int, float)):
        return ValueType.NUM
    if isinstance(value, str):
        return ValueType.STR
    return ValueType.JSON


def convert_value_type(value: Any, value_type: Any, default: Any) -> TypedValue:
    """Normalise a configured literal into a value and its type.

    An empty or missing literal falls back to default, typed after default.

    Raises:
        ValueError: If the literal cannot be read as the declared type
    """
    if value is None or value == "":
        return TypedValue(default, _type_of(default))

    kind = ValueType(value_type) if value_type else _type_of(value)

    if kind == ValueType.NUM:
        if isinstance(value, str):
            number = float(value)
            value = int(number) if number.is_integer() else number
        return TypedValue(value, kind)
    if kind == ValueType.BOOL:
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered not in ("true", "false"):
                raise ValueError(f"Not a boolean literal: {value!r}")
            value = lowered == "true"
        return TypedValue(bool(value), kind)
    if kind == ValueType.JSON:
        if isinstance(value, str):
            value = json.loads(value)
        return TypedValue(value, kind)
    return TypedValue(value, kind)


def resolve_value(value: Any, value_type: ValueType) -> Any:
    """Evaluate a typed value at the moment it is used."""
    if value_type == ValueType.ENV:
        return os.environ.get(str(value), "")
    if value_type == ValueType.DATE:
        return int(time.time() * 1000)
    return value


def values_equal(left: Any, right: Any) -> bool:
    """Deep equality where booleans never equal numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if left.keys() != right.keys():
            return False
        return all(values_equal(left[key], right[key]) for key in left)
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(values_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, (Mapping, list, tuple)) or isinstance(right, (Mapping, list, tuple)):
        return False
    return left == right
