"""Conversion between host Python values and the JSON-like dynamic value model.

Python mappings are used both for JSON objects and for index-keyed arrays, so
both directions classify containers with the same rule: a mapping is an array
when its keys are exactly the integers ``0..n-1`` in insertion order, and an
object otherwise. A mapping that mixes integer and string keys is therefore
turned into an object with stringified keys; that case is lossy on purpose.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, JsonValue

from fluent_llm.errors import LLMValidationError

DynamicValue = JsonValue

INT_MIN = -(2**63)
INT_MAX = 2**63 - 1


def to_dynamic(value: Any) -> DynamicValue:
    """Convert a host value into a ``DynamicValue``.

    Unrepresentable leaves become ``None``. Integers outside the signed
    64-bit range and cyclic containers raise ``LLMValidationError``.
    """
    return _convert(value, set())


def from_dynamic(value: DynamicValue) -> Any:
    """Convert a ``DynamicValue`` back into fresh host containers."""
    return _convert(value, set())


def dumps_dynamic(value: DynamicValue) -> str:
    """Render a dynamic value as compact JSON."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def loads_dynamic(text: str) -> DynamicValue:
    """Parse JSON text into a dynamic value, rejecting NaN and Infinity literals."""
    return to_dynamic(json.loads(text, parse_constant=_reject_constant))


def is_array_mapping(mapping: Mapping[Any, Any]) -> bool:
    """Return True when a mapping is keyed exactly ``0..n-1`` in order."""
    if not mapping:
        return False
    for expected, key in enumerate(mapping):
        if isinstance(key, bool) or not isinstance(key, int) or key != expected:
            return False
    return True


def _convert(value: Any, seen: set[int]) -> DynamicValue:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        if value < INT_MIN or value > INT_MAX:
            raise LLMValidationError(f"Integer {value} is outside the supported 64-bit range")
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, BaseModel):
        return _convert(value.model_dump(mode="json"), seen)
    if isinstance(value, (list, tuple, Mapping)):
        marker = id(value)
        if marker in seen:
            raise LLMValidationError("Cannot convert a cyclic container")
        seen.add(marker)
        try:
            if isinstance(value, Mapping):
                if is_array_mapping(value):
                    return [_convert(item, seen) for item in value.values()]
                return {str(key): _convert(item, seen) for key, item in value.items()}
            return [_convert(item, seen) for item in value]
        finally:
            seen.discard(marker)
    return None


def _reject_constant(name: str) -> Any:
    raise LLMValidationError(f"Invalid JSON constant: {name}")
