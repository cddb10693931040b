"""Trait and property bags.

A bag maps string keys to one of a closed set of value shapes: string,
number, boolean, null, or a nested bag. Merges are shallow.
"""

import math
from collections.abc import Mapping
from typing import Any, TypeAlias

from core.exceptions import PayloadValidationError

Bag: TypeAlias = dict[str, Any]

# Integer range the JSON encoder can serialise.
MIN_INT = -(2**63)
MAX_INT = 2**64 - 1


def validate_bag(value: Any, field: str) -> Bag:
    """Check that ``value`` is a well-formed bag and return a plain-dict copy.

    ``None`` is accepted and yields an empty bag.
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise PayloadValidationError(f"{field} must be an object", field=field)
    return _validate_mapping(value, field)


def _validate_mapping(value: Mapping[Any, Any], path: str) -> Bag:
    result: Bag = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise PayloadValidationError(f"{path} keys must be strings", field=path)
        result[key] = _validate_value(item, f"{path}.{key}")
    return result


def _validate_value(value: Any, path: str) -> Any:
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, int):
        if not MIN_INT <= value <= MAX_INT:
            raise PayloadValidationError(
                f"{path} is outside the 64-bit integer range", field=path
            )
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise PayloadValidationError(f"{path} must be a finite number", field=path)
        return value
    if isinstance(value, Mapping):
        return _validate_mapping(value, path)
    raise PayloadValidationError(
        f"{path} has unsupported type {type(value).__name__}",
        field=path,
    )


def merge_bags(current: Bag, incoming: Bag) -> Bag:
    """Shallow merge: incoming keys overwrite, sibling keys are retained."""
    return {**current, **incoming}
