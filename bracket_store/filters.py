"""
Record matching and patching helpers.
"""

import copy
from collections.abc import Callable, Mapping
from typing import Any

from .models import Record

_MISSING = object()


def strict_equals(actual: Any, expected: Any) -> bool:
    """
    Equality without bool/int coercion, at any depth.

    True never matches 1 and False never matches 0, including inside
    nested mappings and lists; everything else uses plain equality, so
    "1" still never matches 1.
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    if isinstance(actual, Mapping) and isinstance(expected, Mapping):
        return actual.keys() == expected.keys() and all(
            strict_equals(actual[key], expected[key]) for key in expected
        )
    if isinstance(actual, list) and isinstance(expected, list):
        return len(actual) == len(expected) and all(
            strict_equals(a, e) for a, e in zip(actual, expected)
        )
    return actual == expected


def make_filter(partial: Mapping[str, Any]) -> Callable[[Record], bool]:
    """
    Build a predicate matching records whose fields all equal the filter's.

    A field missing from the record matches nothing, not even None.
    """
    items = list(partial.items())

    def predicate(entry: Record) -> bool:
        for key, expected in items:
            actual = entry.get(key, _MISSING)
            if actual is _MISSING or not strict_equals(actual, expected):
                return False
        return True

    return predicate


def merge_patch(existing: Record, patch: Mapping[str, Any]) -> Record:
    """
    Apply a patch to a record in place.

    When both the current and the new value of a field are mappings, the
    patch's top-level keys are merged into the current mapping (one level
    deep, e.g. an opponent's score and result). Any other value replaces
    the field outright.
    """
    for key, value in patch.items():
        current = existing.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            current.update(copy.deepcopy(dict(value)))
        else:
            existing[key] = copy.deepcopy(value)
    return existing
