from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from dbscenario.types.coercion import NotConvertible, convert


def deep_equal(expected: Any, actual: Any) -> bool:
    """Type-strict structural equality: ``1 != 1.0`` and ``True != 1`` here."""
    if type(expected) is not type(actual):
        return False

    if isinstance(expected, (list, tuple)):
        return len(expected) == len(actual) and all(deep_equal(e, a) for e, a in zip(expected, actual))

    if isinstance(expected, Mapping):
        return expected.keys() == actual.keys() and all(deep_equal(expected[k], actual[k]) for k in expected)

    if dataclasses.is_dataclass(expected) and not isinstance(expected, type):
        return all(
            deep_equal(getattr(expected, f.name), getattr(actual, f.name))
            for f in dataclasses.fields(expected)
        )

    if isinstance(expected, BaseModel):
        return all(
            deep_equal(getattr(expected, name), getattr(actual, name))
            for name in type(expected).model_fields
        )

    return expected == actual


def coerce_to_expected(expected: Any, actual: Any) -> Any:
    """Bring a driver-returned column value to the type of the expected value.

    ``None`` is the driver's null and is returned untouched so the equality
    check reports it. Raises NotConvertible when the types are incompatible.
    """
    if actual is None or expected is None or type(actual) is type(expected):
        return actual
    return convert(actual, type(expected))


__all__ = ["NotConvertible", "coerce_to_expected", "deep_equal"]
