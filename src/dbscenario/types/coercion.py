from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, Tuple

from dbscenario.core.exceptions import ConstructionError
from dbscenario.types.descriptors import (
    PrimitiveType,
    RecordType,
    ReferenceType,
    SequenceType,
    TypeDescriptor,
)

if TYPE_CHECKING:
    from dbscenario.types.registry import TypeRegistry


class NotConvertible(ConstructionError):
    """A value cannot be represented as the requested type."""

    pass


def _integral(value: Any) -> int:
    if value != int(value):
        raise NotConvertible(f"{value!r} is not integral")
    return int(value)


def _flag(value: int) -> bool:
    if value not in (0, 1):
        raise NotConvertible(f"{value!r} is not a boolean flag")
    return bool(value)


# (source type, target type) -> converter
_CONVERSIONS: Dict[Tuple[type, type], Callable[[Any], Any]] = {
    (int, float): float,
    (int, Decimal): Decimal,
    (float, Decimal): lambda v: Decimal(str(v)),
    (Decimal, float): float,
    (float, int): _integral,
    (Decimal, int): _integral,
    (int, bool): _flag,
}

_ZERO_VALUES: Dict[type, Any] = {
    int: 0,
    float: 0.0,
    str: "",
    bool: False,
    bytes: b"",
    Decimal: Decimal(0),
}


def convertible(source: type, target: type) -> bool:
    return source is target or (source, target) in _CONVERSIONS


def convert(value: Any, target: type) -> Any:
    """Convert a scalar to ``target``; raise NotConvertible when no rule applies."""
    source = type(value)
    if source is target or target is object:
        return value
    converter = _CONVERSIONS.get((source, target))
    if converter is None:
        if isinstance(value, target) and not isinstance(value, bool):
            return value
        raise NotConvertible(
            f"expected value of/convertible to type '{target.__name__}', got '{source.__name__}'"
        )
    try:
        return converter(value)
    except (ValueError, ArithmeticError) as exc:
        raise NotConvertible(str(exc)) from exc


def assign(value: Any, descriptor: TypeDescriptor, registry: "TypeRegistry") -> Any:
    """Check that an already built value fits ``descriptor``, converting scalars when allowed."""
    if isinstance(descriptor, ReferenceType):
        if value is None:
            return None
        return assign(value, descriptor.target, registry)

    if isinstance(descriptor, SequenceType):
        if not isinstance(value, (list, tuple)):
            raise NotConvertible(f"expected a sequence, got '{type(value).__name__}'")
        items = [assign(v, descriptor.element, registry) for v in value]
        return descriptor.container(items)

    if isinstance(descriptor, RecordType):
        if not isinstance(value, descriptor.cls):
            raise NotConvertible(f"expected '{descriptor.name}', got '{type(value).__name__}'")
        return value

    if value is None and not descriptor.is_any:
        raise NotConvertible(f"'{descriptor}' does not accept null")
    return convert(value, descriptor.py_type)


def zero_value(descriptor: TypeDescriptor, registry: "TypeRegistry") -> Any:
    """The value an omitted field takes when its declaration has no default."""
    if isinstance(descriptor, ReferenceType):
        return None
    if isinstance(descriptor, SequenceType):
        return descriptor.container()
    if isinstance(descriptor, RecordType):
        record = registry.get(descriptor.name)
        return record.instantiate(
            {name: default_for(f, registry) for name, f in record.fields.items()}
        )
    if descriptor.py_type in _ZERO_VALUES:
        return _ZERO_VALUES[descriptor.py_type]
    if descriptor.is_any:
        return None
    try:
        return descriptor.py_type()
    except TypeError:
        return None


def default_for(field_descriptor, registry: "TypeRegistry") -> Any:
    if field_descriptor.has_default:
        return field_descriptor.default_factory()
    return zero_value(field_descriptor.type, registry)
