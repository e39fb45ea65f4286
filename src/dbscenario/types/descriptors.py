"""
Structural descriptors derived from Python annotations.

A descriptor is one of four variants:

- ``PrimitiveType``: a leaf value (``int``, ``str``, ``Decimal``, ``Context``, ...)
- ``RecordType``: a reference, by qualified name, to a dataclass or pydantic model
- ``SequenceType``: ``list[T]``, ``tuple[T, ...]``, ``Sequence[T]``
- ``ReferenceType``: ``Optional[T]`` / ``T | None``, a value that may be absent

Descriptors are built once, when a type is registered, so construction
never re-derives structure from annotations.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Union

from pydantic import BaseModel


@dataclass(frozen=True)
class PrimitiveType:
    py_type: type

    @property
    def is_any(self) -> bool:
        return self.py_type is object

    def __str__(self) -> str:
        return getattr(self.py_type, "__name__", repr(self.py_type))


@dataclass(frozen=True)
class RecordType:
    name: str
    cls: type = field(compare=False)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class SequenceType:
    element: "TypeDescriptor"
    container: type = list

    def __str__(self) -> str:
        return f"{self.container.__name__}[{self.element}]"


@dataclass(frozen=True)
class ReferenceType:
    target: "TypeDescriptor"

    def __str__(self) -> str:
        return f"Optional[{self.target}]"


TypeDescriptor = Union[PrimitiveType, RecordType, SequenceType, ReferenceType]

ANY = PrimitiveType(object)

_NONE_TYPES = (type(None), None)
_SEQUENCE_ORIGINS = (list, tuple, collections.abc.Sequence, collections.abc.MutableSequence)


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    type: TypeDescriptor
    default_factory: Optional[Callable[[], Any]] = field(default=None, compare=False)

    @property
    def has_default(self) -> bool:
        return self.default_factory is not None


@dataclass(frozen=True)
class RecordDescriptor:
    """Field layout of a registered record type."""

    name: str
    cls: type
    fields: Dict[str, FieldDescriptor]

    def instantiate(self, values: Dict[str, Any]) -> Any:
        # Values were checked field by field on assignment; zero values for
        # omitted fields (None for datetime, Enum, ...) must not be re-validated.
        if issubclass(self.cls, BaseModel):
            return self.cls.model_construct(**values)
        return self.cls(**values)


def qualified_name(cls: type) -> str:
    """``<last module component>.<ClassName>``, e.g. ``models.Customer``."""
    module = getattr(cls, "__module__", "") or ""
    return f"{module.rsplit('.', 1)[-1]}.{cls.__name__}"


def is_record_class(obj: Any) -> bool:
    if not isinstance(obj, type):
        return False
    if dataclasses.is_dataclass(obj):
        return True
    return issubclass(obj, BaseModel) and obj is not BaseModel


def describe(annotation: Any) -> TypeDescriptor:
    """Translate a resolved annotation into a descriptor."""
    if annotation is Any or annotation is object:
        return ANY

    if isinstance(annotation, type) and is_record_class(annotation):
        return RecordType(qualified_name(annotation), annotation)

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is Union or origin is types.UnionType:
        non_none = [a for a in args if a not in _NONE_TYPES]
        if len(non_none) == 1 and len(non_none) < len(args):
            return ReferenceType(describe(non_none[0]))
        return ANY

    if origin in _SEQUENCE_ORIGINS:
        container = tuple if origin is tuple else list
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            return PrimitiveType(tuple)
        element = describe(args[0]) if args else ANY
        return SequenceType(element, container)

    if isinstance(annotation, type):
        return PrimitiveType(annotation)
    if origin is not None and isinstance(origin, type):
        return PrimitiveType(origin)
    return ANY


def unwrap(descriptor: TypeDescriptor) -> TypeDescriptor:
    """Strip references and sequence wrappers down to the innermost element."""
    while isinstance(descriptor, (ReferenceType, SequenceType)):
        descriptor = descriptor.target if isinstance(descriptor, ReferenceType) else descriptor.element
    return descriptor


def _dataclass_fields(cls: type) -> Tuple[FieldDescriptor, ...]:
    hints = typing.get_type_hints(cls)
    out = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        default_factory = None
        if f.default is not dataclasses.MISSING:
            default_factory = (lambda v=f.default: v)
        elif f.default_factory is not dataclasses.MISSING:
            default_factory = f.default_factory
        out.append(FieldDescriptor(f.name, describe(hints.get(f.name, Any)), default_factory))
    return tuple(out)


def _model_fields(cls: type) -> Tuple[FieldDescriptor, ...]:
    out = []
    for name, info in cls.model_fields.items():
        default_factory = None
        if not info.is_required():
            default_factory = (lambda i=info: i.get_default(call_default_factory=True))
        out.append(FieldDescriptor(name, describe(info.annotation), default_factory))
    return tuple(out)


def record_descriptor(cls: type) -> RecordDescriptor:
    """Build the field layout of a dataclass or pydantic model.

    Raises whatever ``typing.get_type_hints`` raises for unresolvable annotations.
    """
    layout = _dataclass_fields(cls) if dataclasses.is_dataclass(cls) else _model_fields(cls)
    return RecordDescriptor(qualified_name(cls), cls, {f.name: f for f in layout})
