"""
Two ways of spelling the same record value.

``StructuredStrategy`` takes a mapping of field name -> ``{type, value}``;
``DocumentStrategy`` takes a JSON object string decoded straight against
the registered field layout. The builder picks one by looking at the
shape of the supplied value, never at the tag.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict

from dbscenario.core.exceptions import ConstructionError
from dbscenario.types.coercion import NotConvertible, assign, convert, default_for
from dbscenario.types.descriptors import (
    FieldDescriptor,
    PrimitiveType,
    RecordDescriptor,
    RecordType,
    ReferenceType,
    SequenceType,
    TypeDescriptor,
)
from dbscenario.types.registry import TypeRegistry

if TYPE_CHECKING:
    from dbscenario.construction.builder import ValueBuilder

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def resolve_field(record: RecordDescriptor, key: str) -> FieldDescriptor:
    """Map a document key onto a field: exact, first letter re-cased, then camelCase -> snake_case."""
    if not isinstance(key, str) or not key:
        raise ConstructionError(f"field names of '{record.name}' must be non-empty strings, got {key!r}")
    candidates = (
        key,
        key[:1].lower() + key[1:],
        key[:1].upper() + key[1:],
        _CAMEL_BOUNDARY.sub(r"_\1", key).lower(),
    )
    for name in candidates:
        f = record.fields.get(name)
        if f is not None:
            return f
    raise ConstructionError(f"field '{key}' not found in type '{record.name}'")


def _populate(record: RecordDescriptor, assigned: Dict[str, Any], registry: TypeRegistry) -> Any:
    values = {
        name: assigned[name] if name in assigned else default_for(f, registry)
        for name, f in record.fields.items()
    }
    try:
        return record.instantiate(values)
    except (TypeError, ValueError) as exc:
        raise ConstructionError(f"cannot instantiate '{record.name}': {exc}") from exc


class ConstructionStrategy:
    """Builds a record instance from one representation of its value."""

    def accepts(self, value: Any) -> bool:  # pragma: no cover
        raise NotImplementedError

    def construct(self, record: RecordDescriptor, value: Any, builder: "ValueBuilder") -> Any:  # pragma: no cover
        raise NotImplementedError


class StructuredStrategy(ConstructionStrategy):
    def accepts(self, value: Any) -> bool:
        return isinstance(value, Mapping)

    def construct(self, record: RecordDescriptor, value: Any, builder: "ValueBuilder") -> Any:
        assigned: Dict[str, Any] = {}
        for key, entry in value.items():
            f = resolve_field(record, key)
            if not isinstance(entry, Mapping):
                raise ConstructionError(
                    f"invalid value of field '{key}', must be a map (is {type(entry).__name__})"
                )
            built = builder.build(entry)
            try:
                assigned[f.name] = assign(built, f.type, builder.registry)
            except NotConvertible as exc:
                raise ConstructionError(
                    f"field '{key}' can't be assigned the provided value, type mismatch"
                ) from exc
        return _populate(record, assigned, builder.registry)


class DocumentStrategy(ConstructionStrategy):
    def accepts(self, value: Any) -> bool:
        return isinstance(value, str)

    def construct(self, record: RecordDescriptor, value: Any, builder: "ValueBuilder") -> Any:
        try:
            document = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ConstructionError(f"type '{record.name}', failed to unmarshal JSON ({exc})") from exc
        if not isinstance(document, dict):
            raise ConstructionError(f"type '{record.name}', JSON document must be an object")
        return self._record(record, document, builder.registry)

    def _record(self, record: RecordDescriptor, document: Dict[str, Any], registry: TypeRegistry) -> Any:
        assigned: Dict[str, Any] = {}
        for key, raw in document.items():
            f = resolve_field(record, key)
            assigned[f.name] = self._value(f.type, raw, registry, key)
        return _populate(record, assigned, registry)

    def _value(self, descriptor: TypeDescriptor, raw: Any, registry: TypeRegistry, key: str) -> Any:
        if isinstance(descriptor, ReferenceType):
            if raw is None:
                return None
            return self._value(descriptor.target, raw, registry, key)

        if isinstance(raw, dict):
            if not isinstance(descriptor, RecordType):
                if isinstance(descriptor, PrimitiveType) and descriptor.is_any:
                    return raw
                raise ConstructionError(f"field '{key}' expects '{descriptor}', got an object")
            return self._record(registry.get(descriptor.name), raw, registry)

        if isinstance(raw, list):
            if not isinstance(descriptor, SequenceType):
                if isinstance(descriptor, PrimitiveType) and descriptor.is_any:
                    return raw
                raise ConstructionError(f"field '{key}' expects '{descriptor}', got an array")
            return descriptor.container(self._value(descriptor.element, v, registry, key) for v in raw)

        if not isinstance(descriptor, PrimitiveType):
            raise ConstructionError(f"field '{key}' expects '{descriptor}', got {raw!r}")
        if raw is None and not descriptor.is_any:
            raise ConstructionError(f"field '{key}' of type '{descriptor}' does not accept null")
        try:
            return convert(raw, descriptor.py_type)
        except NotConvertible as exc:
            raise ConstructionError(f"field '{key}': {exc}") from exc


DEFAULT_STRATEGIES = (StructuredStrategy(), DocumentStrategy())
