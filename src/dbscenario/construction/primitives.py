"""Built-in scalar tags. Tagging is strict: values are never parsed or coerced here."""

from __future__ import annotations

from typing import Any

from dbscenario.construction.registry import register_primitive
from dbscenario.core.context import Context
from dbscenario.core.exceptions import ConstructionError


def _expect(tag: str, value: Any, py_type: type, label: str) -> Any:
    # bool is an int subclass; never let it pass as one.
    if not isinstance(value, py_type) or (py_type is not bool and isinstance(value, bool)):
        raise ConstructionError(f"type '{tag}' expects value of type '{label}'")
    return value


@register_primitive(tag="context")
def build_context(tag: str, value: Any) -> Context:
    _expect(tag, value, str, "string")
    if value == "background":
        return Context.background()
    raise ConstructionError(f"type '{tag}' expects value 'background'")


@register_primitive(tag="string")
def build_string(tag: str, value: Any) -> str:
    return _expect(tag, value, str, "string")


@register_primitive(tag="int")
def build_int(tag: str, value: Any) -> int:
    return _expect(tag, value, int, "int")


@register_primitive(tag="float")
def build_float(tag: str, value: Any) -> float:
    return _expect(tag, value, float, "float")


@register_primitive(tag="bool")
def build_bool(tag: str, value: Any) -> bool:
    return _expect(tag, value, bool, "bool")
