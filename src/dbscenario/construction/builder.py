from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, Sequence, Tuple, Union

from dbscenario.bootstrap import load_builtin_primitives
from dbscenario.construction.registry import PrimitiveRegistry
from dbscenario.construction.strategies import DEFAULT_STRATEGIES, ConstructionStrategy
from dbscenario.core.exceptions import ConstructionError
from dbscenario.models.scenario import TypedValue
from dbscenario.types.registry import TypeRegistry

ARRAY_TAG = "array"


class ValueBuilder:
    """
    Turns a tagged ``{type, value}`` description into a concrete Python value.

    Dispatch on the tag:
        - a registered primitive tag (``context``, ``string``, ``int``, ``float``, ``bool``)
        - ``array``: a non-empty list of tagged elements that all build to the same type
        - anything else: a custom record type looked up in the ``TypeRegistry``

    Example:
        >>> builder = ValueBuilder(registry)
        >>> builder.build({"type": "int", "value": 3})
        3
    """

    def __init__(
        self,
        registry: TypeRegistry,
        *,
        strategies: Optional[Sequence[ConstructionStrategy]] = None,
    ):
        load_builtin_primitives()
        self.registry = registry
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES

    def build(self, typed: Union[TypedValue, Mapping]) -> Any:
        tag, value = self._unpack(typed)

        if tag == ARRAY_TAG:
            return self._build_array(value)

        primitive = PrimitiveRegistry.try_get(tag)
        if primitive is not None:
            return primitive(tag, value)

        return self._build_custom(tag, value)

    @staticmethod
    def _unpack(typed: Union[TypedValue, Mapping]) -> Tuple[str, Any]:
        if isinstance(typed, TypedValue):
            tag, value = typed.type, typed.value
        elif isinstance(typed, Mapping):
            if "type" not in typed:
                raise ConstructionError("expected 'type' in map")
            tag = typed["type"]
            if not isinstance(tag, str):
                raise ConstructionError("'type' in map must be a string")
            if "value" not in typed:
                raise ConstructionError("expected 'value' in map")
            value = typed["value"]
        else:
            raise ConstructionError(f"expected a tagged value, got {type(typed).__name__}")
        if not tag:
            raise ConstructionError("object type mustn't be empty")
        return tag, value

    def _build_array(self, value: Any) -> list:
        if not isinstance(value, list) or not value:
            raise ConstructionError(
                f"type '{ARRAY_TAG}' expects value of type 'array of maps' which mustn't be empty"
            )
        items = []
        element_type: Optional[type] = None
        for element in value:
            if not isinstance(element, Mapping):
                raise ConstructionError(
                    f"type '{ARRAY_TAG}' expects value of type 'array of maps' which mustn't be empty"
                )
            item = self.build(element)
            if element_type is None:
                element_type = type(item)
            elif type(item) is not element_type:
                raise ConstructionError("type mismatch in array")
            items.append(item)
        return items

    def _build_custom(self, tag: str, value: Any) -> Any:
        simple_name = tag.rsplit(".", 1)[-1]
        if not simple_name[:1].isupper():
            raise ConstructionError(f"custom type '{tag}' doesn't begin with an uppercase letter")

        record = self.registry.get(tag)
        for strategy in self.strategies:
            if strategy.accepts(value):
                return strategy.construct(record, value, self)
        raise ConstructionError(f"type '{tag}' expects value of type 'map' or 'JSON string'")
