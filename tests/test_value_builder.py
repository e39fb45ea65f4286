from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

import pytest
import yaml
from pydantic import BaseModel

from dbscenario.construction.builder import ValueBuilder
from dbscenario.core.context import Context
from dbscenario.core.exceptions import ConstructionError, UnknownTypeError
from dbscenario.models.scenario import TypedValue
from dbscenario.types.descriptors import qualified_name
from dbscenario.types.registry import TypeRegistry


@dataclass
class AnotherStruct:
    field1: str
    field2: int


@dataclass
class SomeStruct:
    field1: str
    field2: int
    field3: Optional[AnotherStruct]
    field4: List[int]
    field5: List[AnotherStruct]


@dataclass
class Account:
    owner_name: str
    balance: Decimal = Decimal("10")
    tags: List[str] = field(default_factory=lambda: ["new"])
    ratio: float = 0.0


class Status(Enum):
    OPEN = "open"
    CLOSED = "closed"


class Order(BaseModel):
    id: int
    created_at: datetime
    status: Status
    note: str = "none"


SOME = qualified_name(SomeStruct)
ANOTHER = qualified_name(AnotherStruct)
ACCOUNT = qualified_name(Account)
ORDER = qualified_name(Order)


def _builder() -> ValueBuilder:
    registry = TypeRegistry()
    registry.register(SomeStruct, Account, Order)
    return ValueBuilder(registry)


def _structured_some_struct() -> dict:
    return yaml.safe_load(
        f"""
type: {SOME}
value:
  field1:
    type: string
    value: AString
  field2:
    type: int
    value: 1234
  field3:
    type: {ANOTHER}
    value:
      field1:
        type: string
        value: abcd
      field2:
        type: int
        value: 5678
  field4:
    type: array
    value:
    - type: int
      value: 1
    - type: int
      value: 2
    - type: int
      value: 3
  field5:
    type: array
    value:
    - type: {ANOTHER}
      value:
        field1:
          type: string
          value: A
        field2:
          type: int
          value: 1
    - type: {ANOTHER}
      value:
        field1:
          type: string
          value: B
        field2:
          type: int
          value: 2
"""
    )


EXPECTED_SOME = SomeStruct(
    field1="AString",
    field2=1234,
    field3=AnotherStruct("abcd", 5678),
    field4=[1, 2, 3],
    field5=[AnotherStruct("A", 1), AnotherStruct("B", 2)],
)


def test_primitives_are_returned_as_is():
    builder = _builder()

    assert builder.build(TypedValue(type="string", value="x")) == "x"
    assert builder.build({"type": "int", "value": 42}) == 42
    assert builder.build({"type": "float", "value": 1.5}) == 1.5
    assert builder.build({"type": "bool", "value": True}) is True


def test_context_background_is_the_root_context():
    ctx = _builder().build({"type": "context", "value": "background"})

    assert ctx is Context.background()
    assert ctx.cancelled is False
    assert ctx.value("anything") is None


@pytest.mark.parametrize(
    "tag, value",
    [
        ("context", "todo"),
        ("context", 1),
        ("string", 5),
        ("int", "5"),
        ("int", True),
        ("int", 1.0),
        ("float", 1),
        ("bool", 1),
    ],
)
def test_primitives_reject_mis_typed_values(tag, value):
    with pytest.raises(ConstructionError, match=f"type '{tag}' expects value"):
        _builder().build({"type": tag, "value": value})


def test_map_form_requires_type_and_value_keys():
    builder = _builder()

    with pytest.raises(ConstructionError, match="expected 'type' in map"):
        builder.build({"value": 1})
    with pytest.raises(ConstructionError, match="must be a string"):
        builder.build({"type": 3, "value": 1})
    with pytest.raises(ConstructionError, match="expected 'value' in map"):
        builder.build({"type": "int"})
    with pytest.raises(ConstructionError, match="mustn't be empty"):
        builder.build({"type": "", "value": 1})


def test_array_preserves_order():
    result = _builder().build(
        {"type": "array", "value": [{"type": "string", "value": s} for s in ("c", "a", "b")]}
    )

    assert result == ["c", "a", "b"]


@pytest.mark.parametrize("value", [[], None, "1,2", [1, 2]])
def test_array_rejects_empty_or_untagged_input(value):
    with pytest.raises(ConstructionError, match="array of maps"):
        _builder().build({"type": "array", "value": value})


def test_array_rejects_heterogeneous_elements():
    with pytest.raises(ConstructionError, match="type mismatch in array"):
        _builder().build(
            {"type": "array", "value": [{"type": "int", "value": 1}, {"type": "string", "value": "2"}]}
        )


def test_structured_form_builds_nested_records():
    assert _builder().build(_structured_some_struct()) == EXPECTED_SOME


def test_json_form_matches_structured_form():
    builder = _builder()
    document = (
        '{"field1": "AString", "field2": 1234, "field3": {"field1": "abcd", "field2": 5678}, '
        '"field4": [1, 2, 3], "field5": [{"field1": "A", "field2": 1}, {"field1": "B", "field2": 2}]}'
    )

    from_json = builder.build({"type": SOME, "value": document})
    from_structure = builder.build(_structured_some_struct())

    assert from_json == from_structure == EXPECTED_SOME
    assert isinstance(from_json.field5[0], AnotherStruct)


def test_sparse_structured_form_leaves_zero_values():
    result = _builder().build({"type": SOME, "value": {"field2": {"type": "int", "value": 7}}})

    assert result == SomeStruct(field1="", field2=7, field3=None, field4=[], field5=[])


def test_omitted_fields_use_declared_defaults():
    result = _builder().build(
        {"type": ACCOUNT, "value": {"ownerName": {"type": "string", "value": "ada"}}}
    )

    assert result == Account(owner_name="ada", balance=Decimal("10"), tags=["new"], ratio=0.0)


def test_field_names_match_case_and_camel_case_keys():
    builder = _builder()

    by_capital = builder.build({"type": SOME, "value": {"Field1": {"type": "string", "value": "x"}}})
    by_camel = builder.build({"type": ACCOUNT, "value": '{"ownerName": "bob"}'})

    assert by_capital.field1 == "x"
    assert by_camel.owner_name == "bob"


def test_field_type_mismatch_is_never_coerced():
    with pytest.raises(ConstructionError, match="field 'field2' can't be assigned the provided value, type mismatch"):
        _builder().build({"type": SOME, "value": {"field2": {"type": "string", "value": "x"}}})


def test_int_is_widened_into_float_field():
    result = _builder().build({"type": ACCOUNT, "value": {"ratio": {"type": "int", "value": 2}}})

    assert result.ratio == 2.0
    assert isinstance(result.ratio, float)


def test_unknown_field_fails():
    with pytest.raises(ConstructionError, match="field 'nope' not found"):
        _builder().build({"type": SOME, "value": {"nope": {"type": "int", "value": 1}}})


def test_structured_entries_must_be_tagged_maps():
    with pytest.raises(ConstructionError, match="must be a map"):
        _builder().build({"type": SOME, "value": {"field2": 5}})


def test_unknown_custom_type():
    with pytest.raises(UnknownTypeError, match="unknown custom type 'pkg.Missing'"):
        _builder().build({"type": "pkg.Missing", "value": {}})


def test_custom_type_must_start_uppercase():
    with pytest.raises(ConstructionError, match="doesn't begin with an uppercase letter"):
        _builder().build({"type": "pkg.missing", "value": {}})


def test_custom_type_value_must_be_map_or_json_string():
    with pytest.raises(ConstructionError, match="'map' or 'JSON string'"):
        _builder().build({"type": SOME, "value": 12})


def test_json_form_errors():
    builder = _builder()

    with pytest.raises(ConstructionError, match="failed to unmarshal JSON"):
        builder.build({"type": SOME, "value": "{not json"})
    with pytest.raises(ConstructionError, match="must be an object"):
        builder.build({"type": SOME, "value": "[1, 2]"})
    with pytest.raises(ConstructionError, match="field2"):
        builder.build({"type": SOME, "value": '{"field2": "x"}'})
    with pytest.raises(ConstructionError, match="does not accept null"):
        builder.build({"type": SOME, "value": '{"field2": null}'})


def test_json_form_accepts_null_for_optional_fields():
    result = _builder().build({"type": SOME, "value": '{"field3": null, "field1": "z"}'})

    assert result.field3 is None
    assert result.field1 == "z"


def test_sparse_pydantic_record_without_zero_values():
    builder = _builder()

    structured = builder.build({"type": ORDER, "value": {"id": {"type": "int", "value": 1}}})
    from_json = builder.build({"type": ORDER, "value": '{"id": 1}'})

    for order in (structured, from_json):
        assert isinstance(order, Order)
        assert order.id == 1
        assert order.created_at is None
        assert order.status is None
        assert order.note == "none"
