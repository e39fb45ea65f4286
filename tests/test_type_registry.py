from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import pytest
from pydantic import BaseModel

from dbscenario.core.context import Context
from dbscenario.core.exceptions import InvalidTypeError, RegistryFrozenError, UnknownTypeError
from dbscenario.execution.service import DispatchService
from dbscenario.types.descriptors import (
    PrimitiveType,
    RecordType,
    ReferenceType,
    SequenceType,
    describe,
    qualified_name,
)
from dbscenario.types.registry import TypeRegistry


@dataclass
class Address:
    street: str
    number: int = 0


@dataclass
class Node:
    label: str
    next: Optional[Node] = None


@dataclass
class Customer:
    name: str
    addresses: List[Address] = field(default_factory=list)


class Invoice(BaseModel):
    number: int
    customer: Customer | None = None


@dataclass
class Filter:
    prefix: str


@dataclass
class Page:
    items: Sequence[Customer]


class CustomerService:
    def get(self, ctx: Context, customer_id: int) -> Optional[Customer]:
        return None

    def search(self, ctx: Context, flt: Filter) -> Page:
        return Page(items=[])

    def invoices(self, ctx: Context) -> list[Invoice]:
        return []

    def _hidden(self, ctx: Context, node: Node) -> None:
        return None


def test_qualified_name_uses_last_module_component():
    assert qualified_name(Address) == "test_type_registry.Address"


def test_describe_variants():
    assert describe(int) == PrimitiveType(int)
    assert describe(Optional[int]) == ReferenceType(PrimitiveType(int))
    assert describe(int | None) == ReferenceType(PrimitiveType(int))
    assert describe(List[Address]) == SequenceType(RecordType(qualified_name(Address), Address))
    assert describe(tuple[int, ...]) == SequenceType(PrimitiveType(int), tuple)
    assert describe(Invoice) == RecordType(qualified_name(Invoice), Invoice)


def test_register_walks_nested_fields():
    registry = TypeRegistry()
    registry.register(Customer)

    assert qualified_name(Customer) in registry
    assert qualified_name(Address) in registry
    assert len(registry) == 2


def test_register_pydantic_model_and_reference():
    registry = TypeRegistry()
    registry.register(Optional[Invoice])

    invoice = registry.get(qualified_name(Invoice))
    assert set(invoice.fields) == {"number", "customer"}
    assert qualified_name(Customer) in registry
    assert qualified_name(Address) in registry


def test_self_referencing_record_terminates():
    registry = TypeRegistry()
    registry.register(Node)

    node = registry.get(qualified_name(Node))
    assert node.fields["next"].type == ReferenceType(RecordType(qualified_name(Node), Node))
    assert list(registry.names()) == [qualified_name(Node)]


def test_register_twice_is_a_no_op():
    registry = TypeRegistry()
    registry.register(Address)
    first = registry.get(qualified_name(Address))
    registry.register(Address)

    assert registry.get(qualified_name(Address)) is first


@pytest.mark.parametrize("ref", [int, str, List[int], Context, "Address", None])
def test_register_rejects_non_records(ref):
    with pytest.raises(InvalidTypeError, match="not a record type"):
        TypeRegistry().register(ref)


def test_lookup_missing_is_none_and_get_raises():
    registry = TypeRegistry()

    assert registry.lookup("pkg.Nope") is None
    with pytest.raises(UnknownTypeError):
        registry.get("pkg.Nope")


def test_discover_from_service_instance():
    registry = TypeRegistry()
    registry.discover_from_service(CustomerService())

    assert set(registry.names()) == {
        qualified_name(Address),
        qualified_name(Customer),
        qualified_name(Filter),
        qualified_name(Invoice),
        qualified_name(Page),
    }
    # private methods are not part of the service surface
    assert qualified_name(Node) not in registry


def test_discover_from_service_class_and_dispatch_table():
    registry = TypeRegistry()
    registry.discover_from_service(CustomerService)
    assert qualified_name(Page) in registry

    table = DispatchService("nodes")

    @table.method()
    def walk(ctx: Context, start: Node) -> int:
        return 0

    registry.discover_from_service(table)
    assert qualified_name(Node) in registry


@pytest.mark.parametrize("service", [None, 5, "svc", len, pytest])
def test_discover_rejects_non_structures(service):
    with pytest.raises(InvalidTypeError, match="not a structure"):
        TypeRegistry().discover_from_service(service)


def test_frozen_registry_rejects_new_types():
    registry = TypeRegistry()
    registry.register(Address)
    registry.freeze()

    registry.register(Address)
    with pytest.raises(RegistryFrozenError):
        registry.register(Filter)
