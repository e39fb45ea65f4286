from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, Optional

from dbscenario.core.exceptions import InvalidTypeError, RegistryFrozenError, UnknownTypeError
from dbscenario.core.logger import get_logger
from dbscenario.types.descriptors import (
    RecordDescriptor,
    RecordType,
    describe,
    record_descriptor,
    unwrap,
)

logger = get_logger(__name__)


class TypeRegistry:
    """Qualified type name -> record layout, for every custom type a scenario may construct.

    Built by the caller before a batch runs, then frozen; it is read-only
    while scenarios execute.

    Example:
        >>> registry = TypeRegistry()
        >>> registry.register(Customer)
        >>> registry.discover_from_service(CustomerService(conn))
        >>> registry.lookup("models.Customer")
    """

    def __init__(self) -> None:
        self._records: Dict[str, RecordDescriptor] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def register(self, *type_refs: Any) -> None:
        for ref in type_refs:
            target = unwrap(describe(ref))
            if not isinstance(target, RecordType):
                raise InvalidTypeError(f"{ref!r} is not a record type (dataclass or pydantic model)")
            self._register_record(target)

    def _register_record(self, record: RecordType) -> None:
        if record.name in self._records:
            return
        if self._frozen:
            raise RegistryFrozenError(f"cannot register '{record.name}': registry is frozen")
        try:
            descriptor = record_descriptor(record.cls)
        except (NameError, TypeError) as exc:
            raise InvalidTypeError(f"cannot resolve the fields of '{record.name}': {exc}") from exc

        # Store before walking fields so self-referencing records terminate.
        self._records[record.name] = descriptor
        logger.debug(f"Registered record type {record.name} with fields {list(descriptor.fields)}")

        for f in descriptor.fields.values():
            nested = unwrap(f.type)
            if isinstance(nested, RecordType):
                self._register_record(nested)

    def discover_from_service(self, service: Any) -> None:
        """Register every record type reachable from the public methods of ``service``."""
        # Imported here: the execution layer depends on this module.
        from dbscenario.execution.service import as_invocable

        invocable = as_invocable(service)
        found = 0
        for handle in invocable.methods():
            try:
                annotations = handle.annotations()
            except (NameError, TypeError) as exc:
                logger.warning(f"Skipping method '{handle.name}' during type discovery: {exc}")
                continue
            for annotation in annotations:
                target = unwrap(describe(annotation))
                if isinstance(target, RecordType):
                    before = len(self._records)
                    self._register_record(target)
                    found += len(self._records) - before
        logger.info(f"Discovered {found} record type(s) from {invocable!r}")

    def lookup(self, name: str) -> Optional[RecordDescriptor]:
        return self._records.get(name)

    def get(self, name: str) -> RecordDescriptor:
        descriptor = self._records.get(name)
        if descriptor is None:
            raise UnknownTypeError(name)
        return descriptor

    def names(self) -> Iterable[str]:
        return sorted(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())
