"""
Custom exception classes for the dbscenario framework.

Provides structured error handling with domain-specific exceptions
for each stage of a scenario: decoding, type registration, value
construction, arrange, act and assert.
"""

from enum import Enum
from typing import Any, Dict, Optional


class DBScenarioException(Exception):
    """Base exception class for all dbscenario exceptions."""

    pass


class DecodeError(DBScenarioException):
    """Raised when a scenario document cannot be parsed or validated."""

    pass


class InvalidTypeError(DBScenarioException):
    """Raised when a registration target is not a record type (or a service class)."""

    pass


class RegistryFrozenError(DBScenarioException):
    """Raised when a type is registered after the registry was frozen for execution."""

    pass


class ConstructionError(DBScenarioException):
    """Raised when a tagged value does not match its declared type."""

    pass


class UnknownTypeError(ConstructionError):
    """Raised when a tag references a custom type that was never registered."""

    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"unknown custom type '{type_name}'")


class ScenarioError(DBScenarioException):
    """
    Base class for failures that belong to a named scenario.

    ``str()`` renders as ``"<scenario>: <message>"``.
    """

    def __init__(self, scenario: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.scenario = scenario
        self.message = message
        self.details = details or {}
        super().__init__(f"{scenario}: {message}")

    def data(self, key: str) -> Any:
        """Return a diagnostic value recorded with the failure, or None."""
        return self.details.get(key)


class MethodNotFoundError(ScenarioError):
    """Raised when the act method cannot be resolved on the service under test."""

    def __init__(self, scenario: str, method: str):
        self.method = method
        super().__init__(scenario, f"method '{method}' not found in service", {"method": method})


class ArityMismatchError(ScenarioError):
    """Raised when the number of act arguments differs from the method's parameters."""

    def __init__(self, scenario: str, method: str, expected: int, actual: int):
        self.method = method
        super().__init__(
            scenario,
            f"invalid number of arguments to method '{method}'",
            {"method": method, "expected": expected, "actual": actual},
        )


class ArrangeFailure(ScenarioError):
    """Raised when an arrange statement fails to execute."""

    def __init__(self, scenario: str, statement: str, reason: str):
        self.statement = statement
        super().__init__(scenario, f"arrange statement failed: {reason}", {"statement": statement})


class QueryFailure(ScenarioError):
    """Raised when an assertion query fails to execute or to stream its rows."""

    def __init__(self, scenario: str, query: str, reason: str):
        self.query = query
        super().__init__(scenario, f"assertion query failed: {reason}", {"query": query})


class FailureKind(Enum):
    """Subdivision of assertion failures."""

    UNEXPECTED_ERROR = "unexpected_error"
    EXPECTED_ERROR_MISSING = "expected_error_missing"
    ERROR_MESSAGE_MISMATCH = "error_message_mismatch"
    ROW_COUNT_MISMATCH = "row_count_mismatch"
    COLUMN_COUNT_MISMATCH = "column_count_mismatch"
    COLUMN_TYPE_INCOMPATIBLE = "column_type_incompatible"
    RESULT_COUNT_MISMATCH = "result_count_mismatch"
    VALUE_MISMATCH = "value_mismatch"


class AssertionFailure(ScenarioError):
    """
    Raised when a scenario's outcome does not match one of its assertions.

    Example:
        >>> raise AssertionFailure(
        ...     "Get customer",
        ...     "return values not equal: 'a' /= 'b'",
        ...     kind=FailureKind.VALUE_MISMATCH,
        ...     expected="a",
        ...     actual="b",
        ... )
    """

    def __init__(
        self,
        scenario: str,
        message: str,
        *,
        kind: FailureKind,
        expected: Any = None,
        actual: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.expected = expected
        self.actual = actual
        data = dict(details or {})
        data.setdefault("expected", expected)
        data.setdefault("actual", actual)
        super().__init__(scenario, message, data)
