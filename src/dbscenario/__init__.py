"""dbscenario.

Declarative arrange/act/assert scenarios for database integration tests.

Scenarios prepare database state with SQL, invoke a method on the service
under test with typed arguments, then assert on the returned value, the
raised error, or the rows a query yields.

Public API for test suites that drive a service against a live database.
"""

from dbscenario.construction.builder import ValueBuilder
from dbscenario.core.context import Context
from dbscenario.core.exceptions import (
    ArityMismatchError,
    ArrangeFailure,
    AssertionFailure,
    ConstructionError,
    DBScenarioException,
    DecodeError,
    FailureKind,
    InvalidTypeError,
    MethodNotFoundError,
    QueryFailure,
    UnknownTypeError,
)
from dbscenario.execution.database import SQLAlchemyDatabase
from dbscenario.execution.service import DispatchService
from dbscenario.models.run_config import RunConfig
from dbscenario.models.scenario import ScenarioSet, TypedValue, load_scenarios
from dbscenario.orchestrator import ScenarioOrchestrator, SuiteResult, run_suite
from dbscenario.types.registry import TypeRegistry

__version__ = "0.1.0"

__all__ = [
    "ArityMismatchError",
    "ArrangeFailure",
    "AssertionFailure",
    "ConstructionError",
    "Context",
    "DBScenarioException",
    "DecodeError",
    "DispatchService",
    "FailureKind",
    "InvalidTypeError",
    "MethodNotFoundError",
    "QueryFailure",
    "RunConfig",
    "SQLAlchemyDatabase",
    "ScenarioOrchestrator",
    "ScenarioSet",
    "SuiteResult",
    "TypeRegistry",
    "TypedValue",
    "UnknownTypeError",
    "ValueBuilder",
    "load_scenarios",
    "run_suite",
]
