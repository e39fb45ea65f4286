from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from dbscenario.construction.builder import ValueBuilder
from dbscenario.core.events import build_default_bus, set_global_bus, timed_stage
from dbscenario.core.exceptions import ArityMismatchError, ArrangeFailure, MethodNotFoundError
from dbscenario.core.logger import configure_root_logger, get_logger, push_scenario, reset_scenario
from dbscenario.execution.assertions import AssertionEvaluator
from dbscenario.execution.database import Database, DatabaseError, SQLAlchemyDatabase, create_database_engine
from dbscenario.execution.service import ActOutcome, InvocableService, as_invocable
from dbscenario.models.run_config import RunConfig
from dbscenario.models.scenario import Scenario, ScenarioSet
from dbscenario.types.registry import TypeRegistry

logger = get_logger(__name__)


@dataclass
class SuiteResult:
    run_id: str
    suite_name: str
    passed: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.passed)


class ScenarioOrchestrator:
    """
    Runs scenarios against a database and a service under test.

    The database handle is shared by every scenario of a batch and used
    strictly sequentially. The registry is frozen before the first
    scenario runs.

    Example:
        >>> registry = TypeRegistry()
        >>> registry.discover_from_service(service)
        >>> orchestrator = ScenarioOrchestrator(SQLAlchemyDatabase(conn), service, registry)
        >>> orchestrator.run(load_scenarios("customers.yaml"))
    """

    def __init__(
        self,
        database: Database,
        service: Any,
        registry: Optional[TypeRegistry] = None,
        *,
        run_id: Optional[str] = None,
    ):
        self.database = database
        self.service: InvocableService = as_invocable(service)
        if registry is None:
            registry = TypeRegistry()
            registry.discover_from_service(self.service)
        self.registry = registry
        self.builder = ValueBuilder(registry)
        self.run_id = run_id or str(uuid.uuid4())

    def run(self, suite: Union[ScenarioSet, Dict[str, Any]]) -> SuiteResult:
        """
        Execute every scenario in order, stopping at the first failure.

        Raises:
            The first scenario's error (AssertionFailure, ConstructionError,
            ArrangeFailure, QueryFailure, MethodNotFoundError, ArityMismatchError).
        """
        if isinstance(suite, dict):
            suite = ScenarioSet.from_dict(suite)

        self.registry.freeze()
        result = SuiteResult(run_id=self.run_id, suite_name=suite.name)

        bus = build_default_bus(run_id=self.run_id, suite_name=suite.name)
        if bus is not None:
            set_global_bus(bus)
        try:
            with timed_stage("suite", details={"suite": suite.name, "scenarios": len(suite)}):
                logger.info(f"Running {len(suite)} scenario(s) from '{suite.name}'")
                for scenario in suite.tests:
                    self.run_scenario(scenario)
                    result.passed.append(scenario.name)
            logger.info(f"All {result.count} scenario(s) passed")
            return result
        finally:
            if bus is not None:
                bus.shutdown()
                set_global_bus(None)

    def run_scenario(self, scenario: Scenario) -> None:
        token = push_scenario(scenario.name)
        try:
            with timed_stage("scenario", details={"scenario": scenario.name}):
                logger.info("Scenario started")
                self._arrange(scenario)
                outcome = self._act(scenario)
                self._assert(scenario, outcome)
                logger.info("Scenario passed")
        except Exception as exc:
            logger.error(f"Scenario failed: {exc}")
            raise
        finally:
            reset_scenario(token)

    def _arrange(self, scenario: Scenario) -> None:
        with timed_stage("scenario.arrange", counts={"statements": len(scenario.arrange)}):
            for arrange in scenario.arrange:
                try:
                    self.database.execute(arrange.statement)
                except DatabaseError as exc:
                    raise ArrangeFailure(scenario.name, arrange.statement, str(exc)) from exc

    def _act(self, scenario: Scenario) -> ActOutcome:
        act = scenario.act
        with timed_stage("scenario.act", details={"method": act.method}):
            handle = self.service.resolve(act.method)
            if handle is None:
                raise MethodNotFoundError(scenario.name, act.method)
            if handle.parameter_count != len(act.arguments):
                raise ArityMismatchError(scenario.name, act.method, handle.parameter_count, len(act.arguments))

            args = [self.builder.build(argument) for argument in act.arguments]
            logger.debug(f"Invoking {act.method} with {args!r}")
            outcome = handle.invoke(args)
            if outcome.failed:
                logger.debug(f"{act.method} raised {type(outcome.error).__name__}: {outcome.error}")
            return outcome

    def _assert(self, scenario: Scenario, outcome: ActOutcome) -> None:
        evaluator = AssertionEvaluator(scenario.name, scenario.act.method, self.builder, self.database)
        with timed_stage("scenario.assert", counts={"assertions": len(scenario.assertions)}):
            for assertion in scenario.assertions:
                evaluator.evaluate(assertion, outcome)


def run_suite(
    suite: Union[ScenarioSet, Dict[str, Any]],
    service: Any,
    *,
    database_url: Optional[str] = None,
    registry: Optional[TypeRegistry] = None,
    config: Optional[RunConfig] = None,
) -> SuiteResult:
    """
    Open a connection, run a batch of scenarios, and close the connection again.

    Args:
        suite: Decoded scenarios (ScenarioSet or its dict form).
        service: Object under test.
        database_url: SQLAlchemy URL; falls back to ``config.database_url``.
        registry: Pre-built registry. When omitted, a new one is built and,
                  if ``config.discover_types`` is set, populated from ``service``.
        config: Run settings; defaults to ``RunConfig.from_env()``.
    """
    config = config or RunConfig.from_env()
    configure_root_logger(config.log_level)

    url = database_url or config.database_url
    if not url:
        raise ValueError("database_url must be provided (argument, RunConfig or DBSCENARIO_DATABASE_URL)")

    if registry is None:
        registry = TypeRegistry()
        if config.discover_types:
            registry.discover_from_service(service)

    engine = create_database_engine(url, echo=config.echo_sql)
    try:
        with engine.connect() as connection:
            orchestrator = ScenarioOrchestrator(
                SQLAlchemyDatabase(connection), service, registry, run_id=config.run_id
            )
            return orchestrator.run(suite)
    finally:
        engine.dispose()
