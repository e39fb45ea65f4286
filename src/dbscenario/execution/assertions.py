from __future__ import annotations

from typing import Any, Sequence, Tuple

from dbscenario.construction.builder import ValueBuilder
from dbscenario.core.exceptions import AssertionFailure, FailureKind, QueryFailure
from dbscenario.core.logger import get_logger
from dbscenario.execution.compare import NotConvertible, coerce_to_expected, deep_equal
from dbscenario.execution.database import Database, DatabaseError
from dbscenario.execution.service import ActOutcome
from dbscenario.models.scenario import Assertion, AssertionKind, ExpectedRow

logger = get_logger(__name__)


class AssertionEvaluator:
    """Checks one scenario's assertions against its single captured act outcome."""

    def __init__(self, scenario: str, method: str, builder: ValueBuilder, database: Database):
        self.scenario = scenario
        self.method = method
        self.builder = builder
        self.database = database

    def _fail(self, message: str, kind: FailureKind, expected: Any = None, actual: Any = None) -> AssertionFailure:
        return AssertionFailure(self.scenario, message, kind=kind, expected=expected, actual=actual)

    def evaluate(self, assertion: Assertion, outcome: ActOutcome) -> None:
        kind = assertion.kind
        # An error nobody asked for wins over whatever this assertion checks.
        if outcome.failed and kind is not AssertionKind.ERROR:
            raise self._fail(f"unexpected error: {outcome.error}", FailureKind.UNEXPECTED_ERROR, actual=outcome.error)

        if kind is AssertionKind.ERROR:
            self._check_error(assertion.error, outcome)
        elif kind is AssertionKind.QUERY:
            self._check_query(assertion.query, assertion.rows)
        else:
            self._check_value(assertion, outcome)

    def _check_error(self, expected: str, outcome: ActOutcome) -> None:
        if outcome.error is None:
            raise self._fail("expected error", FailureKind.EXPECTED_ERROR_MISSING, expected=expected)
        actual = str(outcome.error)
        if actual != expected:
            raise self._fail(
                f"different error: '{expected}' /= '{actual}'",
                FailureKind.ERROR_MESSAGE_MISMATCH,
                expected=expected,
                actual=actual,
            )

    def _check_query(self, query: str, expected_rows: Sequence[ExpectedRow]) -> None:
        count = 0
        try:
            with self.database.query(query) as result:
                for row in result:
                    logger.debug(f"Row {count}: {row}")
                    if count < len(expected_rows):
                        self._compare_row(expected_rows[count], result.columns, row)
                    count += 1
        except DatabaseError as exc:
            raise QueryFailure(self.scenario, query, str(exc)) from exc

        if count > len(expected_rows):
            raise self._fail("more rows expected", FailureKind.ROW_COUNT_MISMATCH, expected=len(expected_rows), actual=count)
        if count < len(expected_rows):
            raise self._fail("less rows expected", FailureKind.ROW_COUNT_MISMATCH, expected=len(expected_rows), actual=count)

    def _compare_row(self, expected_row: ExpectedRow, columns: Sequence[str], row: Tuple[Any, ...]) -> None:
        if len(expected_row.columns) != len(columns):
            raise self._fail(
                "invalid number of columns",
                FailureKind.COLUMN_COUNT_MISMATCH,
                expected=len(expected_row.columns),
                actual=len(columns),
            )
        for column, name, raw in zip(expected_row.columns, columns, row):
            expected = self.builder.build(column)
            try:
                actual = coerce_to_expected(expected, raw)
            except NotConvertible:
                raise self._fail(
                    f"incompatible types of field '{name}'",
                    FailureKind.COLUMN_TYPE_INCOMPATIBLE,
                    expected=expected,
                    actual=raw,
                )
            if not deep_equal(expected, actual):
                raise self._fail(
                    f"values of field '{name}' not equal: '{expected}' /= '{actual}'",
                    FailureKind.VALUE_MISMATCH,
                    expected=expected,
                    actual=actual,
                )

    def _check_value(self, assertion: Assertion, outcome: ActOutcome) -> None:
        if outcome.result_count != 2:
            raise self._fail(
                f"invalid number of return values of method '{self.method}'",
                FailureKind.RESULT_COUNT_MISMATCH,
                expected=2,
                actual=outcome.result_count,
            )
        expected = self.builder.build(assertion.value)
        if not deep_equal(expected, outcome.value):
            raise self._fail(
                f"return values not equal: '{expected}' /= '{outcome.value}'",
                FailureKind.VALUE_MISMATCH,
                expected=expected,
                actual=outcome.value,
            )
