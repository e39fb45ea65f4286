from __future__ import annotations

import io
from enum import Enum
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from dbscenario.core.exceptions import DecodeError


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class TypedValue(_Frozen):
    """A value together with the tag that selects how it is constructed."""

    type: str = Field(min_length=1)
    value: Any = None


class Statement(_Frozen):
    # Opaque SQL, executed verbatim for its side effect.
    statement: str


class ActStep(_Frozen):
    method: str = Field(min_length=1)
    arguments: List[TypedValue] = Field(default_factory=list)


class ExpectedRow(_Frozen):
    columns: List[TypedValue] = Field(default_factory=list)


class AssertionKind(str, Enum):
    VALUE = "value"
    ERROR = "error"
    QUERY = "query"


class Assertion(_Frozen):
    """Exactly one of an expected return value, an expected error message, or a query."""

    value: Optional[TypedValue] = None
    error: Optional[str] = None
    query: Optional[str] = None
    rows: List[ExpectedRow] = Field(default_factory=list)

    @model_validator(mode="after")
    def _exactly_one_expectation(self) -> "Assertion":
        declared = [
            name
            for name, present in (
                ("value", self.value is not None),
                ("error", bool(self.error)),
                ("query", bool(self.query)),
            )
            if present
        ]
        if len(declared) != 1:
            raise ValueError(
                f"assertion must declare exactly one of 'value', 'error' or 'query' (got {declared or 'none'})"
            )
        if self.rows and not self.query:
            raise ValueError("'rows' is only allowed together with 'query'")
        return self

    @property
    def kind(self) -> AssertionKind:
        if self.error:
            return AssertionKind.ERROR
        if self.query:
            return AssertionKind.QUERY
        return AssertionKind.VALUE


class Scenario(_Frozen):
    name: str = Field(min_length=1)
    arrange: List[Statement] = Field(default_factory=list)
    act: ActStep
    assertions: List[Assertion] = Field(default_factory=list, alias="assert")


class ScenarioSet(_Frozen):
    """Top-level document: ``{tests: [...]}``."""

    name: str = "scenarios"
    tests: List[Scenario] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioSet":
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise DecodeError(f"invalid scenario document: {exc}") from exc

    def __len__(self) -> int:
        return len(self.tests)


def load_scenarios(source: Union[str, Path, IO[str]]) -> ScenarioSet:
    """
    Decode a YAML (or JSON) scenario document.

    Args:
        source: A path to a ``.yaml``/``.yml``/``.json`` file, a readable
                text stream, or the document text itself.

    Raises:
        DecodeError: If the document is not valid YAML or does not match the scenario model.
    """
    if isinstance(source, Path):
        text = source.read_text(encoding="utf-8")
    elif isinstance(source, str) and "\n" not in source and source.endswith((".yaml", ".yml", ".json")):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Scenario file not found: {source}")
        text = path.read_text(encoding="utf-8")
    elif isinstance(source, str):
        text = source
    else:
        text = source.read()

    try:
        data = yaml.safe_load(io.StringIO(text))
    except yaml.YAMLError as exc:
        raise DecodeError(f"malformed scenario document: {exc}") from exc
    if not isinstance(data, dict):
        raise DecodeError("scenario document must be a mapping with a 'tests' key")
    return ScenarioSet.from_dict(data)
