from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class RunConfig(BaseModel):
    """Settings for running a scenario batch.

    The connection itself is owned by the caller unless ``database_url`` is
    used through ``run_suite``, which opens and disposes a SQLAlchemy engine.
    """

    database_url: Optional[str] = None
    log_level: LogLevel = "INFO"
    echo_sql: bool = False              # Pass-through to create_engine(echo=...)
    discover_types: bool = True         # Register record types reachable from the service

    run_id: Optional[str] = Field(default=None, description="Correlates logs and events for one batch")

    @classmethod
    def from_env(cls, **overrides) -> "RunConfig":
        """Read DBSCENARIO_* environment variables; keyword overrides take precedence."""
        values = {
            "database_url": os.getenv("DBSCENARIO_DATABASE_URL") or None,
            "log_level": (os.getenv("DBSCENARIO_LOG_LEVEL") or "INFO").upper(),
            "echo_sql": _env_bool("DBSCENARIO_ECHO_SQL", False),
            "discover_types": _env_bool("DBSCENARIO_DISCOVER_TYPES", True),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
