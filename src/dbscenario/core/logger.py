import logging
import sys
import contextvars
from typing import Optional

# Context variable to carry the name of the scenario currently executing
_SCENARIO: contextvars.ContextVar[str] = contextvars.ContextVar("scenario", default="-")


class _ScenarioFilter(logging.Filter):
    """Logging filter that injects the current scenario name from contextvars into the record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.scenario = _SCENARIO.get()
        return True


def _build_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | scenario=%(scenario)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def configure_root_logger(level: str = "INFO") -> None:
    """
    Configure root logger and dbscenario-specific logger.

    Root logger stays at INFO to suppress library noise (sqlalchemy, drivers).
    Only dbscenario namespace logs are set to the requested level.

    Args:
        level: Log level for dbscenario logs (DEBUG, INFO, WARNING, ERROR).

    Safe to call multiple times; it will not duplicate handlers (idempotent).
    """
    root = logging.getLogger()
    package_logger = logging.getLogger("dbscenario")

    for h in root.handlers:
        if isinstance(h, logging.StreamHandler) and any(isinstance(f, _ScenarioFilter) for f in h.filters):
            package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter())
    handler.addFilter(_ScenarioFilter())
    root.addHandler(handler)
    if root.level == logging.NOTSET or root.level > logging.INFO:
        root.setLevel(logging.INFO)

    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str = "dbscenario") -> logging.Logger:
    """
    Get a module-specific logger. Handlers live on the root logger; see configure_root_logger.
    """
    return logging.getLogger(name)


def push_scenario(name: Optional[str]) -> Optional[contextvars.Token]:
    """Set the current scenario name in context and return a token for later reset."""
    if not name:
        return None
    return _SCENARIO.set(name)


def reset_scenario(token: Optional[contextvars.Token]) -> None:
    """Reset the scenario context using the provided token (if any)."""
    if token is None:
        return
    _SCENARIO.reset(token)


def current_scenario() -> str:
    return _SCENARIO.get()
