from __future__ import annotations

import json
import os
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

DEFAULT_SCHEMA_VERSION = "1.0"

# Optional global bus for framework-wide access without changing signatures
_GLOBAL_BUS: Optional["EventBus"] = None


def set_global_bus(bus: Optional["EventBus"]) -> None:
    global _GLOBAL_BUS
    _GLOBAL_BUS = bus


def get_global_bus() -> Optional["EventBus"]:
    return _GLOBAL_BUS


def publish_event(
    *,
    stage: str,
    status: str,
    duration_ms: Optional[int] = None,
    counts: Optional[Dict[str, Any]] = None,
    details: Optional[Dict[str, Any]] = None,
    error: Optional[Dict[str, Any]] = None,
) -> None:
    """Module-level helper to publish events to the global bus (if configured).

    Handles None checks and exceptions internally; safe to call always.
    """
    bus = _GLOBAL_BUS
    if bus is None:
        return
    try:
        bus.publish(
            stage=stage,
            status=status,
            duration_ms=duration_ms,
            counts=counts,
            details=details,
            error=error,
        )
    except Exception:
        # Swallow observer/bus errors; don't impact the scenario outcome
        pass


class timed_stage:
    """Context manager to track duration of a stage and publish start/complete/fail events.

    Usage:
        with timed_stage("scenario.arrange", details={"scenario": "insert customer"}):
            run_arrange(...)
    """

    def __init__(
        self,
        stage: str,
        *,
        counts: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.stage = stage
        self.counts = counts
        self.details = details
        self._start_ms: Optional[int] = None

    def __enter__(self) -> "timed_stage":
        self._start_ms = int(time.time() * 1000)
        publish_event(stage=self.stage, status="started", details=self.details)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # type: ignore
        duration_ms = int(time.time() * 1000) - (self._start_ms or 0)
        if exc_type is not None:
            publish_event(
                stage=self.stage,
                status="failed",
                duration_ms=duration_ms,
                counts=self.counts,
                details=self.details,
                error={"code": exc_type.__name__, "message": str(exc_val)},
            )
        else:
            publish_event(
                stage=self.stage,
                status="completed",
                duration_ms=duration_ms,
                counts=self.counts,
                details=self.details,
            )
        return False


@dataclass
class FunctionalEvent:
    """Structured functional event for suite/scenario lifecycle.

    Decoupled from debug logging; designed for stdout progress and durable JSONL.
    """

    schema_version: str = DEFAULT_SCHEMA_VERSION
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    seq_no: int = 0
    ts: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    run_id: str = "-"
    suite_name: str = "-"

    stage: str = "-"  # e.g., suite, scenario, scenario.arrange, scenario.assert
    status: str = "-"  # started|completed|failed

    duration_ms: Optional[int] = None
    counts: Optional[Dict[str, Any]] = None
    details: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None


class EventObserver:
    """Observer interface for handling functional events."""

    def handle(self, event: FunctionalEvent) -> None:  # pragma: no cover
        raise NotImplementedError

    def flush(self) -> None:
        return None


class StdoutObserver(EventObserver):
    """Emit concise human-readable progress to stdout (not via debug logger)."""

    def handle(self, event: FunctionalEvent) -> None:
        details = event.details or {}
        duration = f" duration_ms={event.duration_ms}" if event.duration_ms is not None else ""
        msg = f"{event.ts} | run={event.run_id} | suite={event.suite_name} | {event.stage} {event.status}{duration}"
        if event.counts:
            msg += f" | counts={event.counts}"
        if details:
            brief = {k: details[k] for k in list(details.keys())[:4]}
            msg += f" | details={brief}"
        if event.error:
            brief_err = {k: event.error.get(k) for k in ("code", "message") if k in event.error}
            msg += f" | error={brief_err}"
        print(msg)


class MemoryObserver(EventObserver):
    """Keeps every event in memory; handy for tests and for post-run reporting."""

    def __init__(self) -> None:
        self.events: List[FunctionalEvent] = []

    def handle(self, event: FunctionalEvent) -> None:
        self.events.append(event)

    def stages(self) -> List[tuple]:
        return [(e.stage, e.status) for e in self.events]


class JSONLFileObserver(EventObserver):
    """Buffered JSONL writer.

    Layout: <base_path>/<suite_name>/<YYYY-MM-DD>/<run_id>.jsonl, one JSON object per line.
    """

    def __init__(self, base_path: str, suite_name: str, run_id: str, *, batch_size: int = 200) -> None:
        self.batch_size = max(1, batch_size)
        self._buf: List[str] = []
        date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        self.dir_path = os.path.join(base_path, suite_name, date_str)
        self.file_path = os.path.join(self.dir_path, f"{run_id}.jsonl")
        os.makedirs(self.dir_path, exist_ok=True)

    def handle(self, event: FunctionalEvent) -> None:
        self._buf.append(json.dumps(asdict(event), ensure_ascii=False, default=str))
        if len(self._buf) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        if not self._buf:
            return
        with open(self.file_path, "a", encoding="utf-8") as f:
            f.write("\n".join(self._buf) + "\n")
        self._buf.clear()


class EventBus:
    """Synchronous event bus; observers run on the publishing thread.

    Automatically tracks duration for paired started/completed events.
    """

    def __init__(
        self,
        *,
        run_id: str,
        suite_name: str,
        observers: Optional[List[EventObserver]] = None,
    ) -> None:
        self.run_id = str(run_id)
        self.suite_name = suite_name
        self._observers: List[EventObserver] = observers or []
        self._seq_no = 0
        self._stage_start_times: Dict[str, int] = {}

    @property
    def observers(self) -> List[EventObserver]:
        return list(self._observers)

    def publish(
        self,
        *,
        stage: str,
        status: str,
        duration_ms: Optional[int] = None,
        counts: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
        error: Optional[Dict[str, Any]] = None,
    ) -> FunctionalEvent:
        now_ms = int(time.time() * 1000)
        if status == "started":
            self._stage_start_times[stage] = now_ms
        elif status in ("completed", "failed") and duration_ms is None:
            start_ms = self._stage_start_times.pop(stage, None)
            if start_ms is not None:
                duration_ms = now_ms - start_ms

        self._seq_no += 1
        evt = FunctionalEvent(
            seq_no=self._seq_no,
            run_id=self.run_id,
            suite_name=self.suite_name,
            stage=stage,
            status=status,
            duration_ms=duration_ms,
            counts=counts,
            details=details,
            error=error,
        )
        for obs in self._observers:
            obs.handle(evt)
        return evt

    def shutdown(self) -> None:
        # Final flush on all observers
        for obs in self._observers:
            try:
                obs.flush()
            except Exception:
                pass


def _env_flag(name: str, default: str) -> str:
    val = os.getenv(name)
    return val if val not in (None, "") else default


def build_default_bus(*, run_id: str, suite_name: str) -> Optional[EventBus]:
    """Construct a default EventBus using environment variables for simple enablement.

    DBSCENARIO_EVENTS_ENABLED: "true" | "false" (default: "false")
    DBSCENARIO_EVENTS_TRANSPORTS: comma list of "stdout", "jsonl" (default: "stdout")
    DBSCENARIO_EVENTS_PATH: base path for JSONL files (default: "./scenario_events")
    DBSCENARIO_EVENTS_BUFFER_SIZE: int (default: 200)
    """
    enabled = _env_flag("DBSCENARIO_EVENTS_ENABLED", "false").lower() == "true"
    if not enabled:
        return None

    transports = [s.strip() for s in _env_flag("DBSCENARIO_EVENTS_TRANSPORTS", "stdout").split(",") if s.strip()]
    try:
        buffer_size = int(_env_flag("DBSCENARIO_EVENTS_BUFFER_SIZE", "200"))
    except ValueError:
        buffer_size = 200

    observers: List[EventObserver] = []
    if "stdout" in transports:
        observers.append(StdoutObserver())
    if "jsonl" in transports:
        observers.append(
            JSONLFileObserver(
                base_path=_env_flag("DBSCENARIO_EVENTS_PATH", "./scenario_events"),
                suite_name=suite_name,
                run_id=run_id,
                batch_size=buffer_size,
            )
        )

    return EventBus(run_id=run_id, suite_name=suite_name, observers=observers)
