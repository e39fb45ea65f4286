from __future__ import annotations

from typing import Any, Mapping, Optional


class Context:
    """Execution context handed to methods under test as their first argument.

    The root context is never cancelled and carries no deadline. Derived
    contexts only add values; propagating cancellation is up to the callee.
    """

    __slots__ = ("_values", "_parent")

    def __init__(self, values: Optional[Mapping[str, Any]] = None, parent: Optional["Context"] = None):
        self._values = dict(values or {})
        self._parent = parent

    @classmethod
    def background(cls) -> "Context":
        return BACKGROUND

    @property
    def cancelled(self) -> bool:
        return False

    @property
    def deadline(self) -> None:
        return None

    def value(self, key: str) -> Any:
        ctx: Optional[Context] = self
        while ctx is not None:
            if key in ctx._values:
                return ctx._values[key]
            ctx = ctx._parent
        return None

    def with_value(self, key: str, value: Any) -> "Context":
        return Context({key: value}, parent=self)

    def __repr__(self) -> str:
        if self is BACKGROUND:
            return "Context.background()"
        return f"Context(values={self._values!r})"


BACKGROUND = Context()
