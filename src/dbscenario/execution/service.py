"""
Invocable services: resolve a method by name and call it with positional arguments.

``ReflectiveService`` introspects an ordinary Python object.
``DispatchService`` is an explicit table populated with ``@service.method()``.
Both hand out ``MethodHandle``s, so the orchestrator never touches
``inspect`` itself.
"""

from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from dbscenario.core.exceptions import InvalidTypeError

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


@dataclass(frozen=True)
class ActOutcome:
    """What an act step produced. Captured once; assertions never re-invoke."""

    value: Any = None
    error: Optional[BaseException] = None
    result_count: int = 2

    @property
    def failed(self) -> bool:
        return self.error is not None


class MethodHandle:
    """A resolved method: its declared shape plus a way to call it.

    ``result_count`` follows the value-plus-error convention: a method
    annotated ``-> None`` declares only the error slot (1), anything else
    declares a value and the error slot (2). Raised exceptions are the error.
    """

    def __init__(self, name: str, func: Callable[..., Any], call: Callable[..., Any], *, has_receiver: bool):
        self.name = name
        self._func = func
        self._call = call
        self._has_receiver = has_receiver

    def _parameters(self) -> List[inspect.Parameter]:
        params = list(inspect.signature(self._func).parameters.values())
        if self._has_receiver:
            params = params[1:]
        return params

    @property
    def parameter_count(self) -> int:
        """Declared positional parameters, excluding the receiver."""
        return sum(1 for p in self._parameters() if p.kind in _POSITIONAL)

    @property
    def result_count(self) -> int:
        try:
            returns = typing.get_type_hints(self._func).get("return", inspect.Signature.empty)
        except (NameError, TypeError):
            returns = getattr(self._func, "__annotations__", {}).get("return", inspect.Signature.empty)
        if returns in (None, type(None), "None"):
            return 1
        return 2

    def annotations(self) -> List[Any]:
        """Resolved parameter and return annotations (receiver excluded)."""
        hints = typing.get_type_hints(self._func)
        out = [hints[p.name] for p in self._parameters() if p.name in hints]
        returns = hints.get("return")
        if returns is not None and returns is not type(None):
            out.append(returns)
        return out

    def invoke(self, args: Sequence[Any]) -> ActOutcome:
        try:
            value = self._call(*args)
        except Exception as exc:
            return ActOutcome(value=None, error=exc, result_count=self.result_count)
        return ActOutcome(value=value, error=None, result_count=self.result_count)

    def __repr__(self) -> str:
        return f"MethodHandle({self.name!r}, parameters={self.parameter_count}, results={self.result_count})"


class InvocableService:
    """Capability interface for the service under test."""

    def resolve(self, method_name: str) -> Optional[MethodHandle]:  # pragma: no cover
        raise NotImplementedError

    def methods(self) -> Iterator[MethodHandle]:  # pragma: no cover
        raise NotImplementedError


class ReflectiveService(InvocableService):
    """Resolves public methods of an object (or, for discovery only, a class)."""

    def __init__(self, target: Any):
        cls = target if inspect.isclass(target) else type(target)
        if target is None or cls.__module__ == "builtins":
            raise InvalidTypeError("service object not a structure")
        self.target = target
        self.cls = cls

    def _handle(self, name: str) -> Optional[MethodHandle]:
        if name.startswith("_"):
            return None
        try:
            raw = inspect.getattr_static(self.cls, name)
        except AttributeError:
            return None
        if isinstance(raw, staticmethod):
            return MethodHandle(name, raw.__func__, getattr(self.target, name), has_receiver=False)
        if isinstance(raw, classmethod):
            return MethodHandle(name, raw.__func__, getattr(self.target, name), has_receiver=True)
        if inspect.isfunction(raw):
            return MethodHandle(name, raw, getattr(self.target, name), has_receiver=True)
        return None

    def resolve(self, method_name: str) -> Optional[MethodHandle]:
        return self._handle(method_name)

    def methods(self) -> Iterator[MethodHandle]:
        for name in dir(self.cls):
            handle = self._handle(name)
            if handle is not None:
                yield handle

    def __repr__(self) -> str:
        return f"ReflectiveService({self.cls.__name__})"


class DispatchService(InvocableService):
    """
    An explicitly registered method table.

    Example:
        >>> service = DispatchService("customers")
        >>> @service.method()
        ... def get(ctx: Context, customer_id: int) -> str:
        ...     ...
    """

    def __init__(self, name: str = "service"):
        self.name = name
        self._methods: Dict[str, Callable[..., Any]] = {}

    def register(self, name: str, func: Callable[..., Any], *, overwrite: bool = False) -> None:
        if not overwrite and name in self._methods:
            raise ValueError(f"Method already registered: {name!r}")
        self._methods[name] = func

    def method(self, name: Optional[str] = None, *, overwrite: bool = False) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or func.__name__, func, overwrite=overwrite)
            return func

        return decorator

    def resolve(self, method_name: str) -> Optional[MethodHandle]:
        func = self._methods.get(method_name)
        if func is None:
            return None
        return MethodHandle(method_name, func, func, has_receiver=False)

    def methods(self) -> Iterator[MethodHandle]:
        for name in sorted(self._methods):
            yield self.resolve(name)

    def __repr__(self) -> str:
        return f"DispatchService({self.name!r})"


def as_invocable(service: Any) -> InvocableService:
    if isinstance(service, InvocableService):
        return service
    return ReflectiveService(service)
