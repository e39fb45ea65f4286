from __future__ import annotations

import importlib
import sys
from typing import Iterable


BUILTIN_PRIMITIVE_MODULES: tuple[str, ...] = (
    "dbscenario.construction.primitives",
)


_LOADED = False


def load_builtin_primitives(*, reload: bool = False, modules: Iterable[str] = BUILTIN_PRIMITIVE_MODULES) -> None:
    """Import built-in primitive modules so their decorators register the scalar tags.

    In production, call with reload=False (default) so imports are cheap.
    In tests, call with reload=True after clearing the registry to re-run decorators.
    """

    global _LOADED

    if _LOADED and not reload:
        return

    if reload:
        from dbscenario.construction.registry import PrimitiveRegistry

        PrimitiveRegistry.clear()

    for module_name in modules:
        if reload:
            sys.modules.pop(module_name, None)
        importlib.import_module(module_name)

    _LOADED = True
