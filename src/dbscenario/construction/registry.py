from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Optional


class PrimitiveRegistryError(RuntimeError):
    pass


# (tag, raw value) -> built value; raises ConstructionError on mismatch
PrimitiveBuilder = Callable[[str, Any], Any]


class PrimitiveRegistry:
    _registry: ClassVar[Dict[str, PrimitiveBuilder]] = {}

    @classmethod
    def register(cls, *, tag: str, builder: PrimitiveBuilder, overwrite: bool = False) -> None:
        if not tag or tag[:1].isupper():
            raise PrimitiveRegistryError(
                f"Primitive tags must be non-empty and start lowercase, got {tag!r}"
            )
        if not overwrite and tag in cls._registry:
            raise PrimitiveRegistryError(f"Primitive already registered for tag={tag!r}")
        cls._registry[tag] = builder

    @classmethod
    def get(cls, tag: str) -> PrimitiveBuilder:
        try:
            return cls._registry[tag]
        except KeyError as exc:
            raise PrimitiveRegistryError(f"No primitive registered for tag={tag!r}") from exc

    @classmethod
    def try_get(cls, tag: str) -> Optional[PrimitiveBuilder]:
        return cls._registry.get(tag)

    @classmethod
    def tags(cls) -> list[str]:
        return sorted(cls._registry)

    @classmethod
    def clear(cls) -> None:
        cls._registry.clear()


def register_primitive(*, tag: str, overwrite: bool = False) -> Callable[[PrimitiveBuilder], PrimitiveBuilder]:
    def decorator(builder: PrimitiveBuilder) -> PrimitiveBuilder:
        PrimitiveRegistry.register(tag=tag, builder=builder, overwrite=overwrite)
        return builder

    return decorator
