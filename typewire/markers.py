"""Class decorators and ``Annotated`` markers that steer binding and schemas."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Optional, TypeVar

from pydantic import BaseModel

WRAPPER_ATTR = "__typewire_wrapper__"
SEALED_ATTR = "__typewire_sealed__"
STRICT_ENUM_ATTR = "__typewire_strict_enum__"

LOCATIONS = ("query", "path", "header", "cookie")

_C = TypeVar("_C", bound=type)


def declared_field_count(cls: type) -> Optional[int]:
    """Return how many constructor fields *cls* declares, if known."""

    if dataclasses.is_dataclass(cls):
        return len([f for f in dataclasses.fields(cls) if f.init])
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        return len(cls.model_fields)
    named = getattr(cls, "_fields", None)
    if isinstance(cls, type) and issubclass(cls, tuple) and named is not None:
        return len(named)
    return None


def wrapper(cls: _C) -> _C:
    """Mark *cls* as a transparent single-field value wrapper.

    Apply on top of ``@dataclass`` (or to a pydantic model / NamedTuple).
    """

    count = declared_field_count(cls)
    if count != 1:
        raise TypeError(
            f"{cls.__name__} must declare exactly one field to be a wrapper, "
            f"found {count}"
        )
    setattr(cls, WRAPPER_ATTR, True)
    return cls


def sealed(cls: _C) -> _C:
    """Mark *cls* as a closed sum type whose variants are its direct subclasses."""

    setattr(cls, SEALED_ATTR, True)
    return cls


def strict_enum(cls: _C) -> _C:
    """Reject unknown enum values even for nullable parameters."""

    setattr(cls, STRICT_ENUM_ATTR, True)
    return cls


def has_marker(cls: Any, attr: str) -> bool:
    # markers are not inherited by subclasses
    return isinstance(cls, type) and bool(cls.__dict__.get(attr, False))


@dataclass(frozen=True)
class ParamInfo:
    """Where a parameter lives on the wire and under which name."""

    location: str = "query"
    alias: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if self.location not in LOCATIONS:
            raise ValueError(f"Unsupported parameter location: {self.location}")


def Query(alias: Optional[str] = None, description: Optional[str] = None) -> ParamInfo:
    return ParamInfo("query", alias, description)


def Path(alias: Optional[str] = None, description: Optional[str] = None) -> ParamInfo:
    return ParamInfo("path", alias, description)


def Header(alias: Optional[str] = None, description: Optional[str] = None) -> ParamInfo:
    return ParamInfo("header", alias, description)


def Cookie(alias: Optional[str] = None, description: Optional[str] = None) -> ParamInfo:
    return ParamInfo("cookie", alias, description)


__all__ = [
    "Cookie",
    "Header",
    "LOCATIONS",
    "ParamInfo",
    "Path",
    "Query",
    "declared_field_count",
    "has_marker",
    "sealed",
    "strict_enum",
    "wrapper",
]
