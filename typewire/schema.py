"""Schema model rendered into OpenAPI 3.0 JSON fragments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple, Union

DEFAULT_REF_PREFIX = "#/components/schemas/"


@dataclass(frozen=True)
class Primitive:
    """Leaf schema such as ``integer/int32`` or ``string/date-time``."""

    type: str
    format: Optional[str] = None
    enum: Optional[Tuple[str, ...]] = None

    def to_dict(self, ref_prefix: str = DEFAULT_REF_PREFIX) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type}
        if self.format is not None:
            out["format"] = self.format
        if self.enum is not None:
            out["enum"] = list(self.enum)
        return out


@dataclass(frozen=True)
class ObjectSchema:
    """Object with ordered properties; ``required`` lists non-nullable fields."""

    properties: Mapping[str, "SchemaModel"] = field(default_factory=dict)
    required: Tuple[str, ...] = ()

    def to_dict(self, ref_prefix: str = DEFAULT_REF_PREFIX) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": "object",
            "properties": {
                name: schema.to_dict(ref_prefix)
                for name, schema in self.properties.items()
            },
        }
        if self.required:
            out["required"] = list(self.required)
        return out


@dataclass(frozen=True)
class ArraySchema:
    items: "SchemaModel"

    def to_dict(self, ref_prefix: str = DEFAULT_REF_PREFIX) -> dict[str, Any]:
        return {"type": "array", "items": self.items.to_dict(ref_prefix)}


@dataclass(frozen=True)
class MapSchema:
    """String-keyed map rendered with ``additionalProperties``."""

    values: "SchemaModel"

    def to_dict(self, ref_prefix: str = DEFAULT_REF_PREFIX) -> dict[str, Any]:
        return {"type": "object", "additionalProperties": self.values.to_dict(ref_prefix)}


@dataclass(frozen=True)
class OneOf:
    """Closed sum type; variant order follows declaration order."""

    variants: Tuple["SchemaModel", ...]

    def to_dict(self, ref_prefix: str = DEFAULT_REF_PREFIX) -> dict[str, Any]:
        return {"oneOf": [variant.to_dict(ref_prefix) for variant in self.variants]}


@dataclass(frozen=True)
class Ref:
    """Pointer into the named-schema table."""

    name: str

    def to_dict(self, ref_prefix: str = DEFAULT_REF_PREFIX) -> dict[str, Any]:
        return {"$ref": f"{ref_prefix}{self.name}"}


SchemaModel = Union[Primitive, ObjectSchema, ArraySchema, MapSchema, OneOf, Ref]

STRING = Primitive("string")
BINARY = Primitive("string", "binary")


__all__ = [
    "ArraySchema",
    "BINARY",
    "DEFAULT_REF_PREFIX",
    "MapSchema",
    "ObjectSchema",
    "OneOf",
    "Primitive",
    "Ref",
    "STRING",
    "SchemaModel",
]
