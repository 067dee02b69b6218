"""Stable component names for described types."""

from __future__ import annotations

import re
from typing import Callable, Union

from .descriptor import TypeDescriptor, describe, origin_name

SchemaNamer = Callable[[TypeDescriptor], str]

_UNSAFE = re.compile(r"[^A-Za-z0-9_.\-]+")


class DefaultSchemaNamer:
    """Use the class name, flattening generic arguments with ``_``.

    ``Page[Product]`` becomes ``Page_Product`` and ``Union[Cat, Dog]``
    becomes ``OneOf_Cat_Dog``. Nullability of the named type itself is
    ignored; nullable generic arguments are prefixed with ``Optional_``.
    """

    delimiter = "_"

    def base_name(self, desc: TypeDescriptor) -> str:
        return origin_name(desc.origin)

    def segment(self, desc: TypeDescriptor) -> str:
        if desc.origin is Union:
            text = self.delimiter.join(
                ["OneOf", *(self.segment(arg) for arg in desc.args)]
            )
        else:
            text = self.delimiter.join(
                [self.base_name(desc), *(self.segment(arg) for arg in desc.args)]
            )
        if desc.nullable:
            text = f"Optional{self.delimiter}{text}"
        return _UNSAFE.sub(self.delimiter, text)

    def __call__(self, tp: TypeDescriptor) -> str:
        return self.segment(describe(tp).non_null())


class QualifiedSchemaNamer(DefaultSchemaNamer):
    """Prefix names with the defining module to avoid cross-module clashes."""

    def base_name(self, desc: TypeDescriptor) -> str:
        module = getattr(desc.origin, "__module__", None)
        qualname = getattr(desc.origin, "__qualname__", None)
        if not module or not qualname or module == "builtins":
            return origin_name(desc.origin)
        return f"{module}.{qualname.replace('.<locals>', '')}"


__all__ = ["DefaultSchemaNamer", "QualifiedSchemaNamer", "SchemaNamer"]
