"""Transparent single-field value wrappers.

A wrapper is either a ``typing.NewType`` or a class marked with
:func:`typewire.markers.wrapper` that declares exactly one field. Wrappers
are invisible on the wire: they parse with the converter of the wrapped
type and render the wrapped type's schema.
"""

from __future__ import annotations

import logging
import threading
import typing
from typing import Any, Callable

from infrastructure.monitoring import increment_metric

from .converters import Converter, ConverterRegistry
from .descriptor import Kind, TypeDescriptor, describe
from .errors import UnhandledTypeError

_LOGGER = logging.getLogger("typewire.wrappers")


class WrapperResolver:
    """Derive and memoise converters for wrapper types."""

    def __init__(self, registry: ConverterRegistry) -> None:
        self.registry = registry
        self._lock = threading.RLock()
        self._derived: dict[TypeDescriptor, Converter] = {}

    def is_wrapper(self, tp: Any) -> bool:
        return describe(tp).kind is Kind.WRAPPER

    def unwrap(self, tp: Any) -> TypeDescriptor:
        """Return the type of the wrapped field, generics substituted."""

        desc = describe(tp).non_null()
        if desc.kind is not Kind.WRAPPER:
            raise TypeError(f"{desc} is not a value wrapper")
        if isinstance(desc.origin, typing.NewType):
            return describe(desc.origin.__supertype__)
        (only,) = desc.fields()
        return only.type

    def constructor(self, tp: Any) -> Callable[[Any], Any]:
        desc = describe(tp).non_null()
        if isinstance(desc.origin, typing.NewType):
            return desc.origin
        (only,) = desc.fields()

        def construct(value: Any) -> Any:
            return desc.construct({only.key: value})

        return construct

    def derive_converter(self, tp: Any) -> Converter:
        """Return the memoised converter for the wrapper type *tp*.

        Raises :class:`UnhandledTypeError` naming the unwrapped type when it
        has no converter.
        """

        desc = describe(tp).non_null()
        with self._lock:
            cached = self._derived.get(desc)
            if cached is not None:
                return cached
            inner = self.unwrap(desc)
            try:
                inner_converter = self.converter_for(inner)
            except UnhandledTypeError as exc:
                raise UnhandledTypeError(inner.non_null()) from exc
            converter = inner_converter.map(self.constructor(desc), desc)
            self._derived[desc] = converter
            self.registry.add(desc, converter)
        _LOGGER.debug("derived converter for %s over %s", desc, inner)
        increment_metric("wrapper_converters_total")
        return converter

    def converter_for(self, tp: Any) -> Converter:
        """Resolve a converter, going through wrappers where needed."""

        desc = describe(tp).non_null()
        if desc.kind is Kind.WRAPPER:
            return self.derive_converter(desc)
        return self.registry.resolve(desc)


__all__ = ["WrapperResolver"]
