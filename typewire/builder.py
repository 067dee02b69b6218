"""Recursive schema synthesis with a reference cache and a named-schema table."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from infrastructure.monitoring import increment_metric

from .converters import ConverterRegistry
from .descriptor import Kind, TypeDescriptor, describe
from .errors import SchemaNamingCollisionError, UnhandledTypeError
from .namer import DefaultSchemaNamer, SchemaNamer
from .schema import (
    BINARY,
    ArraySchema,
    MapSchema,
    ObjectSchema,
    OneOf,
    Ref,
    SchemaModel,
)
from .wrappers import WrapperResolver

_LOGGER = logging.getLogger("typewire.schema")


class SchemaBuilder:
    """Turn type descriptors into schema models.

    Objects and sums are named: their body goes into the named-schema table
    and callers receive a :class:`Ref`. Leaves, enums, streams, arrays and
    maps are returned inline. Wrappers are replaced by the schema of the type
    they wrap.

    The table accumulates across builds. A name rebound to a structurally
    different schema is recorded in :attr:`collisions` and logged; the later
    schema wins unless ``strict_names`` is set, in which case the collision
    is raised.
    """

    def __init__(
        self,
        registry: ConverterRegistry,
        resolver: Optional[WrapperResolver] = None,
        namer: Optional[SchemaNamer] = None,
        *,
        strict_names: bool = False,
    ) -> None:
        self.registry = registry
        self.resolver = resolver or WrapperResolver(registry)
        self.namer = namer or DefaultSchemaNamer()
        self.strict_names = strict_names
        self.collisions: list[SchemaNamingCollisionError] = []
        self._lock = threading.RLock()
        self._refs: dict[TypeDescriptor, Ref] = {}
        self._schemas: dict[str, SchemaModel] = {}

    @property
    def schemas(self) -> dict[str, SchemaModel]:
        """Snapshot of the named-schema table."""

        with self._lock:
            return dict(self._schemas)

    def ref_for(self, tp: Any) -> Optional[Ref]:
        with self._lock:
            return self._refs.get(describe(tp).non_null())

    def resolve_ref(self, ref: Ref) -> SchemaModel:
        with self._lock:
            return self._schemas[ref.name]

    def build(self, tp: Any) -> SchemaModel:
        """Return the schema of *tp*; a :class:`Ref` for named types."""

        desc = describe(tp)
        # the cache check and the Ref insertion must not interleave
        with self._lock:
            refs, schemas = dict(self._refs), dict(self._schemas)
            try:
                return self._build(desc)
            except Exception:
                # a failed build leaves no schema pointing at a dropped Ref
                self._refs, self._schemas = refs, schemas
                raise

    def _build(self, desc: TypeDescriptor) -> SchemaModel:
        desc = desc.non_null()
        kind = desc.kind
        if kind is Kind.STREAM:
            return BINARY
        if kind is Kind.WRAPPER:
            return self._build(self.resolver.unwrap(desc))
        if self.registry.handles(desc):
            return self.registry.resolve(desc).schema
        if kind is Kind.ARRAY:
            return ArraySchema(self._build(desc.item))
        if kind is Kind.MAP:
            return MapSchema(self._build(desc.item))
        if kind in (Kind.OBJECT, Kind.SUM):
            return self._named(desc)
        raise UnhandledTypeError(desc)

    def _named(self, desc: TypeDescriptor) -> Ref:
        cached = self._refs.get(desc)
        if cached is not None:
            return cached
        ref = Ref(self.namer(desc))
        self._refs[desc] = ref
        if desc.kind is Kind.SUM:
            schema: SchemaModel = OneOf(
                tuple(self._build(variant) for variant in desc.variants())
            )
        else:
            schema = self._object(desc)
        self._store(ref.name, schema)
        return ref

    def _object(self, desc: TypeDescriptor) -> ObjectSchema:
        properties: dict[str, SchemaModel] = {}
        required: list[str] = []
        for field in desc.fields():
            if field.name.startswith("_"):
                continue
            properties[field.wire_name] = self._build(field.type)
            if not field.type.nullable:
                required.append(field.wire_name)
        return ObjectSchema(properties, tuple(required))

    def _store(self, name: str, schema: SchemaModel) -> None:
        existing = self._schemas.get(name)
        if existing is not None:
            if existing == schema:
                return
            collision = SchemaNamingCollisionError(name, existing, schema)
            self.collisions.append(collision)
            increment_metric("schema_name_collisions_total")
            _LOGGER.warning(collision.message)
            if self.strict_names:
                raise collision
        self._schemas[name] = schema
        increment_metric("schemas_built_total")
        _LOGGER.debug("registered schema %s", name)

    def components(self, ref_prefix: Optional[str] = None) -> dict[str, Any]:
        """Render the named-schema table as ``components/schemas`` JSON."""

        kwargs = {} if ref_prefix is None else {"ref_prefix": ref_prefix}
        return {name: schema.to_dict(**kwargs) for name, schema in self.schemas.items()}


__all__ = ["SchemaBuilder"]
