"""One schema generator per served API surface."""

from __future__ import annotations

from dataclasses import MISSING
from typing import Any, Callable, Mapping, Optional

from infrastructure.configuration import (
    Settings,
    apply_logging,
    load_settings,
    validate_settings,
)

from .binding import ParameterBinder
from .builder import SchemaBuilder
from .converters import Converter, ConverterRegistry
from .decoder import TypedValueDecoder
from .descriptor import Kind, NoneType, describe
from .http import Request
from .namer import SchemaNamer
from .schema import BINARY, STRING, Primitive, SchemaModel

JSON = "application/json"
MULTIPART = "multipart/form-data"
FORM_URLENCODED = "application/x-www-form-urlencoded"


class OpenAPIGenerator:
    """Own the converter registry, schema table, decoder and binder.

    ``settings`` default to :func:`load_settings`, i.e. the ``TYPEWIRE_*``
    environment variables, and only then is the ``typewire`` logger level
    taken from them. Explicit settings leave logging to the application.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        namer: Optional[SchemaNamer] = None,
        *,
        allowed_mime_types: Optional[set[str]] = None,
    ) -> None:
        if settings is None:
            settings = load_settings()
            apply_logging(settings)
        validate_settings(settings)
        self.settings = settings
        self.registry = ConverterRegistry(lenient=self.settings.lenient_primitives)
        self.builder = SchemaBuilder(
            self.registry, namer=namer, strict_names=self.settings.strict_schema_names
        )
        self.resolver = self.builder.resolver
        self.decoder = TypedValueDecoder(
            self.resolver,
            max_upload_size=self.settings.max_upload_size,
            allowed_mime_types=allowed_mime_types,
        )
        self.binder = ParameterBinder(self.decoder)

    @property
    def ref_prefix(self) -> str:
        return self.settings.ref_prefix

    def register(
        self,
        tp: Any,
        parse: Callable[[str], Any],
        default: Any = MISSING,
        *,
        schema: Primitive = STRING,
    ) -> Converter:
        """Register a converter for a custom leaf type."""

        return self.registry.register(
            tp, parse, default, schema=schema, lenient=self.registry.lenient
        )

    def build(self, tp: Any) -> SchemaModel:
        return self.builder.build(tp)

    def schema(self, tp: Any) -> dict[str, Any]:
        """Return the JSON schema of *tp*, a ``$ref`` for named types."""

        return self.builder.build(tp).to_dict(self.ref_prefix)

    def parameters(self, tp: Any) -> list[dict[str, Any]]:
        """Render the fields of a parameter-set type as OpenAPI parameters."""

        if tp is None or tp is NoneType:
            return []
        params = []
        for field in describe(tp).fields():
            param: dict[str, Any] = {
                "name": field.wire_name,
                "in": field.location,
                "required": field.location == "path" or not field.type.nullable,
                "schema": self.schema(field.type),
            }
            if field.description:
                param["description"] = field.description
            params.append(param)
        return params

    def _body_schema(self, tp: Any, media_type: str) -> dict[str, Any]:
        if media_type in (JSON, MULTIPART, FORM_URLENCODED) or media_type.endswith("+json"):
            return self.schema(tp)
        desc = describe(tp)
        if desc.kind is Kind.OBJECT:
            # single-stream-field types are sent as the raw body
            fields = desc.fields()
            if len(fields) == 1 and fields[0].type.kind is Kind.STREAM:
                return BINARY.to_dict()
        return self.schema(tp)

    def request_body(self, tp: Any, *media_types: str) -> dict[str, Any]:
        """Render a ``requestBody`` object for *tp* (JSON unless told otherwise)."""

        content = {
            media: {"schema": self._body_schema(tp, media)}
            for media in (media_types or (JSON,))
        }
        return {"content": content, "required": not describe(tp).nullable}

    def response(
        self, tp: Any, description: str = "OK", media_type: str = JSON
    ) -> dict[str, Any]:
        if tp is None or tp is NoneType:
            return {"description": description}
        return {
            "description": description,
            "content": {media_type: {"schema": self._body_schema(tp, media_type)}},
        }

    def components(self) -> dict[str, Any]:
        return {"schemas": self.builder.components(self.ref_prefix)}

    def decode(self, tp: Any, raw: Mapping[str, Any]) -> Any:
        return self.decoder.decode(tp, raw)

    def bind(self, request: Request, tp: Any) -> Any:
        return self.binder.bind(request, tp)

    async def bind_form(self, request: Request, tp: Any) -> Any:
        return await self.binder.bind_form(request, tp)


__all__ = ["FORM_URLENCODED", "JSON", "MULTIPART", "OpenAPIGenerator"]
