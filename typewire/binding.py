"""Collect raw parameter values from a request and decode them."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from .decoder import TypedValueDecoder
from .descriptor import FieldDescriptor, Kind, NoneType, describe
from .http import Request


class ParameterBinder:
    """Bind query, path, header and cookie parameters to a parameter-set type.

    Each field is looked up in the location declared through
    ``Annotated[..., Query()/Path()/Header()/Cookie()]`` (query by default).
    Header names match case-insensitively; for sequence fields a header
    value of ``"1,2,3"`` yields three values.
    """

    def __init__(self, decoder: TypedValueDecoder) -> None:
        self.decoder = decoder

    def collect(self, request: Request, tp: Any) -> dict[str, list[str]]:
        raw: dict[str, list[str]] = {}
        for field in describe(tp).fields():
            values = self._lookup(request, field)
            if values:
                raw[field.wire_name] = values
        return raw

    def _lookup(self, request: Request, field: FieldDescriptor) -> list[str]:
        name = field.wire_name
        if field.location == "path":
            value = request.path_params.get(name)
            return [] if value is None else [value]
        if field.location == "cookie":
            value = request.cookies.get(name)
            return [] if value is None else [value]
        if field.location == "header":
            values = request.header_values.get(name.lower(), [])
            if field.type.kind is Kind.ARRAY:
                return [item.strip() for value in values for item in value.split(",")]
            return list(values)
        return list(request.query_params.get(name, []))

    def bind(self, request: Request, tp: Any) -> Any:
        """Decode the parameters of *request* into an instance of *tp*."""

        if tp is None or tp is NoneType:
            return None
        return self.decoder.decode(tp, self.collect(request, tp))

    async def bind_form(self, request: Request, tp: Any) -> Any:
        """Stream a multipart body from *request* into an instance of *tp*."""

        if tp is None or tp is NoneType:
            return None
        return await self.decoder.adecode_multipart(
            tp, request.stream(), request.content_type
        )

    async def bind_binary(
        self, request: Request, tp: Any, accepted: Optional[Sequence[str]] = None
    ) -> Any:
        if tp is None or tp is NoneType:
            return None
        body = await request.body()
        return self.decoder.decode_binary(tp, body, request.content_type, accepted)


__all__ = ["ParameterBinder"]
