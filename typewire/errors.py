"""Error taxonomy shared by the converter, decoder and schema layers."""

from __future__ import annotations

from typing import Any, Optional


class TypewireError(Exception):
    """BASE ERROR CLASS."""

    status_code = 500

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class ClientError(TypewireError):
    """Errors caused by request data rather than configuration."""

    status_code = 400
    error_type = "value_error"

    def __init__(
        self,
        code: str,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
    ):
        super().__init__(code, message)
        self.field = field
        self.value = value

    def errors(self) -> list[dict[str, Any]]:
        """Return a 4xx error payload in ``loc/msg/type/input`` form."""

        loc = [self.field] if self.field is not None else []
        return [
            {
                "loc": loc,
                "msg": self.message,
                "type": self.error_type,
                "input": self.value,
            }
        ]


class UnhandledTypeError(TypewireError):
    """No converter or schema strategy exists for a type."""

    def __init__(self, type_: Any, detail: Optional[str] = None):
        message = f"Unhandled Type {type_}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__("UNHANDLED_TYPE", message)
        self.type = type_


class RequiredFieldError(ClientError):
    """A non-nullable field has neither a raw value nor a default."""

    error_type = "missing"

    def __init__(self, field: str):
        super().__init__(
            "REQUIRED_FIELD", f"No provided value for field {field}", field
        )


class ParseError(ClientError):
    """A raw value does not match the grammar of its converter."""

    error_type = "parsing"

    def __init__(self, field: str, value: Any, type_: Any, reason: str = ""):
        message = f"Could not parse field {field} with value '{value}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__("PARSE_ERROR", message, field, value)
        self.type = type_


class MultipartError(ClientError):
    """The multipart body is malformed or violates upload limits."""

    error_type = "multipart"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__("MULTIPART_ERROR", message, field)


class UnsupportedMediaTypeError(ClientError):
    """A body arrived with a content type the target does not accept."""

    status_code = 415
    error_type = "media_type"

    def __init__(self, content_type: Optional[str], accepted: list[str]):
        super().__init__(
            "UNSUPPORTED_MEDIA_TYPE",
            f"Unsupported content type {content_type!r}, expected one of {accepted}",
            value=content_type,
        )
        self.accepted = accepted


class SchemaNamingCollisionError(TypewireError):
    """Two structurally different schemas were bound to the same name.

    Recorded and logged rather than raised unless strict naming is enabled;
    the later schema replaces the earlier one.
    """

    def __init__(self, name: str, existing: Any, replacement: Any):
        super().__init__(
            "SCHEMA_NAMING_COLLISION",
            f"Schema with name {name} already exists, and is not the same "
            "as the new one, replacing...",
        )
        self.name = name
        self.existing = existing
        self.replacement = replacement


__all__ = [
    "ClientError",
    "MultipartError",
    "ParseError",
    "RequiredFieldError",
    "SchemaNamingCollisionError",
    "TypewireError",
    "UnhandledTypeError",
    "UnsupportedMediaTypeError",
]
