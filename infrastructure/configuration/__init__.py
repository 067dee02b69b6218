"""Environment-specific configuration loader."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_REF_PREFIX = "#/components/schemas/"

ALLOWED_ENVS = {"dev", "prod"}
LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Runtime settings populated from the environment."""

    environment: str = "dev"
    debug: bool = False
    log_level: str = "INFO"
    lenient_primitives: bool = True
    strict_schema_names: bool = False
    ref_prefix: str = DEFAULT_REF_PREFIX
    max_upload_size: Optional[int] = None


def validate_settings(settings: Settings) -> None:
    """Validate *settings* for safe operation.

    Raises
    ------
    ValueError
        If the environment or log level is unsupported, if production
        settings are insecure, or if the upload limit is not positive.
    """

    env = settings.environment
    if env not in ALLOWED_ENVS:
        raise ValueError(f"Unsupported environment: {env}")
    if env == "prod" and settings.debug:
        raise ValueError("Debug must be disabled in production")
    if settings.log_level not in LOG_LEVELS:
        raise ValueError(f"Unsupported log level: {settings.log_level}")
    if settings.max_upload_size is not None and settings.max_upload_size <= 0:
        raise ValueError("Maximum upload size must be positive")


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def load_settings() -> Settings:
    """Return configuration derived from `TYPEWIRE_*` variables."""

    upload = os.getenv("TYPEWIRE_MAX_UPLOAD_SIZE")
    settings = Settings(
        environment=os.getenv("TYPEWIRE_ENV", "dev").lower(),
        debug=_flag("TYPEWIRE_DEBUG", False),
        log_level=os.getenv("TYPEWIRE_LOG_LEVEL", "INFO").upper(),
        lenient_primitives=_flag("TYPEWIRE_LENIENT_PRIMITIVES", True),
        strict_schema_names=_flag("TYPEWIRE_STRICT_SCHEMA_NAMES", False),
        ref_prefix=os.getenv("TYPEWIRE_REF_PREFIX", DEFAULT_REF_PREFIX),
        max_upload_size=int(upload) if upload else None,
    )
    validate_settings(settings)
    return settings


def apply_logging(settings: Settings) -> None:
    """Set the level of the ``typewire`` logger hierarchy from *settings*."""

    level = "DEBUG" if settings.debug else settings.log_level
    logging.getLogger("typewire").setLevel(level)


__all__ = [
    "ALLOWED_ENVS",
    "LOG_LEVELS",
    "Settings",
    "apply_logging",
    "load_settings",
    "validate_settings",
]
