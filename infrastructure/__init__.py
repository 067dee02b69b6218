"""Settings and counters shared by the typewire schema generator and decoder.

``load_settings`` reads the ``TYPEWIRE_*`` environment variables; counters
live in :mod:`infrastructure.monitoring`.
"""

from __future__ import annotations

from .configuration import (
    ALLOWED_ENVS,
    Settings,
    apply_logging,
    load_settings,
    validate_settings,
)

__all__ = [
    "ALLOWED_ENVS",
    "Settings",
    "apply_logging",
    "load_settings",
    "validate_settings",
]
