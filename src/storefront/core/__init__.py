"""
Core module - definitions, errors, settings and the entity key registry.
"""

from __future__ import annotations

from .errors import (
    ConfigError,
    JWKSFetchError,
    NotFoundError,
    StorefrontError,
    ValidationError,
)
from .defs import EntityDef, FieldDef, OperationDef, Record
from .context import RequestContext
from .registry import EntityKeyRegistry, Selection, stub
from .settings import Settings, get_settings

__all__ = [
    # Errors
    "StorefrontError",
    "ValidationError",
    "NotFoundError",
    "JWKSFetchError",
    "ConfigError",
    # Definitions
    "EntityDef",
    "FieldDef",
    "OperationDef",
    "Record",
    # Context
    "RequestContext",
    # Registry
    "EntityKeyRegistry",
    "Selection",
    "stub",
    # Settings
    "Settings",
    "get_settings",
]
