"""
Storefront - federated storefront subgraphs, identity provider and coprocessor.

Each storefront service (products, inventory, reviews, shipping, checkout,
orders, users, discovery) is a subgraph that:
- declares its entity types and keys in an entity key registry
- resolves references sent by the router to local records or None
- contributes fields and root operations

The coprocessor hooks into the router's request lifecycle; the users service
issues ES256 tokens that every other process verifies through a JWKS cache.

Usage:
    from storefront import build_app

    app = build_app("inventory")
"""

from __future__ import annotations

from .apps import build_app, build_coprocessor_app, build_subgraph_app
from .auth import (
    IdentityContext,
    IdentityProvider,
    JWKSCache,
    SigningKey,
    TokenIssuer,
    TokenVerifier,
    VerificationFailure,
)
from .coprocessor import CoprocessorStage, StagePipeline, create_coprocessor_app
from .core import (
    ConfigError,
    EntityDef,
    EntityKeyRegistry,
    FieldDef,
    JWKSFetchError,
    NotFoundError,
    OperationDef,
    RequestContext,
    Settings,
    StorefrontError,
    ValidationError,
    get_settings,
    stub,
)
from .service import Subgraph, create_subgraph_app, get_service_schema
from .store import InMemoryRepository, Repository, SqlRepository
from .subgraphs import SUBGRAPHS

__version__ = "0.1.0"

__all__ = [
    # Apps
    "build_app",
    "build_subgraph_app",
    "build_coprocessor_app",
    # Core definitions
    "EntityDef",
    "FieldDef",
    "OperationDef",
    "EntityKeyRegistry",
    "RequestContext",
    "stub",
    # Errors
    "StorefrontError",
    "ValidationError",
    "NotFoundError",
    "JWKSFetchError",
    "ConfigError",
    # Settings
    "Settings",
    "get_settings",
    # Auth
    "IdentityContext",
    "VerificationFailure",
    "IdentityProvider",
    "SigningKey",
    "TokenIssuer",
    "TokenVerifier",
    "JWKSCache",
    # Subgraphs
    "Subgraph",
    "SUBGRAPHS",
    "create_subgraph_app",
    "get_service_schema",
    # Storage
    "Repository",
    "InMemoryRepository",
    "SqlRepository",
    # Coprocessor
    "CoprocessorStage",
    "StagePipeline",
    "create_coprocessor_app",
]
