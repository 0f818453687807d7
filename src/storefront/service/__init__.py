"""
Service module - utilities for building storefront subgraphs.

Provides:
- Subgraph: base class for a service's resolver set
- create_subgraph_app: Factory for creating FastAPI subgraph apps
- get_service_schema: ``/__schema`` document
"""

from __future__ import annotations

from .app import create_subgraph_app
from .auth import context_dependency, resolve_identity
from .schema import get_service_schema
from .subgraph import Subgraph, format_error
from .types import EntitiesRequest, GraphError, GraphResponse, OperationRequest

__all__ = [
    # Base class
    "Subgraph",
    "format_error",
    # App factory
    "create_subgraph_app",
    "context_dependency",
    "resolve_identity",
    # Schema
    "get_service_schema",
    # Wire types
    "EntitiesRequest",
    "OperationRequest",
    "GraphError",
    "GraphResponse",
]
