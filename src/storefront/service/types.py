"""
Pydantic models for the subgraph HTTP surface.

The JSON shapes mirror GraphQL over HTTP: results under ``data``, per-field
failures under ``errors`` with a ``path`` and ``extensions.code``.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class EntitiesRequest(BaseModel):
    """
    POST /_entities

    Example:
    {
        "representations": [
            {"__typename": "Product", "id": "product:1"},
            {"__typename": "Variant", "id": "variant:1"}
        ],
        "fields": {
            "Product": {"title": {}},
            "Variant": {"price": {}, "inventory": {}}
        }
    }
    """
    representations: list[Any]
    fields: Optional[dict[str, dict[str, dict[str, Any]]]] = None  # __typename -> field -> arguments


class OperationRequest(BaseModel):
    """
    POST /

    Example:
    {
        "query": {"product": {"id": "product:1"}},
        "mutation": {"login": {"username": "user1", "password": "pw", "scopes": []}}
    }
    """
    query: dict[str, dict[str, Any]] = Field(default_factory=dict)
    mutation: dict[str, dict[str, Any]] = Field(default_factory=dict)


class GraphError(BaseModel):
    message: str
    path: list[Union[str, int]] = Field(default_factory=list)
    extensions: dict[str, Any] = Field(default_factory=dict)


class GraphResponse(BaseModel):
    data: Optional[dict[str, Any]] = None
    errors: list[GraphError] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"data": self.data}
        if self.errors:
            result["errors"] = [e.model_dump() for e in self.errors]
        return result
