"""
Service schema generation for discovery.

The router (or an operator) calls ``/__schema`` to see which entity types a
subgraph exposes, under which keys, and which fields and root operations it
contributes.
"""

from __future__ import annotations

from typing import Any

from .subgraph import Subgraph


SCHEMA_VERSION = 1


def get_service_schema(subgraph: Subgraph) -> dict[str, Any]:
    """
    Generate the schema document for a subgraph.

    Example:
        {
            "version": 1,
            "service": "inventory",
            "entities": {
                "Variant": {
                    "keys": [["id"]],
                    "extension": true,
                    "scalars": [],
                    "fields": {"inventory": {"arguments": []}},
                    "requires": []
                }
            },
            "queries": {}
        }
    """
    description = subgraph.describe()
    result: dict[str, Any] = {
        "version": SCHEMA_VERSION,
        "service": subgraph.name,
        "entities": description["entities"],
        "queries": description["queries"],
    }

    # Only include mutations if there are any
    if description["mutations"]:
        result["mutations"] = description["mutations"]

    return result
