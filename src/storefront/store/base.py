"""
Repository interface used by every subgraph for its local data.

Resolvers only talk to this interface, so the in-memory fixtures can be
swapped for a database-backed store without touching resolver logic.

Filters follow the ``field__op`` convention:
    {"title__startswith": "Air"}       -> record["title"].startswith("Air")
    {"product.upc": "product:1"}       -> record["product"]["upc"] == "product:1"
    {"id__in": ["order:1", "order:2"]} -> record["id"] in [...]
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol, runtime_checkable

from ..core.errors import ValidationError


Record = dict[str, Any]

# Receives a copy of the current record (None when absent), returns the new
# record, or None to delete it.
Mutation = Callable[[Optional[Record]], Optional[Record]]

FILTER_OPS = ("eq", "ne", "in", "startswith", "icontains", "isnull")

_MISSING = object()


@runtime_checkable
class Repository(Protocol):
    """Async key/value store of entity records keyed by one field."""

    key_field: str

    async def find(self, key: str) -> Optional[Record]:
        """Return a copy of the record with this key, or None."""
        ...

    async def list(self, filters: Optional[Mapping[str, Any]] = None) -> list[Record]:
        """Return copies of all records matching every filter."""
        ...

    async def mutate(self, key: str, change: Mutation) -> Optional[Record]:
        """Apply ``change`` to the record atomically and return the stored result."""
        ...


def parse_filter(expression: str) -> tuple[str, str]:
    """
    Split ``"title__startswith"`` into ``("title", "startswith")``.

    A bare field name means ``eq``.
    """
    if "__" in expression:
        path, op = expression.rsplit("__", 1)
    else:
        path, op = expression, "eq"
    if op not in FILTER_OPS:
        raise ValidationError([f"Unsupported filter operator '{op}' in '{expression}'"])
    return path, op


def lookup(record: Mapping[str, Any], path: str) -> Any:
    """Follow a dotted path through nested dicts."""
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def matches(record: Mapping[str, Any], filters: Optional[Mapping[str, Any]]) -> bool:
    """Check a record against all filters (logical AND)."""
    if not filters:
        return True

    for expression, expected in filters.items():
        path, op = parse_filter(expression)
        value = lookup(record, path)

        if op == "isnull":
            if (value is _MISSING or value is None) != bool(expected):
                return False
            continue

        if value is _MISSING:
            return False

        if op == "eq" and value != expected:
            return False
        if op == "ne" and value == expected:
            return False
        if op == "in" and value not in expected:
            return False
        if op == "startswith" and not (isinstance(value, str) and value.startswith(str(expected))):
            return False
        if op == "icontains" and not (isinstance(value, str) and str(expected).lower() in value.lower()):
            return False

    return True
