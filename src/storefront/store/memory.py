"""
In-memory repository used for demo data and tests.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Iterable, Mapping, Optional

from ..core.errors import ValidationError
from .base import Mutation, Record, matches


class InMemoryRepository:
    """
    Repository over a dict of records.

    Reads return deep copies, so callers (e.g. field redaction that deletes
    keys) can never change stored data by accident.

    Usage:
        users = InMemoryRepository([{"id": "user:1", "username": "user1"}])
        user = await users.find("user:1")
    """

    def __init__(self, records: Iterable[Record] = (), key_field: str = "id"):
        self.key_field = key_field
        self._records: dict[str, Record] = {}
        self._lock = asyncio.Lock()
        for record in records:
            self._records[self._key_of(record)] = copy.deepcopy(record)

    def _key_of(self, record: Mapping[str, Any]) -> str:
        key = record.get(self.key_field)
        if key is None:
            raise ValidationError([f"Record is missing key field '{self.key_field}'"])
        return str(key)

    def __len__(self) -> int:
        return len(self._records)

    async def find(self, key: str) -> Optional[Record]:
        record = self._records.get(str(key))
        return copy.deepcopy(record) if record is not None else None

    async def list(self, filters: Optional[Mapping[str, Any]] = None) -> list[Record]:
        return [
            copy.deepcopy(record)
            for record in self._records.values()
            if matches(record, filters)
        ]

    async def mutate(self, key: str, change: Mutation) -> Optional[Record]:
        async with self._lock:
            current = self._records.get(key)
            updated = change(copy.deepcopy(current) if current is not None else None)

            if updated is None:
                self._records.pop(key, None)
                return None

            if self._key_of(updated) != key:
                raise ValidationError([f"Mutation must not change key field '{self.key_field}'"])

            self._records[key] = copy.deepcopy(updated)
            return copy.deepcopy(updated)
