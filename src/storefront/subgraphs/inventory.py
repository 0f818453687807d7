"""
Inventory subgraph - extends Variant with stock levels.
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.context import RequestContext
from ..core.defs import Record
from ..service.subgraph import Subgraph
from ..store.base import Repository


class InventorySubgraph(Subgraph):
    """
    Variant is owned by products; this service only knows stock per variant id.

    Variants without a stock record resolve ``inventory`` to None.
    """

    name = "inventory"
    collections = ("inventory",)

    def __init__(self, inventory: Repository):
        super().__init__()
        self.inventory = inventory

        variant = self.entity("Variant", keys=[["id"]])
        variant.add_field("inventory", self.variant_inventory)

    @classmethod
    def from_repositories(cls, repositories: dict[str, Repository], **options: Any) -> "InventorySubgraph":
        return cls(repositories["inventory"])

    async def variant_inventory(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        stock = await self.inventory.find(parent["id"])
        if stock is None:
            return None

        count = int(stock.get("inventory") or 0)
        return {
            "inStock": count > 0,
            "inventory": count,
        }
