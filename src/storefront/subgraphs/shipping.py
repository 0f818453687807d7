"""
Shipping subgraph - computes Order.shippingCost.

The cost needs data owned elsewhere (item weights from products, the buyer's
address from users), so Order declares those as required fields; the router
includes them in every reference it sends here.
"""

from __future__ import annotations

import random
from typing import Any, Optional

from ..core.context import RequestContext
from ..core.defs import Record
from ..core.errors import ValidationError
from ..service.subgraph import Subgraph
from ..store.base import Repository

# Added on top of the computed cost, exclusive upper bound
MAX_JITTER = 10


def cost_to_ship(weight: float, address: str) -> float:
    """Stand-in for a carrier rate lookup: weight times address length."""
    return weight * len(address)


class ShippingSubgraph(Subgraph):
    name = "shipping"
    collections = ()

    def __init__(self, rng: Optional[random.Random] = None):
        super().__init__()
        self.rng = rng or random.Random()

        order = self.entity("Order", keys=[["id"]], requires=["items", "buyer"])
        order.add_field("shippingCost", self.order_shipping_cost)

    @classmethod
    def from_repositories(cls, repositories: dict[str, Repository], **options: Any) -> "ShippingSubgraph":
        return cls(**options)

    async def order_shipping_cost(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> float:
        buyer = parent["buyer"]
        address = buyer.get("shippingAddress") if isinstance(buyer, dict) else None
        if not isinstance(address, str):
            raise ValidationError([f"Order '{parent['id']}' reference is missing 'buyer.shippingAddress'"])

        total = 0.0
        for index, item in enumerate(parent["items"]):
            weight = item.get("weight") if isinstance(item, dict) else None
            if weight is None:
                raise ValidationError([f"Order '{parent['id']}' reference is missing 'items[{index}].weight'"])
            total += cost_to_ship(float(weight), address)

        return total + self.rng.randrange(MAX_JITTER)
