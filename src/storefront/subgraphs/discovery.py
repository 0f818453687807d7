"""
Discovery subgraph - product recommendations.

Recommendations are a random sample of the known products, never including
the product the recommendation is for.
"""

from __future__ import annotations

import random
from typing import Any, Optional

from ..core.context import RequestContext
from ..core.defs import Record
from ..core.registry import stub
from ..service.subgraph import Subgraph
from ..store.base import Repository

# Chance that each candidate product is recommended
SAMPLE_RATE = 0.7


class DiscoverySubgraph(Subgraph):
    name = "discovery"
    collections = ("products",)

    def __init__(self, products: Repository, rng: Optional[random.Random] = None):
        super().__init__()
        self.products = products
        self.rng = rng or random.Random()

        user = self.entity("User", keys=[["id"]])
        user.add_field("recommendedProducts", self.user_recommended_products, arguments={"productId": str})

        product = self.entity("Product", keys=[["id"]])
        product.add_field("recommendedProducts", self.product_recommended_products)

    @classmethod
    def from_repositories(cls, repositories: dict[str, Repository], **options: Any) -> "DiscoverySubgraph":
        return cls(repositories["products"], **options)

    async def recommend(self, exclude_id: Optional[str]) -> list[Record]:
        candidates = await self.products.list({"id__ne": exclude_id} if exclude_id else None)
        return [
            stub("Product", id=product["id"])
            for product in candidates
            if self.rng.random() < SAMPLE_RATE
        ]

    async def user_recommended_products(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> list[Record]:
        return await self.recommend(args.get("productId"))

    async def product_recommended_products(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> list[Record]:
        return await self.recommend(parent["id"])
