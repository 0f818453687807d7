"""
Reviews subgraph - owns Review and extends Product (keyed by upc) with its reviews.
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.context import RequestContext
from ..core.defs import Record
from ..core.registry import stub
from ..service.subgraph import Subgraph
from ..store.base import Repository


class ReviewsSubgraph(Subgraph):
    name = "reviews"
    collections = ("reviews",)

    def __init__(self, reviews: Repository):
        super().__init__()
        self.reviews = reviews

        review = self.entity(
            "Review",
            keys=[["id"]],
            scalars=["id", "body", "author"],
            resolve_reference=self.resolve_review_reference,
        )
        review.add_field("user", self.review_user)
        review.add_field("product", self.review_product)

        product = self.entity("Product", keys=[["upc"]])
        product.add_field("reviews", self.product_reviews)

        self.query("review", self.query_review, arguments={"id": str}, required=["id"])

    @classmethod
    def from_repositories(cls, repositories: dict[str, Repository], **options: Any) -> "ReviewsSubgraph":
        return cls(repositories["reviews"])

    async def resolve_review_reference(self, ref: Record, ctx: RequestContext) -> Optional[Record]:
        return await self.reviews.find(ref["id"])

    async def review_user(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        user = parent.get("user")
        return stub("User", id=user["id"]) if user else None

    async def review_product(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        product = parent.get("product")
        return stub("Product", upc=product["upc"]) if product else None

    async def product_reviews(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> list[Record]:
        reviews = await self.reviews.list({"product.upc": parent["upc"]})
        return await self.materialize("Review", reviews, ctx)

    async def query_review(self, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        return await self.materialize("Review", await self.reviews.find(args["id"]), ctx)
