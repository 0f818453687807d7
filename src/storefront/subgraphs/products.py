"""
Products subgraph - owns the catalog.

Entities:
- Product, keyed by ``id`` or by ``upc`` (the upc equals the id)
- Variant, keyed by ``id``

Queries: product(id), variant(id), searchProducts(titleStartsWith),
searchVariants(sizeStartsWith).
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..core.context import RequestContext
from ..core.defs import Record
from ..service.subgraph import Subgraph
from ..store.base import Repository


PRODUCT_SCALARS = ["id", "title", "description", "mediaUrl"]
VARIANT_SCALARS = ["id", "colorway", "price", "size", "dimensions", "weight"]

# releaseDate lands within this many days of today
RELEASE_WINDOW_DAYS = 10


class ProductsSubgraph(Subgraph):
    """
    Usage:
        subgraph = ProductsSubgraph(products_repository, variants_repository)
        product = await subgraph.get_product("product:1")
    """

    name = "products"
    collections = ("products", "variants")

    def __init__(
        self,
        products: Repository,
        variants: Repository,
        rng: Optional[random.Random] = None,
    ):
        super().__init__()
        self.products = products
        self.variants = variants
        self.rng = rng or random.Random()

        product = self.entity(
            "Product",
            keys=[["id"], ["upc"]],
            scalars=PRODUCT_SCALARS,
            resolve_reference=self.resolve_product_reference,
        )
        product.add_field("upc", self.product_upc)
        product.add_field("variants", self.product_variants, arguments={"sizeStartsWith": str})
        product.add_field("releaseDate", self.product_release_date)

        variant = self.entity(
            "Variant",
            keys=[["id"]],
            scalars=VARIANT_SCALARS,
            resolve_reference=self.resolve_variant_reference,
        )
        variant.add_field("product", self.variant_product)

        self.query("product", self.query_product, arguments={"id": str}, required=["id"])
        self.query("variant", self.query_variant, arguments={"id": str}, required=["id"])
        self.query("searchProducts", self.search_products, arguments={"titleStartsWith": str})
        self.query("searchVariants", self.search_variants, arguments={"sizeStartsWith": str})

    @classmethod
    def from_repositories(cls, repositories: dict[str, Repository], **options: Any) -> "ProductsSubgraph":
        return cls(repositories["products"], repositories["variants"], **options)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_product(self, product_id: str) -> Optional[Record]:
        return await self.products.find(product_id)

    async def get_variant(self, variant_id: str) -> Optional[Record]:
        return await self.variants.find(variant_id)

    async def resolve_product_reference(self, ref: Record, ctx: RequestContext) -> Optional[Record]:
        return await self.get_product(ref.get("id") or ref["upc"])

    async def resolve_variant_reference(self, ref: Record, ctx: RequestContext) -> Optional[Record]:
        return await self.get_variant(ref["id"])

    # ------------------------------------------------------------------
    # Product fields
    # ------------------------------------------------------------------

    async def product_upc(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> Optional[str]:
        return parent.get("id") or parent.get("upc")

    async def product_variants(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> list[Record]:
        product = parent if "variants" in parent else await self.get_product(parent.get("id") or parent["upc"])
        if product is None:
            return []

        ids = [ref["id"] for ref in product.get("variants") or []]
        filters: dict[str, Any] = {"id__in": ids}
        if args.get("sizeStartsWith"):
            filters["size__startswith"] = args["sizeStartsWith"]

        variants = await self.variants.list(filters)
        variants.sort(key=lambda v: ids.index(v["id"]))
        return self.project("Variant", variants)

    async def product_release_date(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> str:
        days = self.rng.randrange(-RELEASE_WINDOW_DAYS, RELEASE_WINDOW_DAYS)
        return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()

    # ------------------------------------------------------------------
    # Variant fields
    # ------------------------------------------------------------------

    async def variant_product(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        variant = parent if parent.get("product") else await self.get_variant(parent["id"])
        if variant is None or not variant.get("product"):
            return None
        product = await self.get_product(variant["product"]["id"])
        return self.project("Product", product)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query_product(self, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        return await self.materialize("Product", await self.get_product(args["id"]), ctx)

    async def query_variant(self, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        return await self.materialize("Variant", await self.get_variant(args["id"]), ctx)

    async def search_products(self, args: dict[str, Any], ctx: RequestContext) -> list[Record]:
        filters = {}
        if args.get("titleStartsWith"):
            filters["title__startswith"] = args["titleStartsWith"]
        return await self.materialize("Product", await self.products.list(filters), ctx)

    async def search_variants(self, args: dict[str, Any], ctx: RequestContext) -> list[Record]:
        filters = {}
        if args.get("sizeStartsWith"):
            filters["size__startswith"] = args["sizeStartsWith"]
        return await self.materialize("Variant", await self.variants.list(filters), ctx)
