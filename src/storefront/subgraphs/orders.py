"""
Orders subgraph - owns Order; buyer and items are references to other services.
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.context import RequestContext
from ..core.defs import Record
from ..core.registry import stub
from ..service.subgraph import Subgraph
from ..store.base import Repository


class OrdersSubgraph(Subgraph):
    name = "orders"
    collections = ("orders",)

    def __init__(self, orders: Repository):
        super().__init__()
        self.orders = orders

        order = self.entity(
            "Order",
            keys=[["id"]],
            scalars=["id"],
            resolve_reference=self.resolve_order_reference,
        )
        order.add_field("buyer", self.order_buyer)
        order.add_field("items", self.order_items)

        self.query("order", self.query_order, arguments={"id": str}, required=["id"])

    @classmethod
    def from_repositories(cls, repositories: dict[str, Repository], **options: Any) -> "OrdersSubgraph":
        return cls(repositories["orders"])

    async def resolve_order_reference(self, ref: Record, ctx: RequestContext) -> Optional[Record]:
        return await self.orders.find(ref["id"])

    async def order_buyer(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        buyer = parent.get("buyer")
        return stub("User", id=buyer["id"]) if buyer else None

    async def order_items(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> list[Record]:
        return [stub("Variant", id=item["id"]) for item in parent.get("items") or []]

    async def query_order(self, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        return await self.materialize("Order", await self.orders.find(args["id"]), ctx)
