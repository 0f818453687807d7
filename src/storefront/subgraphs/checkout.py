"""
Checkout subgraph - carts and the checkout flow.

Extends User with ``cart``. Mutations act on the caller's cart: the token
subject, else the ``x-user-id`` header.

Cart mutations only touch this service's store. Placing an order does not
reserve inventory or notify the orders service, so a checkout that succeeds
here is not visible elsewhere until those services catch up.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from ..core.context import RequestContext
from ..core.defs import Record
from ..core.errors import ValidationError
from ..service.subgraph import Subgraph
from ..store.base import Repository

logger = logging.getLogger(__name__)


NOT_LOGGED_IN = "Not logged in"
EMPTY_CART = "Cart is empty"


def result(successful: bool, message: Optional[str] = None, **extra: Any) -> Record:
    """Mutation result shape shared by every cart mutation."""
    return {"successful": successful, "message": message, **extra}


def subtotal(items: list[Record]) -> float:
    return round(sum(float(item.get("price") or 0) * int(item.get("quantity") or 1) for item in items), 2)


class CheckoutSubgraph(Subgraph):
    """
    Usage:
        subgraph = CheckoutSubgraph(carts_repository, prices_repository)
        await subgraph.add_variant_to_cart(
            {"variantId": "variant:3", "quantity": 1},
            RequestContext.from_headers({"x-user-id": "user:1"}),
        )
    """

    name = "checkout"
    collections = ("carts", "prices")

    def __init__(self, carts: Repository, prices: Repository):
        super().__init__()
        self.carts = carts
        self.prices = prices

        user = self.entity("User", keys=[["id"]])
        user.add_field("cart", self.user_cart)

        self.mutation(
            "addVariantToCart",
            self.add_variant_to_cart,
            arguments={"variantId": str, "quantity": int},
            required=["variantId"],
        )
        self.mutation(
            "removeVariantFromCart",
            self.remove_variant_from_cart,
            arguments={"variantId": str, "quantity": int},
            required=["variantId"],
        )
        self.mutation(
            "checkout",
            self.checkout,
            arguments={"paymentMethodId": str},
            required=["paymentMethodId"],
        )

    @classmethod
    def from_repositories(cls, repositories: dict[str, Repository], **options: Any) -> "CheckoutSubgraph":
        return cls(repositories["carts"], repositories["prices"])

    async def get_cart(self, user_id: str) -> Optional[Record]:
        cart = await self.carts.find(user_id)
        if cart is None:
            return None
        items = cart.get("items") or []
        return {
            "__typename": "Cart",
            "userId": user_id,
            "items": items,
            "subtotal": subtotal(items),
        }

    async def user_cart(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        return await self.get_cart(parent["id"])

    @staticmethod
    def _quantity(args: dict[str, Any]) -> int:
        quantity = args.get("quantity")
        if quantity is None:
            return 1
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError([f"quantity must be a positive integer, got {quantity!r}"])
        return quantity

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_variant_to_cart(self, args: dict[str, Any], ctx: RequestContext) -> Record:
        quantity = self._quantity(args)
        user_id = ctx.user_id
        if user_id is None:
            return result(False, NOT_LOGGED_IN)

        variant_id = args["variantId"]
        price = await self.prices.find(variant_id)
        if price is None:
            return result(False, f"Variant '{variant_id}' not found")

        def add(cart: Optional[Record]) -> Record:
            cart = cart or {"userId": user_id, "items": []}
            items = cart.setdefault("items", [])
            for item in items:
                if item["id"] == variant_id:
                    item["quantity"] = int(item.get("quantity") or 1) + quantity
                    break
            else:
                items.append({"id": variant_id, "price": price["price"], "quantity": quantity})
            return cart

        await self.carts.mutate(user_id, add)
        logger.info(f"Added {quantity} x {variant_id} to cart of {user_id}")
        return result(True, "Added variant to cart")

    async def remove_variant_from_cart(self, args: dict[str, Any], ctx: RequestContext) -> Record:
        quantity = self._quantity(args)
        user_id = ctx.user_id
        if user_id is None:
            return result(False, NOT_LOGGED_IN)

        variant_id = args["variantId"]
        removed = False

        def remove(cart: Optional[Record]) -> Optional[Record]:
            nonlocal removed
            if cart is None:
                return None
            items = []
            for item in cart.get("items") or []:
                if item["id"] == variant_id and not removed:
                    removed = True
                    remaining = int(item.get("quantity") or 1) - quantity
                    if remaining > 0:
                        items.append({**item, "quantity": remaining})
                else:
                    items.append(item)
            cart["items"] = items
            return cart

        await self.carts.mutate(user_id, remove)
        if not removed:
            return result(False, f"Variant '{variant_id}' is not in the cart")

        logger.info(f"Removed {quantity} x {variant_id} from cart of {user_id}")
        return result(True, "Removed variant from cart")

    async def checkout(self, args: dict[str, Any], ctx: RequestContext) -> Record:
        user_id = ctx.user_id
        if user_id is None:
            return result(False, NOT_LOGGED_IN, orderID=None)

        order_id = f"order:{uuid.uuid4()}"
        placed: Optional[Record] = None

        def empty(cart: Optional[Record]) -> Optional[Record]:
            nonlocal placed
            if cart is None or not cart.get("items"):
                return cart
            placed = {"id": order_id, "items": cart["items"], "paymentMethodId": args["paymentMethodId"]}
            cart["items"] = []
            return cart

        await self.carts.mutate(user_id, empty)
        if placed is None:
            return result(False, EMPTY_CART, orderID=None)

        logger.info(
            f"Checked out {len(placed['items'])} item(s) for {user_id} as {order_id} "
            f"(subtotal {subtotal(placed['items'])})"
        )
        return result(True, orderID=order_id)
