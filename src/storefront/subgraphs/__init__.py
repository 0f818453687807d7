"""
Subgraphs module - the storefront's resolver sets, one per service.

Provides:
- One ``Subgraph`` subclass per service
- SUBGRAPHS: service name -> subgraph class
"""

from __future__ import annotations

from .checkout import CheckoutSubgraph
from .discovery import DiscoverySubgraph
from .inventory import InventorySubgraph
from .orders import OrdersSubgraph
from .products import ProductsSubgraph
from .reviews import ReviewsSubgraph
from .shipping import ShippingSubgraph
from .users import UsersSubgraph, jwks_router

SUBGRAPHS = {
    cls.name: cls
    for cls in (
        ProductsSubgraph,
        InventorySubgraph,
        ReviewsSubgraph,
        ShippingSubgraph,
        CheckoutSubgraph,
        OrdersSubgraph,
        UsersSubgraph,
        DiscoverySubgraph,
    )
}

__all__ = [
    "SUBGRAPHS",
    "ProductsSubgraph",
    "InventorySubgraph",
    "ReviewsSubgraph",
    "ShippingSubgraph",
    "CheckoutSubgraph",
    "OrdersSubgraph",
    "UsersSubgraph",
    "DiscoverySubgraph",
    "jwks_router",
]
