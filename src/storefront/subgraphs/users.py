"""
Users subgraph - owns User, issues tokens and publishes the verification keys.

Email redaction: ``User.email`` is only returned to the user themself or to a
caller holding the ``user:read:email`` scope. Everyone else gets the user
without the field. This holds for anonymous callers too, and on every path
that returns a User (``user``, ``me``, ``login`` and reference resolution),
not only when a token is present on the ``user`` query.
"""

from __future__ import annotations

import logging
import random
import uuid
from typing import Any, Optional

from fastapi import APIRouter

from ..auth.identity import IdentityContext
from ..auth.provider import IdentityProvider, LoginFailed
from ..core.context import RequestContext
from ..core.defs import Record
from ..core.errors import NotFoundError
from ..core.registry import stub
from ..service.subgraph import Subgraph
from ..store.base import Repository

logger = logging.getLogger(__name__)


READ_EMAIL_SCOPE = "user:read:email"
JWKS_PATH = "/.well-known/jwks.json"

USER_SCALARS = ["id", "username", "email", "shippingAddress"]
MAX_LOYALTY_POINTS = 20
PREVIOUS_SESSIONS = 2


def can_read_email(user: Record, ctx: RequestContext) -> bool:
    if ctx.is_authenticated and ctx.identity.subject == user["id"]:
        return True
    return ctx.has_scope(READ_EMAIL_SCOPE)


def redact(user: Record, ctx: RequestContext) -> Record:
    """Drop fields the caller may not see."""
    if not can_read_email(user, ctx):
        user.pop("email", None)
    return user


class UsersSubgraph(Subgraph):
    """
    Usage:
        provider = IdentityProvider(users_repository, SigningKey.generate())
        subgraph = UsersSubgraph(users_repository, provider)
        app = create_subgraph_app(subgraph, routers=[jwks_router(provider)])
    """

    name = "users"
    collections = ("users",)

    def __init__(
        self,
        users: Repository,
        provider: IdentityProvider,
        rng: Optional[random.Random] = None,
    ):
        super().__init__()
        self.users = users
        self.provider = provider
        self.rng = rng or random.Random()

        user = self.entity(
            "User",
            keys=[["id"]],
            scalars=USER_SCALARS,
            resolve_reference=self.resolve_user_reference,
        )
        user.add_field("paymentMethods", self.user_payment_methods)
        user.add_field("orders", self.user_orders)
        user.add_field("previousSessions", self.user_previous_sessions)
        user.add_field("loyaltyPoints", self.user_loyalty_points)

        self.query("user", self.query_user, arguments={"id": str}, required=["id"])
        self.query("me", self.query_me)
        self.mutation(
            "login",
            self.login,
            arguments={"username": str, "password": str, "scopes": list[str]},
            required=["username", "password"],
        )

    @classmethod
    def from_repositories(cls, repositories: dict[str, Repository], **options: Any) -> "UsersSubgraph":
        return cls(repositories["users"], **options)

    async def get_user(self, user_id: str, ctx: RequestContext) -> Optional[Record]:
        user = await self.users.find(user_id)
        return redact(user, ctx) if user is not None else None

    async def resolve_user_reference(self, ref: Record, ctx: RequestContext) -> Optional[Record]:
        return await self.get_user(ref["id"], ctx)

    # ------------------------------------------------------------------
    # User fields
    # ------------------------------------------------------------------

    async def user_payment_methods(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> list[Record]:
        return [
            {"__typename": "PaymentMethod", **method}
            for method in parent.get("paymentMethods") or []
        ]

    async def user_orders(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> list[Record]:
        return [stub("Order", id=order["id"]) for order in parent.get("orders") or []]

    async def user_previous_sessions(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> list[str]:
        return [str(uuid.UUID(int=self.rng.getrandbits(128), version=4)) for _ in range(PREVIOUS_SESSIONS)]

    async def user_loyalty_points(self, parent: Record, args: dict[str, Any], ctx: RequestContext) -> int:
        return self.rng.randrange(MAX_LOYALTY_POINTS)

    # ------------------------------------------------------------------
    # Queries and mutations
    # ------------------------------------------------------------------

    async def query_user(self, args: dict[str, Any], ctx: RequestContext) -> Record:
        user = await self.get_user(args["id"], ctx)
        if user is None:
            raise NotFoundError("Could not locate user by provided id")
        return await self.materialize("User", user, ctx)

    async def query_me(self, args: dict[str, Any], ctx: RequestContext) -> Optional[Record]:
        if not ctx.is_authenticated:
            return None
        return await self.materialize("User", await self.get_user(ctx.identity.subject, ctx), ctx)

    async def login(self, args: dict[str, Any], ctx: RequestContext) -> Record:
        scopes = args.get("scopes") or []
        outcome = await self.provider.login(args["username"], args["password"], scopes)
        if isinstance(outcome, LoginFailed):
            return {"__typename": outcome.typename, "reason": outcome.reason}

        # The caller is now the user they logged in as
        as_user = RequestContext(
            identity=IdentityContext(subject=outcome.user["id"], scopes=frozenset(outcome.scopes)),
            headers=ctx.headers,
        )
        return {
            "__typename": outcome.typename,
            "token": outcome.token,
            "scopes": outcome.scopes,
            "user": await self.materialize("User", redact(outcome.user, as_user), as_user),
        }


def jwks_router(provider: IdentityProvider) -> APIRouter:
    """Route publishing the provider's public keys."""
    router = APIRouter(tags=["auth"])

    @router.get(JWKS_PATH)
    async def jwks():
        return provider.get_jwks()

    return router
