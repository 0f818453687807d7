"""
Application assembly from settings.

Wires each service's subgraph to its storage (in-memory fixtures, or SQL when
``DATABASE_URL`` is set), the token verifier (JWKS cache when ``JWKS_URL`` is
set) and, for the users service, the identity provider.

Usage:
    from storefront.apps import build_app

    app = build_app("inventory")
    uvicorn.run(app, port=4003)
"""

from __future__ import annotations

import logging
import random
from datetime import timedelta
from typing import Any, Callable, Optional

from fastapi import FastAPI

from .auth.jwks_cache import JWKSCache
from .auth.keys import SigningKey
from .auth.provider import IdentityProvider
from .auth.tokens import TokenVerifier
from .coprocessor.app import create_coprocessor_app
from .core.errors import ConfigError
from .core.settings import Settings, get_settings
from .service.app import create_subgraph_app
from .store.base import Repository
from .store.database import close_db, create_engine, create_session_maker, init_db
from .store.fixtures import memory_repositories, seed_repositories, sql_repositories
from .subgraphs import SUBGRAPHS, UsersSubgraph, jwks_router

logger = logging.getLogger(__name__)


COPROCESSOR = "coprocessor"


def available_services() -> list[str]:
    return [*SUBGRAPHS, COPROCESSOR]


def build_jwks_cache(settings: Settings) -> Optional[JWKSCache]:
    if not settings.jwks_url:
        return None
    return JWKSCache(
        settings.jwks_url,
        ttl=settings.jwks_ttl_seconds,
        timeout=settings.jwks_fetch_timeout,
    )


def build_repositories(
    service: str,
    collections: tuple[str, ...],
    settings: Settings,
) -> tuple[dict[str, Repository], Optional[Callable], Optional[Callable]]:
    """
    Storage for one service.

    Returns:
        (repositories, startup hook, shutdown hook); hooks are None for the
        in-memory store.
    """
    if not settings.database_url:
        return memory_repositories(service), None, None

    engine = create_engine(settings.database_url)
    repositories = sql_repositories(service, create_session_maker(engine), collections)

    async def startup():
        await init_db(engine)
        await seed_repositories(service, repositories)

    async def shutdown():
        await close_db(engine)

    logger.info(f"Service '{service}' stores {', '.join(collections) or 'nothing'} in the database")
    return dict(repositories), startup, shutdown


def _chain(*hooks: Optional[Callable]) -> Optional[Callable]:
    hooks = tuple(h for h in hooks if h is not None)
    if not hooks:
        return None

    async def run():
        for hook in hooks:
            await hook()

    return run


def build_subgraph_app(
    service: str,
    settings: Optional[Settings] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """Assemble a subgraph service app."""
    settings = settings or get_settings()
    cls = SUBGRAPHS.get(service)
    if cls is None:
        raise ConfigError(f"Unknown service '{service}'. Available: {', '.join(available_services())}")

    repositories, startup, shutdown = build_repositories(service, cls.collections, settings)
    cache = build_jwks_cache(settings)
    verifier = TokenVerifier(cache) if cache is not None else None

    options: dict[str, Any] = {}
    if rng is not None and service in ("products", "shipping", "users", "discovery"):
        options["rng"] = rng

    routers = []
    if cls is UsersSubgraph:
        provider = IdentityProvider(
            repositories["users"],
            SigningKey.from_settings(settings.private_key_path, settings.key_id),
            token_ttl=timedelta(seconds=settings.token_ttl_seconds),
        )
        options["provider"] = provider
        routers.append(jwks_router(provider))
        # The issuer can verify its own tokens without a network round trip
        if verifier is None:
            verifier = provider.verifier()

    if verifier is None and settings.require_auth:
        raise ConfigError("REQUIRE_AUTH is set but JWKS_URL is not")

    subgraph = cls.from_repositories(repositories, **options)
    return create_subgraph_app(
        subgraph,
        verifier=verifier,
        on_startup=startup,
        on_shutdown=_chain(shutdown, cache.close if cache is not None else None),
        routers=routers,
    )


def build_coprocessor_app(settings: Optional[Settings] = None) -> FastAPI:
    """Assemble the coprocessor app; the RouterRequest gate is on when JWKS_URL is set."""
    settings = settings or get_settings()
    cache = build_jwks_cache(settings)
    if cache is None and settings.require_auth:
        raise ConfigError("REQUIRE_AUTH is set but JWKS_URL is not")

    return create_coprocessor_app(
        verifier=TokenVerifier(cache) if cache is not None else None,
        handler_timeout=settings.handler_timeout,
        on_shutdown=cache.close if cache is not None else None,
    )


def build_app(service: str, settings: Optional[Settings] = None) -> FastAPI:
    if service == COPROCESSOR:
        return build_coprocessor_app(settings)
    return build_subgraph_app(service, settings)
