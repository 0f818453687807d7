"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import random

import pytest

# Keep developer environment out of the tests
for _name in ("JWKS_URL", "REQUIRE_AUTH", "DATABASE_URL", "PRIVATE_KEY_PATH", "PORT"):
    os.environ.pop(_name, None)
os.environ.setdefault("LOG_LEVEL", "WARNING")

from storefront.auth.identity import IdentityContext  # noqa: E402
from storefront.auth.keys import SigningKey  # noqa: E402
from storefront.auth.provider import IdentityProvider  # noqa: E402
from storefront.auth.tokens import StaticKeySet, TokenIssuer, TokenVerifier  # noqa: E402
from storefront.core.context import RequestContext  # noqa: E402
from storefront.store.fixtures import memory_repositories  # noqa: E402


@pytest.fixture(scope="session")
def signing_key() -> SigningKey:
    return SigningKey.generate()


@pytest.fixture
def issuer(signing_key) -> TokenIssuer:
    return TokenIssuer(signing_key)


@pytest.fixture
def verifier(signing_key) -> TokenVerifier:
    return TokenVerifier(StaticKeySet(signing_key.jwks()))


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def anonymous() -> RequestContext:
    return RequestContext()


@pytest.fixture
def as_user():
    """Factory for the context of an authenticated caller."""

    def make(user_id: str, *scopes: str) -> RequestContext:
        return RequestContext(identity=IdentityContext(subject=user_id, scopes=frozenset(scopes)))

    return make


@pytest.fixture
def users_repositories():
    return memory_repositories("users")


@pytest.fixture
def provider(users_repositories, signing_key) -> IdentityProvider:
    return IdentityProvider(users_repositories["users"], signing_key)
