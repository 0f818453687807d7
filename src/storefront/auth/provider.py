"""
Identity provider: login, token issuance and the published keyset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, Optional, Union

from ..store.base import Record, Repository
from .keys import SigningKey
from .tokens import TOKEN_TTL, StaticKeySet, TokenIssuer, TokenVerifier, VerificationResult

logger = logging.getLogger(__name__)


USER_NOT_FOUND = "user not found"


@dataclass
class LoginSuccessful:
    token: str
    scopes: list[str]
    user: Record = field(repr=False)

    typename = "LoginSuccessful"


@dataclass
class LoginFailed:
    reason: str

    typename = "LoginFailed"


LoginResult = Union[LoginSuccessful, LoginFailed]


class IdentityProvider:
    """
    Issues tokens for known users and publishes the verification keys.

    Trust model is a demo one: any non-empty password is accepted for an
    existing username. An empty password is reported exactly like an unknown
    user.

    Usage:
        provider = IdentityProvider(users_repository, SigningKey.generate())
        result = await provider.login("user1", "pw", ["user:read:email"])
    """

    def __init__(
        self,
        users: Repository,
        signing_key: SigningKey,
        token_ttl: timedelta = TOKEN_TTL,
    ):
        self.users = users
        self.signing_key = signing_key
        self.issuer = TokenIssuer(signing_key, ttl=token_ttl)
        self._verifier: Optional[TokenVerifier] = None

    async def find_by_username(self, username: str) -> Optional[Record]:
        matches = await self.users.list({"username": username})
        return matches[0] if matches else None

    async def login(self, username: str, password: str, scopes: Iterable[str] = ()) -> LoginResult:
        user = await self.find_by_username(username)
        if user is None or password == "":
            logger.info(f"Login rejected for '{username}'")
            return LoginFailed(reason=USER_NOT_FOUND)

        scopes = list(scopes)
        token = self.issuer.issue(subject=user["id"], username=username, scopes=scopes)
        logger.info(f"Issued token for {user['id']} with scopes {scopes}")
        return LoginSuccessful(token=token, scopes=scopes, user=user)

    def get_jwks(self) -> dict[str, Any]:
        """Public keyset served at ``/.well-known/jwks.json``."""
        return self.signing_key.jwks()

    def verifier(self) -> TokenVerifier:
        """Verifier over this provider's own keys (no network)."""
        if self._verifier is None:
            self._verifier = TokenVerifier(StaticKeySet(self.get_jwks()))
        return self._verifier

    async def verify(self, token: str) -> VerificationResult:
        return await self.verifier().verify(token)
