"""
Token issuance and verification (ES256 JWTs).

Issuance needs the private signing key (users service only). Verification
needs only the public keyset, obtained from a ``KeySetSource``: a static set
inside the users service, or a ``JWKSCache`` everywhere else.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional, Protocol, Union

import jwt

from .identity import FailureKind, IdentityContext, VerificationFailure
from .keys import ALGORITHM, SigningKey

logger = logging.getLogger(__name__)


TOKEN_TTL = timedelta(hours=2)

VerificationResult = Union[IdentityContext, VerificationFailure]


class KeySetSource(Protocol):
    """Anything that can hand out the current JSON Web Key Set."""

    async def get(self) -> dict[str, Any]:
        ...


class StaticKeySet:
    """Fixed keyset, for verifiers that live next to the issuer."""

    def __init__(self, keyset: dict[str, Any]):
        self.keyset = keyset

    async def get(self) -> dict[str, Any]:
        return self.keyset


class TokenIssuer:
    """
    Signs identity claims.

    Claims: ``sub`` (user id), ``scope`` (space-delimited), ``username``,
    ``iat`` and ``exp`` (issuance + ttl).
    """

    def __init__(self, signing_key: SigningKey, ttl: timedelta = TOKEN_TTL):
        self.signing_key = signing_key
        self.ttl = ttl

    def issue(
        self,
        subject: str,
        username: str,
        scopes: Iterable[str] = (),
        now: Optional[datetime] = None,
    ) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": subject,
            "scope": " ".join(scopes),
            "username": username,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(
            claims,
            self.signing_key.private_key,
            algorithm=ALGORITHM,
            headers={"kid": self.signing_key.kid},
        )


class TokenVerifier:
    """
    Verifies bearer tokens against a keyset.

    Verification failures are returned, not raised: an invalid token just
    means "no identity". Errors from the key source itself (e.g.
    ``JWKSFetchError``) propagate, since they are not the caller's fault.

    Usage:
        verifier = TokenVerifier(JWKSCache("http://users:4001/.well-known/jwks.json"))
        result = await verifier.verify(token)
        if isinstance(result, IdentityContext):
            ...
    """

    def __init__(
        self,
        keys: KeySetSource,
        algorithms: Iterable[str] = (ALGORITHM,),
        leeway: float = 0,
    ):
        self.keys = keys
        self.algorithms = list(algorithms)
        self.leeway = leeway
        self._parsed: Optional[tuple[dict[str, Any], Optional[jwt.PyJWKSet]]] = None

    def _keyset(self, keyset: dict[str, Any]) -> Optional[jwt.PyJWKSet]:
        # The cache hands out the same dict until it refreshes
        if self._parsed is not None and self._parsed[0] is keyset:
            return self._parsed[1]
        try:
            parsed: Optional[jwt.PyJWKSet] = jwt.PyJWKSet.from_dict(keyset)
        except (jwt.PyJWKSetError, jwt.PyJWKError, jwt.InvalidKeyError) as e:
            logger.warning(f"Keyset has no usable keys: {e}")
            parsed = None
        self._parsed = (keyset, parsed)
        return parsed

    async def _find_key(self, kid: Optional[str]) -> Any:
        keyset = self._keyset(await self.keys.get())
        if keyset is None:
            return None
        for key in keyset.keys:
            if kid is None or key.key_id == kid:
                return key.key
        return None

    async def verify(self, token: str) -> VerificationResult:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            return VerificationFailure(FailureKind.MALFORMED, str(e))

        key = await self._find_key(header.get("kid"))
        if key is None:
            return VerificationFailure(
                FailureKind.KEY_NOT_FOUND,
                f"No verification key for kid '{header.get('kid')}'",
            )

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                leeway=self.leeway,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            return VerificationFailure(FailureKind.EXPIRED, str(e))
        except jwt.InvalidSignatureError as e:
            return VerificationFailure(FailureKind.SIGNATURE_MISMATCH, str(e))
        except jwt.InvalidTokenError as e:
            return VerificationFailure(FailureKind.MALFORMED, str(e))

        return IdentityContext.from_claims(claims)
