"""
Identity derived from a verified bearer token.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


AUTHORIZATION_HEADER = "authorization"
BEARER = "Bearer"


class FailureKind(str, enum.Enum):
    """Why a token did not produce an identity."""
    MALFORMED = "malformed"
    EXPIRED = "expired"
    SIGNATURE_MISMATCH = "signature_mismatch"
    KEY_NOT_FOUND = "key_not_found"


@dataclass(frozen=True)
class VerificationFailure:
    """A token that failed verification. Callers treat it as unauthenticated."""
    kind: FailureKind
    message: str = ""


@dataclass(frozen=True)
class IdentityContext:
    """
    Authenticated caller.

    - subject: user id from the ``sub`` claim
    - scopes: scope tokens from the space-delimited ``scope`` claim
    """
    subject: str
    scopes: frozenset[str] = frozenset()
    username: Optional[str] = None
    claims: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "IdentityContext":
        return cls(
            subject=str(claims["sub"]),
            scopes=parse_scopes(claims.get("scope")),
            username=claims.get("username"),
            claims=dict(claims),
        )

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes


def parse_scopes(scope: Optional[str]) -> frozenset[str]:
    """``"a b"`` -> ``{"a", "b"}``; empty or missing -> empty set."""
    if not scope:
        return frozenset()
    return frozenset(scope.split())


def extract_bearer_token(headers: Mapping[str, Any]) -> Optional[str]:
    """
    Return the token from an ``Authorization: Bearer <token>`` header.

    Header names are matched case-insensitively. Values may be plain strings
    (HTTP requests) or lists of strings (router stage payloads); the first
    value is used.
    """
    value = None
    for name, raw in headers.items():
        if name.lower() == AUTHORIZATION_HEADER:
            value = raw
            break

    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if not isinstance(value, str):
        return None

    parts = value.strip().split(None, 1)
    if len(parts) != 2 or parts[0] != BEARER:
        return None
    token = parts[1].strip()
    return token or None
