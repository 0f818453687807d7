"""
Auth module - identity provider, token verification and JWKS cache.
"""

from __future__ import annotations

from .identity import (
    FailureKind,
    IdentityContext,
    VerificationFailure,
    extract_bearer_token,
    parse_scopes,
)
from .jwks_cache import CacheEntry, JWKSCache
from .keys import ALGORITHM, SigningKey, thumbprint
from .provider import IdentityProvider, LoginFailed, LoginResult, LoginSuccessful
from .tokens import KeySetSource, StaticKeySet, TokenIssuer, TokenVerifier, VerificationResult

__all__ = [
    "IdentityContext",
    "VerificationFailure",
    "FailureKind",
    "extract_bearer_token",
    "parse_scopes",
    "JWKSCache",
    "CacheEntry",
    "SigningKey",
    "ALGORITHM",
    "thumbprint",
    "IdentityProvider",
    "LoginResult",
    "LoginSuccessful",
    "LoginFailed",
    "KeySetSource",
    "StaticKeySet",
    "TokenIssuer",
    "TokenVerifier",
    "VerificationResult",
]
