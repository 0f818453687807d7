"""
FastAPI dependencies that turn request headers into a ``RequestContext``.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import HTTPException, Request

from ..auth.identity import IdentityContext, VerificationFailure, extract_bearer_token
from ..auth.tokens import TokenVerifier
from ..core.context import RequestContext
from ..core.errors import JWKSFetchError

logger = logging.getLogger(__name__)


async def resolve_identity(
    headers: dict[str, str],
    verifier: Optional[TokenVerifier],
) -> Optional[IdentityContext]:
    """
    Verify the bearer token, if any.

    Missing or invalid tokens mean an unauthenticated request. An unreachable
    identity provider with no cached keys is a server error instead.
    """
    if verifier is None:
        return None

    token = extract_bearer_token(headers)
    if token is None:
        return None

    try:
        result = await verifier.verify(token)
    except JWKSFetchError as e:
        logger.error(f"Token verification unavailable: {e}")
        raise HTTPException(status_code=503, detail="Identity provider unavailable") from e

    if isinstance(result, VerificationFailure):
        logger.debug(f"Ignoring bearer token: {result.kind.value} {result.message}")
        return None
    return result


def context_dependency(verifier: Optional[TokenVerifier]) -> Callable:
    """
    Build a dependency yielding the request context.

    Usage:
        get_context = context_dependency(verifier)

        @app.post("/")
        async def execute(ctx: RequestContext = Depends(get_context)):
            ...
    """

    async def get_context(request: Request) -> RequestContext:
        headers = dict(request.headers)
        identity = await resolve_identity(headers, verifier)
        return RequestContext.from_headers(headers, identity=identity)

    return get_context
