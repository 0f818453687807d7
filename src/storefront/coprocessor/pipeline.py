"""
Stage pipeline - one handler per router stage.

``handle(payload)`` returns a new payload and never modifies its argument.
Stages without a handler (and stage strings the router adds in the future)
pass through unchanged.

Usage:
    pipeline = StagePipeline(verifier=verifier)
    result = await pipeline.handle({"stage": "SubgraphRequest", "headers": {}, ...})
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Awaitable, Callable, Optional

from ..auth.identity import VerificationFailure, extract_bearer_token
from ..auth.tokens import TokenVerifier
from ..core.errors import ValidationError
from .stages import CONTINUE, CoprocessorStage, Payload, break_with

logger = logging.getLogger(__name__)


SOURCE_HEADER = "source"
SOURCE_VALUE = "coprocessor"
UNAUTHORIZED = 401

StageHandler = Callable[[Payload], Awaitable[Payload]]


async def pass_through(payload: Payload) -> Payload:
    return payload


async def tag_subgraph_request(payload: Payload) -> Payload:
    """Mark requests the router sends to subgraphs as coming through the coprocessor."""
    headers = payload.get("headers")
    if not isinstance(headers, dict):
        headers = {}
        payload["headers"] = headers
    headers[SOURCE_HEADER] = [SOURCE_VALUE]
    return payload


class StagePipeline:
    """
    Dispatches stage payloads to handlers by ``stage``.

    With a verifier, RouterRequest is an authentication gate: a missing or
    invalid bearer token breaks the request with 401.
    """

    def __init__(self, verifier: Optional[TokenVerifier] = None):
        self.verifier = verifier
        self.handlers: dict[CoprocessorStage, StageHandler] = {
            CoprocessorStage.SUBGRAPH_REQUEST: tag_subgraph_request,
        }
        if verifier is not None:
            self.handlers[CoprocessorStage.ROUTER_REQUEST] = self.authenticate

    def handler_for(self, stage: Any) -> StageHandler:
        parsed = CoprocessorStage.parse(stage)
        if parsed is None:
            return pass_through
        return self.handlers.get(parsed, pass_through)

    async def handle(self, payload: Any) -> Payload:
        """
        Run the handler for the payload's stage on a copy of the payload.

        Raises:
            ValidationError: payload is not a JSON object
            JWKSFetchError: RouterRequest gate could not get any keyset
        """
        if not isinstance(payload, dict):
            raise ValidationError(["Stage payload must be a JSON object"])

        handler = self.handler_for(payload.get("stage"))
        return await handler(copy.deepcopy(payload))

    async def authenticate(self, payload: Payload) -> Payload:
        headers = payload.get("headers")
        token = extract_bearer_token(headers if isinstance(headers, dict) else {})
        if token is None:
            logger.info("RouterRequest without bearer token, breaking with 401")
            payload["control"] = break_with(UNAUTHORIZED)
            return payload

        result = await self.verifier.verify(token)
        if isinstance(result, VerificationFailure):
            logger.info(f"RouterRequest token rejected ({result.kind.value}), breaking with 401")
            payload["control"] = break_with(UNAUTHORIZED)
            return payload

        payload["control"] = CONTINUE
        return payload
