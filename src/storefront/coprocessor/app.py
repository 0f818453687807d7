"""
Coprocessor app factory.

Creates a FastAPI application with:
- ``POST /``: stage payload in, (possibly modified) payload out
- ``GET /health``
- ``GET /metrics``: Prometheus text exposition

Any failure while handling a stage (bad JSON, keyset unavailable, handler
timeout, bugs) is answered with 500 ``{"error": "Internal server error"}``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..auth.tokens import TokenVerifier
from ..core.logging_config import install_access_log_filter
from .metrics import CoprocessorMetrics
from .pipeline import StagePipeline
from .stages import stage_label

logger = logging.getLogger(__name__)


INTERNAL_ERROR = {"error": "Internal server error"}
DEFAULT_HANDLER_TIMEOUT = 10.0


def create_coprocessor_app(
    *,
    verifier: Optional[TokenVerifier] = None,
    handler_timeout: float = DEFAULT_HANDLER_TIMEOUT,
    metrics: Optional[CoprocessorMetrics] = None,
    on_shutdown: Optional[Callable] = None,
) -> FastAPI:
    """
    Create the coprocessor FastAPI app.

    Args:
        verifier: Token verifier; enables the RouterRequest auth gate
        handler_timeout: Upper bound for handling one stage, in seconds
        metrics: Metrics sink (a fresh registry by default)
        on_shutdown: Shutdown hook (e.g. closing the JWKS cache client)

    Returns:
        Configured FastAPI application
    """
    pipeline = StagePipeline(verifier=verifier)
    metrics = metrics or CoprocessorMetrics()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        install_access_log_filter()
        gate = "enabled" if verifier is not None else "disabled"
        logger.info(f"Coprocessor ready (RouterRequest auth {gate})")

        yield

        if on_shutdown:
            await on_shutdown() if asyncio.iscoroutinefunction(on_shutdown) else on_shutdown()

    app = FastAPI(title="Coprocessor", version="1.0.0", lifespan=lifespan)
    app.state.pipeline = pipeline
    app.state.metrics = metrics

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "coprocessor"}

    @app.get("/metrics")
    async def prometheus_metrics():
        return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)

    @app.post("/")
    async def handle_stage(request: Request):
        started = time.perf_counter()
        stage = "unknown"
        try:
            payload = await request.json()
            stage = stage_label(payload)
            result = await asyncio.wait_for(pipeline.handle(payload), timeout=handler_timeout)
        except Exception:
            logger.exception(f"Coprocessor failed handling stage '{stage}'")
            metrics.observe(stage, time.perf_counter() - started, error=True)
            return JSONResponse(status_code=500, content=INTERNAL_ERROR)

        metrics.observe(stage, time.perf_counter() - started)
        return JSONResponse(content=result)

    return app
