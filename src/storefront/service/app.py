"""
Service app factory for storefront subgraphs.

Creates a pre-configured FastAPI application with:
- CORS middleware
- Health check and schema endpoints
- ``POST /_entities`` for reference resolution
- ``POST /`` for root queries and mutations
- Lifecycle hooks for storage and HTTP clients
- Logging filter to suppress noisy healthcheck logs
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional, Sequence

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..auth.tokens import TokenVerifier
from ..core.context import RequestContext
from ..core.logging_config import install_access_log_filter
from .auth import context_dependency
from .schema import get_service_schema
from .subgraph import Subgraph
from .types import EntitiesRequest, OperationRequest

logger = logging.getLogger(__name__)


async def _call_hook(hook: Optional[Callable]) -> None:
    if hook is None:
        return
    if asyncio.iscoroutinefunction(hook):
        await hook()
    else:
        hook()


def create_subgraph_app(
    subgraph: Subgraph,
    *,
    verifier: Optional[TokenVerifier] = None,
    on_startup: Optional[Callable] = None,
    on_shutdown: Optional[Callable] = None,
    routers: Sequence[APIRouter] = (),
) -> FastAPI:
    """
    Create a FastAPI app serving one subgraph.

    Args:
        subgraph: Resolver set to serve
        verifier: Token verifier; without one every request is anonymous
        on_startup: Additional startup hook
        on_shutdown: Additional shutdown hook
        routers: Extra routers (e.g. the users service's JWKS route)

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        install_access_log_filter()
        await _call_hook(on_startup)
        logger.info(f"Subgraph '{subgraph.name}' ready")

        yield

        # Shutdown
        await _call_hook(on_shutdown)

    app = FastAPI(
        title=f"{subgraph.name.replace('_', ' ').title()} Subgraph",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.subgraph = subgraph

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    get_context = context_dependency(verifier)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": subgraph.name}

    @app.get("/__schema")
    async def schema():
        return get_service_schema(subgraph)

    @app.post("/_entities")
    async def entities(
        request: EntitiesRequest,
        context: RequestContext = Depends(get_context),
    ):
        response = await subgraph.resolve_entities(
            request.representations,
            context,
            selections=request.fields,
        )
        return response.to_dict()

    @app.post("/")
    async def execute(
        request: OperationRequest,
        context: RequestContext = Depends(get_context),
    ):
        response = await subgraph.execute(request, context)
        return response.to_dict()

    for router in routers:
        app.include_router(router)

    return app
