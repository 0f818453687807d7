"""
Subgraph base class - one service's resolver set.

A subgraph declares:
- entity types with their keys and reference resolvers (``entity``)
- contributed fields on those types (``EntityDef.add_field``)
- root query and mutation fields (``query`` / ``mutation``)

and answers two kinds of calls:
- ``resolve_entities``: the router's ``_entities(representations)`` fetch
- ``execute``: root operations

Each root field and each representation is resolved independently; a failure
yields ``None`` at its position plus an error entry, never a failed response.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional, Sequence

from ..core.arguments import check_arguments
from ..core.context import RequestContext
from ..core.defs import EntityDef, OperationDef, OperationResolver, Record, ReferenceResolver
from ..core.errors import ConfigError, StorefrontError, ValidationError
from ..core.registry import TYPENAME, EntityKeyRegistry, Selection
from .types import GraphError, GraphResponse, OperationRequest

logger = logging.getLogger(__name__)


def format_error(error: BaseException, path: list) -> GraphError:
    """Turn an exception into a GraphQL-style error entry."""
    if isinstance(error, ValidationError):
        return GraphError(
            message="; ".join(error.errors),
            path=path,
            extensions={"code": error.code},
        )
    if isinstance(error, StorefrontError):
        return GraphError(message=str(error), path=path, extensions={"code": error.code})

    logger.error(f"Unhandled error resolving {path}", exc_info=error)
    return GraphError(
        message="Internal server error",
        path=path,
        extensions={"code": "INTERNAL_SERVER_ERROR"},
    )


class Subgraph:
    """
    Base class for storefront services.

    Example:
        class InventorySubgraph(Subgraph):
            name = "inventory"

            def __init__(self, inventory: Repository):
                super().__init__()
                self.inventory = inventory
                variant = self.entity("Variant", keys=[["id"]])
                variant.add_field("inventory", self.variant_inventory)
    """

    name: str = ""

    def __init__(self, name: Optional[str] = None):
        self.name = name or self.name
        if not self.name:
            raise ConfigError("Subgraph must have a name")
        self.registry = EntityKeyRegistry(self.name)
        self.queries: dict[str, OperationDef] = {}
        self.mutations: dict[str, OperationDef] = {}

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def entity(
        self,
        name: str,
        keys: Sequence[Sequence[str]],
        *,
        scalars: Sequence[str] = (),
        requires: Sequence[str] = (),
        resolve_reference: Optional[ReferenceResolver] = None,
    ) -> EntityDef:
        """Declare an entity type; without ``resolve_reference`` it is an extension."""
        return self.registry.register(
            EntityDef(
                name=name,
                keys=[list(k) for k in keys],
                scalars=list(scalars),
                requires=list(requires),
                resolve_reference=resolve_reference,
            )
        )

    def query(
        self,
        name: str,
        resolve: OperationResolver,
        arguments: Optional[Mapping[str, Any]] = None,
        required: Sequence[str] = (),
    ) -> OperationDef:
        """Declare a root query; ``arguments`` maps argument name -> type."""
        operation = OperationDef(name, "query", resolve, dict(arguments or {}), list(required))
        self.queries[name] = operation
        return operation

    def mutation(
        self,
        name: str,
        resolve: OperationResolver,
        arguments: Optional[Mapping[str, Any]] = None,
        required: Sequence[str] = (),
    ) -> OperationDef:
        operation = OperationDef(name, "mutation", resolve, dict(arguments or {}), list(required))
        self.mutations[name] = operation
        return operation

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    async def materialize(self, type_name: str, value: Any, context: RequestContext) -> Any:
        """Resolve all fields of a local record (or list of records)."""
        if value is None:
            return None
        if isinstance(value, list):
            return [await self.materialize(type_name, item, context) for item in value]
        return await self.registry.materialize(type_name, value, context)

    def project(self, type_name: str, value: Any) -> Any:
        """Typename, keys and stored scalars only; used for nested entities."""
        if value is None:
            return None
        if isinstance(value, list):
            return [self.project(type_name, item) for item in value]
        return self.registry.project(type_name, value)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def resolve_entities(
        self,
        representations: list[Record],
        context: RequestContext,
        selections: Optional[Mapping[str, Selection]] = None,
    ) -> GraphResponse:
        """
        Answer ``_entities(representations)``; order of results matches input.

        Args:
            representations: References sent by the router, possibly of
                several entity types
            context: Request context
            selections: ``__typename`` -> selected fields. Types without an
                entry get every field this subgraph provides.
        """
        results = await asyncio.gather(
            *(
                self.registry.resolve_reference(
                    representation,
                    context,
                    self._selection_for(representation, selections),
                )
                for representation in representations
            ),
            return_exceptions=True,
        )

        entities: list[Optional[Record]] = []
        errors: list[GraphError] = []
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                errors.append(format_error(result, ["_entities", index]))
                entities.append(None)
            else:
                entities.append(result)

        return GraphResponse(data={"_entities": entities}, errors=errors)

    @staticmethod
    def _selection_for(representation: Any, selections: Optional[Mapping[str, Selection]]) -> Optional[Selection]:
        if not selections or not isinstance(representation, dict):
            return None
        type_name = representation.get(TYPENAME)
        if not isinstance(type_name, str):
            return None
        return selections.get(type_name)

    async def _run(self, operations: dict[str, OperationDef], name: str, arguments: dict[str, Any], context: RequestContext) -> Any:
        operation = operations.get(name)
        if operation is None:
            kind = "mutation" if operations is self.mutations else "query"
            raise ValidationError([f"Cannot query field '{name}' on type '{kind.title()}' of service '{self.name}'"])
        values = check_arguments(
            f"{operation.kind} '{operation.name}'",
            operation.arguments,
            operation.required,
            arguments,
        )
        return await operation.resolve(values, context)

    async def execute(self, request: OperationRequest, context: RequestContext) -> GraphResponse:
        """
        Run root fields.

        Query fields run concurrently, mutation fields run one after another
        in request order.
        """
        data: dict[str, Any] = {}
        errors: list[GraphError] = []

        if request.query:
            names = list(request.query)
            results = await asyncio.gather(
                *(self._run(self.queries, name, request.query[name] or {}, context) for name in names),
                return_exceptions=True,
            )
            for name, result in zip(names, results):
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception):
                        raise result
                    errors.append(format_error(result, [name]))
                    data[name] = None
                else:
                    data[name] = result

        for name, arguments in request.mutation.items():
            try:
                data[name] = await self._run(self.mutations, name, arguments or {}, context)
            except Exception as e:
                errors.append(format_error(e, [name]))
                data[name] = None

        return GraphResponse(data=data, errors=errors)

    def describe(self) -> dict[str, Any]:
        return {
            "entities": self.registry.describe(),
            "queries": {name: {"arguments": list(op.arguments)} for name, op in self.queries.items()},
            "mutations": {name: {"arguments": list(op.arguments)} for name, op in self.mutations.items()},
        }
