"""
Entity key registry - per-service table of entity types and their reference resolvers.

The router sends a subgraph references (``{"__typename": ..., <key fields>}``)
for entities owned elsewhere. The registry validates each reference against
the declared keys, asks the type's reference resolver for the local record and
attaches the fields this subgraph contributes. It never calls other services:
merging the contributions of several subgraphs is the router's job.

Usage:
    registry = EntityKeyRegistry("inventory")
    variant = registry.register(EntityDef(name="Variant", keys=[["id"]]))
    variant.add_field("inventory", resolve_inventory)

    entity = await registry.resolve_reference(
        {"__typename": "Variant", "id": "variant:1"},
        context,
    )
"""

from __future__ import annotations

from typing import Any, Optional

from .context import RequestContext
from .arguments import check_arguments
from .defs import EntityDef, Record, is_key_value
from .errors import ConfigError, ValidationError


TYPENAME = "__typename"

# field name -> arguments
Selection = dict[str, dict[str, Any]]


def stub(type_name: str, **keys: Any) -> Record:
    """Build a key-only reference to an entity owned by another subgraph."""
    return {TYPENAME: type_name, **keys}


class EntityKeyRegistry:
    """
    Entity types exposed by one subgraph.

    Example:
        registry = EntityKeyRegistry("products")
        registry.register(EntityDef(
            name="Product",
            keys=[["id"], ["upc"]],
            scalars=["id", "title"],
            resolve_reference=find_product,
        ))
    """

    def __init__(self, service: str):
        self.service = service
        self._entities: dict[str, EntityDef] = {}

    def register(self, entity: EntityDef) -> EntityDef:
        """Register an entity type. Each type may be registered once per service."""
        if entity.name in self._entities:
            raise ConfigError(f"Entity '{entity.name}' already registered in service '{self.service}'")
        if not entity.keys or any(not key_set for key_set in entity.keys):
            raise ConfigError(f"Entity '{entity.name}' must declare at least one non-empty key")
        self._entities[entity.name] = entity
        return entity

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._entities

    def __iter__(self):
        return iter(self._entities.values())

    def get(self, type_name: str) -> EntityDef:
        entity = self._entities.get(type_name)
        if entity is None:
            raise ValidationError([f"Type '{type_name}' is not an entity of service '{self.service}'"])
        return entity

    def validate_reference(self, representation: Any) -> EntityDef:
        """
        Check a reference against the declared keys.

        Raises:
            ValidationError: unknown type, no complete key set, non-scalar key
                values, or missing required fields
        """
        if not isinstance(representation, dict):
            raise ValidationError(["Representation must be an object"])

        type_name = representation.get(TYPENAME)
        if not type_name:
            raise ValidationError(["Representation is missing '__typename'"])
        if not isinstance(type_name, str):
            raise ValidationError(["Representation '__typename' must be a string"])

        entity = self.get(type_name)

        errors: list[str] = []
        for name in entity.key_fields:
            value = representation.get(name)
            if value is not None and not is_key_value(value):
                errors.append(f"Key field '{name}' of '{type_name}' must be a string or integer")

        if entity.match_key(representation) is None:
            expected = " or ".join("{" + ", ".join(k) + "}" for k in entity.keys)
            errors.append(f"Reference to '{type_name}' must include key fields {expected}")

        for name in entity.requires:
            if representation.get(name) is None:
                errors.append(f"Reference to '{type_name}' is missing required field '{name}'")

        if errors:
            raise ValidationError(errors)
        return entity

    async def resolve_reference(
        self,
        representation: Record,
        context: RequestContext,
        selection: Optional[Selection] = None,
    ) -> Optional[Record]:
        """
        Resolve one reference to this subgraph's representation of the entity.

        Returns:
            The entity with this subgraph's fields, or None when the local
            store has nothing for the key.
        """
        entity = self.validate_reference(representation)

        if entity.is_extension:
            record: Optional[Record] = dict(representation)
        else:
            record = await entity.resolve_reference(representation, context)

        if record is None:
            return None

        # Required fields come from the router, local data wins on conflict
        parent = {**representation, **record}
        return await self.materialize(entity.name, parent, context, selection)

    async def materialize(
        self,
        type_name: str,
        record: Record,
        context: RequestContext,
        selection: Optional[Selection] = None,
    ) -> Record:
        """
        Build the output object for a local record, running field resolvers.

        Without a selection every scalar and contributed field is included.
        """
        entity = self.get(type_name)
        result = self.project(type_name, record, include_scalars=selection is None)

        if selection is None:
            wanted: Selection = {name: {} for name in entity.fields}
        else:
            wanted = selection
            unknown = [
                name for name in wanted
                if name not in entity.fields and name not in entity.scalars
                and name not in entity.key_fields and name != TYPENAME
            ]
            if unknown:
                raise ValidationError([
                    f"Field '{name}' on '{type_name}' is not provided by service '{self.service}'"
                    for name in unknown
                ])
            for name in wanted:
                if name in entity.scalars and name in record:
                    result[name] = record[name]

        for name, arguments in wanted.items():
            field_def = entity.fields.get(name)
            if field_def is None:
                continue
            values = check_arguments(
                f"field '{type_name}.{name}'",
                field_def.arguments,
                (),
                arguments or {},
            )
            result[name] = await field_def.resolve(record, values, context)

        return result

    def project(self, type_name: str, record: Record, include_scalars: bool = True) -> Record:
        """Typename, key fields and (optionally) stored scalars, no resolvers."""
        entity = self.get(type_name)
        result: Record = {TYPENAME: type_name}
        for name in entity.key_fields:
            if name in record:
                result[name] = record[name]
        if include_scalars:
            # Absent scalars (e.g. redacted fields) stay absent
            for name in entity.scalars:
                if name in record:
                    result[name] = record[name]
        return result

    def describe(self) -> dict[str, Any]:
        """Schema description used by the ``/__schema`` endpoint."""
        return {
            entity.name: {
                "keys": [list(k) for k in entity.keys],
                "extension": entity.is_extension,
                "scalars": list(entity.scalars),
                "fields": {
                    name: {"arguments": list(f.arguments)}
                    for name, f in entity.fields.items()
                },
                "requires": list(entity.requires),
            }
            for entity in self._entities.values()
        }
