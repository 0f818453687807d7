"""
Core dataclass definitions for storefront subgraphs.

These describe which entity types a subgraph exposes, which fields identify
them across subgraphs (keys), which fields the subgraph contributes, and which
root operations it answers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Mapping, Optional

from .arguments import Arguments

if TYPE_CHECKING:
    from .context import RequestContext


Record = dict[str, Any]

# (reference, context) -> local record or None when this subgraph has no data for it
ReferenceResolver = Callable[[Record, "RequestContext"], Awaitable[Optional[Record]]]

# (parent, arguments, context) -> field value
FieldResolver = Callable[[Record, dict[str, Any], "RequestContext"], Awaitable[Any]]

# (arguments, context) -> operation result
OperationResolver = Callable[[dict[str, Any], "RequestContext"], Awaitable[Any]]


def is_key_value(value: Any) -> bool:
    """Key fields carry strings or integers; anything else is a malformed reference."""
    return isinstance(value, (str, int)) and not isinstance(value, bool)


@dataclass
class FieldDef:
    """A field a subgraph contributes to an entity type, computed by a resolver."""
    name: str
    resolve: FieldResolver
    arguments: Arguments = field(default_factory=dict)


@dataclass
class EntityDef:
    """
    Definition of an entity type as seen by one subgraph.

    keys: alternative key field sets; each inner list is one key (several
        fields = composite key). A reference must carry every field of at
        least one key set.
    scalars: fields stored in this subgraph's own records.
    fields: fields computed by resolvers (extensions, relations, stubs).
    requires: fields owned elsewhere that the router must include in the
        reference for this subgraph's resolvers to work.
    resolve_reference: None for types this subgraph only extends; the
        reference itself is then used as the local record.
    """
    name: str
    keys: list[list[str]]
    scalars: list[str] = field(default_factory=list)
    fields: dict[str, FieldDef] = field(default_factory=dict)
    requires: list[str] = field(default_factory=list)
    resolve_reference: Optional[ReferenceResolver] = None

    @property
    def is_extension(self) -> bool:
        return self.resolve_reference is None

    @property
    def key_fields(self) -> list[str]:
        """All fields that appear in any key set, in declaration order."""
        seen: list[str] = []
        for key_set in self.keys:
            for name in key_set:
                if name not in seen:
                    seen.append(name)
        return seen

    def match_key(self, representation: Record) -> Optional[list[str]]:
        """Return the first key set fully present in the representation."""
        for key_set in self.keys:
            if all(is_key_value(representation.get(name)) for name in key_set):
                return key_set
        return None

    def add_field(
        self,
        name: str,
        resolve: FieldResolver,
        arguments: Optional[Mapping[str, Any]] = None,
    ) -> FieldDef:
        """Attach a contributed field; ``arguments`` maps argument name -> type."""
        field_def = FieldDef(name=name, resolve=resolve, arguments=dict(arguments or {}))
        self.fields[name] = field_def
        return field_def


@dataclass
class OperationDef:
    """A root query or mutation field answered by a subgraph."""
    name: str
    kind: Literal["query", "mutation"]
    resolve: OperationResolver
    arguments: Arguments = field(default_factory=dict)
    required: list[str] = field(default_factory=list)
