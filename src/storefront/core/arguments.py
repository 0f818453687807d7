"""
Typed argument checking for root operations and contributed fields.

Arguments are declared as ``name -> type``; values arrive as parsed JSON and
are validated in pydantic strict mode, so ``"a b"`` is not a ``list[str]``
and ``True`` is not an ``int``.

Usage:
    arguments = {"username": str, "scopes": list[str]}
    values = check_arguments("mutation 'login'", arguments, ["username"], args)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Mapping, Sequence

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

# argument name -> expected type
Arguments = dict[str, Any]


@lru_cache(maxsize=None)
def _adapter(annotation: Any) -> TypeAdapter:
    return TypeAdapter(annotation)


def check_arguments(
    owner: str,
    declared: Mapping[str, Any],
    required: Sequence[str],
    arguments: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Validate call arguments against their declarations.

    Args:
        owner: Human readable owner for messages, e.g. ``"query 'product'"``
        declared: Argument name -> type
        required: Names that must be present and not null
        arguments: Values sent by the caller

    Returns:
        The validated arguments (nulls kept as None)

    Raises:
        ValidationError: unknown, missing or mistyped arguments, all reported
            at once
    """
    errors = [
        f"Unknown argument '{name}' for {owner}"
        for name in arguments
        if name not in declared
    ]
    errors.extend(
        f"Missing required argument '{name}' for {owner}"
        for name in required
        if arguments.get(name) is None
    )

    values: dict[str, Any] = {}
    for name, value in arguments.items():
        if name not in declared:
            continue
        if value is None:
            values[name] = None
            continue
        try:
            values[name] = _adapter(declared[name]).validate_python(value, strict=True)
        except PydanticValidationError as e:
            reason = e.errors()[0]["msg"]
            errors.append(f"Invalid argument '{name}' for {owner}: {reason}")

    if errors:
        raise ValidationError(errors)
    return values
