"""Tests for EntityKeyRegistry - reference validation and resolution."""

from __future__ import annotations

import asyncio

import pytest

from storefront.core.context import RequestContext
from storefront.core.defs import EntityDef
from storefront.core.errors import ConfigError, ValidationError
from storefront.core.registry import EntityKeyRegistry, stub


PRODUCTS = {
    "product:1": {"id": "product:1", "title": "Air Jordan 1 Mid", "secret": "x"},
}


async def find_product(ref, ctx):
    return PRODUCTS.get(ref.get("id") or ref.get("upc"))


async def product_upc(parent, args, ctx):
    return parent["id"]


async def shipping_cost(parent, args, ctx):
    return sum(item["weight"] for item in parent["items"])


@pytest.fixture
def registry() -> EntityKeyRegistry:
    registry = EntityKeyRegistry("test")
    product = registry.register(EntityDef(
        name="Product",
        keys=[["id"], ["upc"]],
        scalars=["id", "title"],
        resolve_reference=find_product,
    ))
    product.add_field("upc", product_upc)

    order = registry.register(EntityDef(name="Order", keys=[["id"]], requires=["items"]))
    order.add_field("shippingCost", shipping_cost)

    registry.register(EntityDef(name="Variant", keys=[["id", "size"]]))
    return registry


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def test_duplicate_registration_rejected(registry):
    with pytest.raises(ConfigError):
        registry.register(EntityDef(name="Product", keys=[["id"]]))


def test_entity_without_keys_rejected(registry):
    with pytest.raises(ConfigError):
        registry.register(EntityDef(name="Cart", keys=[]))
    with pytest.raises(ConfigError):
        registry.register(EntityDef(name="Cart", keys=[[]]))


def test_stub_is_key_only():
    assert stub("User", id="user:1") == {"__typename": "User", "id": "user:1"}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "representation",
    [
        "product:1",
        {"id": "product:1"},
        {"__typename": "Unknown", "id": "x"},
        {"__typename": "Product", "title": "Air Jordan 1 Mid"},
        {"__typename": "Variant", "id": "variant:1"},
        {"__typename": "Order", "id": "order:1"},
        {"__typename": "Product", "id": ["product:1"]},
        {"__typename": "Product", "id": {"value": "product:1"}},
        {"__typename": "Product", "upc": True},
        {"__typename": ["Product"], "id": "product:1"},
    ],
)
async def test_invalid_references_raise(registry, representation):
    with pytest.raises(ValidationError):
        await registry.resolve_reference(representation, RequestContext())


def test_validation_error_lists_every_problem(registry):
    with pytest.raises(ValidationError) as exc_info:
        registry.validate_reference({"__typename": "Order"})
    assert len(exc_info.value.errors) == 2


def test_list_valued_key_is_rejected_with_message(registry):
    with pytest.raises(ValidationError) as exc_info:
        registry.validate_reference({"__typename": "Product", "id": ["product:1"]})
    assert "Key field 'id' of 'Product' must be a string or integer" in exc_info.value.errors


def test_integer_key_is_accepted(registry):
    assert registry.validate_reference({"__typename": "Product", "id": 1}).name == "Product"


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

async def test_resolves_owned_entity_by_either_key(registry):
    ctx = RequestContext()
    by_id = await registry.resolve_reference({"__typename": "Product", "id": "product:1"}, ctx)
    by_upc = await registry.resolve_reference({"__typename": "Product", "upc": "product:1"}, ctx)

    assert by_id == {
        "__typename": "Product",
        "id": "product:1",
        "title": "Air Jordan 1 Mid",
        "upc": "product:1",
    }
    assert by_upc == by_id


async def test_unknown_key_resolves_to_none(registry):
    result = await registry.resolve_reference({"__typename": "Product", "id": "product:999"}, RequestContext())
    assert result is None


async def test_extension_uses_reference_as_record(registry):
    result = await registry.resolve_reference(
        {"__typename": "Order", "id": "order:1", "items": [{"weight": 1.5}, {"weight": 2.0}]},
        RequestContext(),
    )
    assert result["__typename"] == "Order"
    assert result["id"] == "order:1"
    assert result["shippingCost"] == 3.5


async def test_composite_key(registry):
    result = await registry.resolve_reference(
        {"__typename": "Variant", "id": "variant:1", "size": "10"},
        RequestContext(),
    )
    assert result == {"__typename": "Variant", "id": "variant:1", "size": "10"}


async def test_selection_limits_fields(registry):
    result = await registry.resolve_reference(
        {"__typename": "Product", "id": "product:1"},
        RequestContext(),
        selection={"upc": {}},
    )
    assert result == {"__typename": "Product", "id": "product:1", "upc": "product:1"}


async def test_selection_of_foreign_field_rejected(registry):
    with pytest.raises(ValidationError):
        await registry.resolve_reference(
            {"__typename": "Product", "id": "product:1"},
            RequestContext(),
            selection={"reviews": {}},
        )


async def test_field_arguments_are_type_checked(registry):
    async def top_sizes(parent, args, ctx):
        return [str(n) for n in range(args.get("limit") or 3)]

    registry.get("Product").add_field("topSizes", top_sizes, arguments={"limit": int})
    ctx = RequestContext()
    reference = {"__typename": "Product", "id": "product:1"}

    result = await registry.resolve_reference(reference, ctx, selection={"topSizes": {"limit": 2}})
    assert result["topSizes"] == ["0", "1"]

    with pytest.raises(ValidationError) as exc_info:
        await registry.resolve_reference(reference, ctx, selection={"topSizes": {"limit": "2"}})
    assert exc_info.value.errors[0].startswith("Invalid argument 'limit' for field 'Product.topSizes'")

    with pytest.raises(ValidationError):
        await registry.resolve_reference(reference, ctx, selection={"topSizes": {"count": 2}})


async def test_unstored_fields_never_leak(registry):
    result = await registry.resolve_reference({"__typename": "Product", "id": "product:1"}, RequestContext())
    assert "secret" not in result


async def test_concurrent_resolution_is_consistent(registry):
    refs = [{"__typename": "Product", "id": "product:1"}] * 20
    results = await asyncio.gather(*(registry.resolve_reference(r, RequestContext()) for r in refs))
    assert all(r == results[0] for r in results)


def test_describe(registry):
    schema = registry.describe()
    assert schema["Product"]["keys"] == [["id"], ["upc"]]
    assert schema["Product"]["extension"] is False
    assert schema["Order"]["extension"] is True
    assert schema["Order"]["requires"] == ["items"]
