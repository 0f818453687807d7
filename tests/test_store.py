"""Tests for the repository implementations and fixture loading."""

from __future__ import annotations

import pytest

from storefront.core.errors import ConfigError, ValidationError
from storefront.store.base import matches, parse_filter
from storefront.store.database import close_db, create_engine, create_session_maker, init_db
from storefront.store.fixtures import load_fixture, memory_repositories, seed_repositories, sql_repositories
from storefront.store.memory import InMemoryRepository


RECORDS = [
    {"id": "variant:1", "size": "10", "product": {"id": "product:1"}},
    {"id": "variant:2", "size": "11", "product": {"id": "product:1"}},
    {"id": "variant:3", "size": "9", "product": {"id": "product:2"}},
]


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def test_parse_filter():
    assert parse_filter("size") == ("size", "eq")
    assert parse_filter("size__startswith") == ("size", "startswith")
    assert parse_filter("product.id__in") == ("product.id", "in")
    with pytest.raises(ValidationError):
        parse_filter("size__between")


def test_matches():
    record = RECORDS[0]
    assert matches(record, None)
    assert matches(record, {"size__startswith": "1"})
    assert matches(record, {"product.id": "product:1"})
    assert matches(record, {"id__in": ["variant:1", "variant:9"]})
    assert matches(record, {"id__ne": "variant:2"})
    assert matches(record, {"colorway__isnull": True})
    assert not matches(record, {"size__startswith": "9"})
    assert not matches(record, {"product.upc": "product:1"})


# ---------------------------------------------------------------------------
# In-memory repository
# ---------------------------------------------------------------------------

@pytest.fixture
def variants() -> InMemoryRepository:
    return InMemoryRepository(RECORDS)


async def test_find_and_list(variants):
    assert (await variants.find("variant:2"))["size"] == "11"
    assert await variants.find("variant:9") is None
    assert [v["id"] for v in await variants.list({"size__startswith": "1"})] == ["variant:1", "variant:2"]
    assert await variants.list({"size__startswith": "7"}) == []


async def test_reads_are_copies(variants):
    record = await variants.find("variant:1")
    record["size"] = "changed"
    record["product"]["id"] = "changed"
    assert await variants.find("variant:1") == RECORDS[0]


async def test_mutate(variants):
    updated = await variants.mutate("variant:1", lambda r: {**r, "size": "10.5"})
    assert updated["size"] == "10.5"
    assert (await variants.find("variant:1"))["size"] == "10.5"

    created = await variants.mutate("variant:4", lambda r: {"id": "variant:4", "size": "8"})
    assert created == {"id": "variant:4", "size": "8"}
    assert len(variants) == 4

    assert await variants.mutate("variant:4", lambda r: None) is None
    assert await variants.find("variant:4") is None


async def test_mutate_cannot_change_key(variants):
    with pytest.raises(ValidationError):
        await variants.mutate("variant:1", lambda r: {**r, "id": "variant:9"})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def test_packaged_fixtures_load():
    products = load_fixture("products")
    assert {"products", "variants"} <= set(products)
    assert load_fixture("shipping") == {}


def test_fixture_directory_override(tmp_path):
    (tmp_path / "inventory.yaml").write_text("inventory:\n  - {id: 'variant:1', inventory: 3}\n")
    assert load_fixture("inventory", tmp_path) == {"inventory": [{"id": "variant:1", "inventory": 3}]}

    (tmp_path / "orders.yaml").write_text("orders: not-a-list\n")
    with pytest.raises(ConfigError):
        load_fixture("orders", tmp_path)


async def test_memory_repositories_use_collection_keys():
    repositories = memory_repositories("checkout")
    assert repositories["carts"].key_field == "userId"
    assert (await repositories["carts"].find("user:1"))["items"]


# ---------------------------------------------------------------------------
# SQL repository
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await init_db(engine)
    yield engine
    await close_db(engine)


async def test_sql_repository_round_trip(engine):
    repositories = sql_repositories("products", create_session_maker(engine), ["variants"])
    variants = repositories["variants"]
    assert await variants.seed(RECORDS) == 3
    assert await variants.seed(RECORDS) == 0

    assert (await variants.find("variant:3"))["product"] == {"id": "product:2"}
    assert [v["id"] for v in await variants.list({"product.id": "product:1"})] == ["variant:1", "variant:2"]

    await variants.mutate("variant:1", lambda r: {**r, "size": "12"})
    assert (await variants.find("variant:1"))["size"] == "12"

    await variants.mutate("variant:1", lambda r: None)
    assert await variants.find("variant:1") is None


async def test_sql_collections_are_namespaced(engine):
    session_maker = create_session_maker(engine)
    first = sql_repositories("discovery", session_maker, ["products"])
    second = sql_repositories("products", session_maker, ["products"])
    await seed_repositories("discovery", first)

    assert len(await first["products"].list()) == 5
    assert await second["products"].list() == []
