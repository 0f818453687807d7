"""
Demo data loading.

Each service has a YAML file under ``store/data`` mapping collection
names to lists of records, e.g. ``products.yaml``:

    products:
      - id: "product:1"
        title: "Air Jordan 1 Mid"
    variants:
      - id: "variant:1"
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.errors import ConfigError
from .base import Repository
from .database import SqlRepository
from .memory import InMemoryRepository

logger = logging.getLogger(__name__)

# collection -> key field, when not "id"
KEY_FIELDS = {
    "carts": "userId",
}


def load_fixture(service: str, directory: Optional[Path] = None) -> dict[str, list[dict[str, Any]]]:
    """
    Load the fixture file for a service.

    Args:
        service: Service name (file stem)
        directory: Override directory; packaged fixtures by default

    Returns:
        Dict of collection name -> records. Empty when the service has no file.
    """
    if directory is not None:
        path = Path(directory) / f"{service}.yaml"
        if not path.exists():
            return {}
        text = path.read_text()
    else:
        resource = resources.files("storefront.store") / "data" / f"{service}.yaml"
        if not resource.is_file():
            return {}
        text = resource.read_text()

    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict) or not all(isinstance(v, list) for v in data.values()):
        raise ConfigError(f"Fixture for '{service}' must map collection names to lists of records")
    return data


def memory_repositories(service: str, directory: Optional[Path] = None) -> dict[str, Repository]:
    """Build in-memory repositories seeded with the service's fixtures."""
    fixture = load_fixture(service, directory)
    repositories = {
        name: InMemoryRepository(records, key_field=KEY_FIELDS.get(name, "id"))
        for name, records in fixture.items()
    }
    logger.debug(f"Loaded fixtures for '{service}': {', '.join(repositories) or 'none'}")
    return repositories


def sql_repositories(
    service: str,
    session_maker: async_sessionmaker[AsyncSession],
    collections: Iterable[str],
) -> dict[str, SqlRepository]:
    """
    Build SQL repositories for a service.

    Collections are namespaced by service so several services may share a
    database.
    """
    return {
        name: SqlRepository(
            f"{service}.{name}",
            session_maker,
            key_field=KEY_FIELDS.get(name, "id"),
        )
        for name in collections
    }


async def seed_repositories(
    service: str,
    repositories: dict[str, SqlRepository],
    directory: Optional[Path] = None,
) -> None:
    """Insert the service's fixture records that are not stored yet."""
    fixture = load_fixture(service, directory)
    for name, repository in repositories.items():
        await repository.seed(fixture.get(name, []))
