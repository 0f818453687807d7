"""
Store module - repository interface and implementations.
"""

from __future__ import annotations

from .base import Repository, matches, parse_filter
from .database import Base, EntityRecord, SqlRepository, close_db, create_engine, create_session_maker, init_db
from .fixtures import load_fixture, memory_repositories, seed_repositories, sql_repositories
from .memory import InMemoryRepository

__all__ = [
    "Repository",
    "matches",
    "parse_filter",
    "InMemoryRepository",
    "SqlRepository",
    "Base",
    "EntityRecord",
    "create_engine",
    "create_session_maker",
    "init_db",
    "close_db",
    "load_fixture",
    "memory_repositories",
    "sql_repositories",
    "seed_repositories",
]
