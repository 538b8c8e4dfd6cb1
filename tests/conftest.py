"""
Shared fixtures for litepush tests.
"""

import sqlite3
from collections.abc import Iterator

import pytest

from litepush.migrations.state import SchemaState
from litepush.model_base import clear_model_registry


@pytest.fixture(autouse=True)
def _clean_registry() -> Iterator[None]:
    """Keep model registration from leaking between tests."""
    clear_model_registry()
    yield
    clear_model_registry()


@pytest.fixture
def connection() -> Iterator[sqlite3.Connection]:
    """In-memory SQLite database."""
    conn = sqlite3.connect(":memory:")
    yield conn
    conn.close()


def build_users(schema: SchemaState, with_email: bool = False) -> None:
    """users(id INTEGER PK, name TEXT), optionally with a unique email."""
    users = schema.create_table("users")
    users.create_column("id", "INTEGER", not_null=True)
    users.create_column("name", "TEXT")
    users.set_primary_key("id")
    if with_email:
        users.create_column("email", "TEXT", unique=True)


def build_posts(schema: SchemaState, with_fk: bool = True) -> None:
    """posts(id INTEGER PK, user_id INTEGER, title TEXT), optionally referencing users."""
    posts = schema.create_table("posts")
    posts.create_column("id", "INTEGER", not_null=True)
    posts.create_column("user_id", "INTEGER")
    posts.create_column("title", "TEXT")
    posts.set_primary_key("id")
    if with_fk:
        posts.create_foreign_key("users", ["user_id"], ["id"], on_delete="CASCADE")
