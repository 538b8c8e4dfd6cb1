"""
Unit tests for building schema snapshots from table models.
"""

from enum import IntEnum, StrEnum
from typing import Annotated, Optional

import pytest
from pydantic import Field

from litepush.exceptions import UnsupportedTypeError
from litepush.fields import (
    AutoIncrement,
    DefaultSQL,
    ForeignKeyDef,
    IndexDef,
    PrimaryKey,
    References,
    SQLType,
    Unique,
)
from litepush.migrations.introspector import ModelIntrospector, introspect_models
from litepush.model_base import TableConfigDict, TableModel, get_registered_models
from litepush.types import ColumnType, ForeignKeyAction


class Status(StrEnum):
    ACTIVE = "active"
    BANNED = "banned"


class Level(IntEnum):
    LOW = 1
    HIGH = 2


class User(TableModel):
    model_config = TableConfigDict(table_name="users")

    id: Annotated[int, PrimaryKey(), AutoIncrement()]
    name: str
    email: Annotated[str | None, Unique()] = None
    active: bool = True
    score: float = 0.0
    status: Status = Status.ACTIVE
    level: Level = Level.LOW
    created_at: Annotated[str, DefaultSQL("CURRENT_TIMESTAMP")] = ""
    tags: list[str] = Field(default_factory=list)


class Post(TableModel):
    model_config = TableConfigDict(
        table_name="posts",
        indexes=[IndexDef(name="posts_title_idx", columns=["title"])],
    )

    id: Annotated[int, PrimaryKey()]
    user_id: Annotated[Optional[int], References(User, on_delete=ForeignKeyAction.CASCADE)] = None
    title: str = Field(alias="post_title")


class Membership(TableModel):
    model_config = TableConfigDict(
        table_name="memberships",
        primary_key=["org", "login"],
        unique_together=[["login", "role"]],
        indexes=[IndexDef(name="memberships_role_uidx", columns=["role"], unique=True)],
    )

    org: str
    login: str
    role: Annotated[str, SQLType(ColumnType.BLOB)]


class AuditEntry(TableModel):
    model_config = TableConfigDict(
        table_name="audit_entries",
        foreign_keys=[ForeignKeyDef(columns=["org", "login"], table=Membership, on_delete="SET NULL")],
    )

    id: Annotated[int, PrimaryKey()]
    org: str | None = None
    login: str | None = None


class TestColumns:
    """Tests for field to column mapping."""

    def test_column_types_and_nullability(self) -> None:
        """Test annotations map to column types and NOT NULL."""
        users = introspect_models([User]).get_table("users")
        columns = users.columns

        assert list(columns) == ["id", "name", "email", "active", "score", "status", "level", "created_at", "tags"]
        assert columns["id"].type == ColumnType.INTEGER
        assert columns["id"].not_null is True
        assert columns["id"].auto_increment is True
        assert columns["name"].type == ColumnType.TEXT
        assert columns["email"].not_null is False
        assert columns["active"].type == ColumnType.INTEGER
        assert columns["score"].type == ColumnType.REAL
        assert columns["status"].type == ColumnType.TEXT
        assert columns["level"].type == ColumnType.INTEGER
        assert columns["tags"].type == ColumnType.TEXT

    def test_defaults(self) -> None:
        """Test defaults are SQL encoded and factories are skipped."""
        columns = introspect_models([User]).get_table("users").columns

        assert columns["name"].default is None
        assert columns["active"].default == "1"
        assert columns["score"].default == "0.0"
        assert columns["status"].default == "'active'"
        assert columns["level"].default == "1"
        assert columns["created_at"].default == "CURRENT_TIMESTAMP"
        assert columns["tags"].default is None

    def test_primary_key_and_unique_markers(self) -> None:
        """Test PrimaryKey and Unique markers become constraints."""
        users = introspect_models([User]).get_table("users")

        assert [c.name for c in users.primary_key] == ["id"]
        assert users.get_column("email").is_unique()

    def test_alias_is_column_name(self) -> None:
        """Test a field alias is used as the column name, also in index config."""
        posts = introspect_models([User, Post]).get_table("posts")

        assert "post_title" in posts.columns
        assert posts.indexes["posts_title_idx"].column_names == ["post_title"]

    def test_optional_typing_union(self) -> None:
        """Test Optional[X] is nullable."""
        posts = introspect_models([User, Post]).get_table("posts")
        assert posts.get_column("user_id").not_null is False

    def test_table_name_defaults_to_class_name(self) -> None:
        """Test models without table_name use the class name."""

        class Tag(TableModel):
            id: Annotated[int, PrimaryKey()]

        assert "Tag" in introspect_models([Tag]).tables

    def test_unsupported_type(self) -> None:
        """Test a type without column mapping is fatal."""

        class Bad(TableModel):
            labels: set[int]

        with pytest.raises(UnsupportedTypeError) as exc_info:
            introspect_models([Bad])
        assert exc_info.value.field == "labels"

    def test_ambiguous_union(self) -> None:
        """Test a union of several types is refused."""

        class Bad(TableModel):
            value: int | str

        with pytest.raises(UnsupportedTypeError):
            introspect_models([Bad])


class TestTableConfig:
    """Tests for table-level configuration."""

    def test_config_primary_key_and_uniques(self) -> None:
        """Test config primary key, unique_together and unique index definitions."""
        memberships = introspect_models([Membership]).get_table("memberships")

        assert [c.name for c in memberships.primary_key] == ["org", "login"]
        assert sorted(u.column_names for u in memberships.uniques) == [["login", "role"], ["role"]]
        assert memberships.indexes == {}
        assert memberships.get_column("role").type == ColumnType.BLOB

    def test_references_marker(self) -> None:
        """Test References markers become single-column foreign keys."""
        schema = introspect_models([User, Post])
        [fk] = schema.get_table("posts").foreign_keys

        assert fk.foreign_table is schema.get_table("users")
        assert [c.name for c in fk.local_columns] == ["user_id"]
        assert [c.name for c in fk.foreign_columns] == ["id"]
        assert fk.on_delete == ForeignKeyAction.CASCADE

    def test_foreign_key_definition_targets_primary_key(self) -> None:
        """Test a table-level foreign key without target columns uses the target's primary key."""
        schema = introspect_models([AuditEntry, Membership])
        [fk] = schema.get_table("audit_entries").foreign_keys

        assert not fk.is_single_column
        assert [c.name for c in fk.foreign_columns] == ["org", "login"]
        assert fk.on_delete == ForeignKeyAction.SET_NULL

    def test_snapshot_verifies(self) -> None:
        """Test the built snapshot satisfies every invariant."""
        introspect_models([User, Post, Membership, AuditEntry]).verify()

    def test_prefix_filter(self) -> None:
        """Test only tables with the prefix are kept."""
        schema = ModelIntrospector([User, Membership], prefix="mem").introspect()
        assert list(schema.tables) == ["memberships"]


class TestRegistry:
    """Tests for model registration."""

    def test_subclasses_register(self) -> None:
        """Test concrete subclasses register and private bases do not."""

        class _Base(TableModel):
            pass

        class Note(_Base):
            id: Annotated[int, PrimaryKey()]

        assert get_registered_models() == [Note]
        assert list(introspect_models().tables) == ["Note"]
