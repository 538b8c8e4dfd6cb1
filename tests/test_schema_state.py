"""
Unit tests for the schema snapshot model.
"""

import pytest

from litepush.exceptions import DuplicateNameError, NotFoundError, StructuralViolation
from litepush.migrations.state import SchemaState, canonical_column_list
from litepush.types import ColumnType, ForeignKeyAction

from tests.conftest import build_posts, build_users


class TestColumn:
    """Tests for Column creation and queries."""

    def test_create_column(self) -> None:
        """Test a column is linked to its table on creation."""
        schema = SchemaState()
        table = schema.create_table("users")
        column = table.create_column("name", "TEXT", not_null=True, default="'x'")

        assert column.table is table
        assert column.type == ColumnType.TEXT
        assert column.not_null is True
        assert column.default == "'x'"
        assert list(table.columns) == ["name"]

    def test_null_default_is_absent(self) -> None:
        """Test the literal NULL default normalizes to no default."""
        table = SchemaState().create_table("users")
        column = table.create_column("name", "TEXT", default="NULL")
        assert column.default is None

    def test_duplicate_column(self) -> None:
        """Test creating a column over an existing name fails."""
        table = SchemaState().create_table("users")
        table.create_column("name", "TEXT")
        with pytest.raises(DuplicateNameError):
            table.create_column("name", "INTEGER")

    def test_get_missing_column(self) -> None:
        """Test looking up a missing column raises NotFoundError."""
        table = SchemaState().create_table("users")
        with pytest.raises(NotFoundError) as exc_info:
            table.get_column("nope")
        assert exc_info.value.name == "nope"

    def test_rename_keeps_position(self) -> None:
        """Test renaming a column keeps the column order."""
        table = SchemaState().create_table("users")
        table.create_column("a", "TEXT")
        column = table.create_column("b", "TEXT")
        table.create_column("c", "TEXT")

        column.rename("bb")

        assert list(table.columns) == ["a", "bb", "c"]
        assert table.get_column("bb") is column
        assert column.name == "bb"

    def test_rename_to_taken_name(self) -> None:
        """Test renaming onto an existing column fails."""
        table = SchemaState().create_table("users")
        table.create_column("a", "TEXT")
        table.create_column("b", "TEXT")
        with pytest.raises(DuplicateNameError):
            table.rename_column("a", "b")

    def test_unique_flag_creates_constraint(self) -> None:
        """Test unique=True adds a single-column UNIQUE constraint."""
        table = SchemaState().create_table("users")
        email = table.create_column("email", "TEXT", unique=True)
        name = table.create_column("name", "TEXT")

        assert email.is_unique() is True
        assert name.is_unique() is False
        assert len(table.uniques) == 1


class TestPrimaryKey:
    """Tests for primary key slots."""

    def test_set_primary_key(self) -> None:
        """Test columns are assigned to slots 1..n in order."""
        table = SchemaState().create_table("memberships")
        user = table.create_column("user_id", "INTEGER")
        group = table.create_column("group_id", "INTEGER")
        table.set_primary_key("group_id", "user_id")

        assert table.primary_key == [group, user]
        assert group.primary_key_slot() == 1
        assert user.primary_key_slot() == 2

    def test_slots_out_of_order(self) -> None:
        """Test slots may be filled in any order."""
        table = SchemaState().create_table("memberships")
        table.create_column("a", "INTEGER")
        table.create_column("b", "INTEGER")
        table.set_primary_key_column("b", 2)
        table.set_primary_key_column("a", 1)

        assert [c.name for c in table.primary_key] == ["a", "b"]
        table.verify()

    def test_slot_zero_rejected(self) -> None:
        """Test slot 0 is not a primary key slot."""
        table = SchemaState().create_table("users")
        table.create_column("id", "INTEGER")
        with pytest.raises(StructuralViolation):
            table.set_primary_key_column("id", 0)

    def test_occupied_slot_rejected(self) -> None:
        """Test a slot cannot be assigned twice."""
        table = SchemaState().create_table("users")
        table.create_column("a", "INTEGER")
        table.create_column("b", "INTEGER")
        table.set_primary_key_column("a", 1)
        with pytest.raises(StructuralViolation):
            table.set_primary_key_column("b", 1)

    def test_repeated_column_rejected(self) -> None:
        """Test one column cannot hold two slots."""
        table = SchemaState().create_table("memberships")
        table.create_column("a", "INTEGER")
        table.set_primary_key_column("a", 1)
        with pytest.raises(StructuralViolation, match="already in the primary key"):
            table.set_primary_key_column("a", 2)

    def test_repeated_column_fails_verify(self) -> None:
        """Test verification catches a column placed in two slots."""
        table = SchemaState().create_table("memberships")
        column = table.create_column("a", "INTEGER")
        table._primary_key_slots.update({1: column, 2: column})
        with pytest.raises(StructuralViolation, match="repeats a column"):
            table.verify_primary_key()

    def test_sparse_slots_rejected_on_verify(self) -> None:
        """Test verify refuses a primary key with an unassigned slot."""
        table = SchemaState().create_table("users")
        table.create_column("a", "INTEGER")
        table.set_primary_key_column("a", 2)
        with pytest.raises(StructuralViolation):
            table.verify()


class TestConstraints:
    """Tests for indexes, uniques and foreign keys."""

    def test_index_name_unique_across_snapshot(self) -> None:
        """Test an index name cannot be reused on another table."""
        schema = SchemaState()
        build_users(schema)
        build_posts(schema)
        schema.get_table("users").create_index("by_name", ["name"])

        with pytest.raises(DuplicateNameError):
            schema.get_table("posts").create_index("by_name", ["title"])

    def test_index_with_foreign_column(self) -> None:
        """Test an index cannot cover a column of another table."""
        schema = SchemaState()
        build_users(schema)
        build_posts(schema)
        title = schema.get_table("posts").get_column("title")

        with pytest.raises(StructuralViolation):
            schema.get_table("users").create_index("bad", [title])

    def test_duplicate_unique(self) -> None:
        """Test the same unique constraint cannot be declared twice."""
        table = SchemaState().create_table("users")
        table.create_column("email", "TEXT")
        table.create_unique(["email"])
        with pytest.raises(StructuralViolation):
            table.create_unique(["email"])

    def test_unique_repeated_column(self) -> None:
        """Test a unique constraint cannot list a column twice."""
        table = SchemaState().create_table("users")
        table.create_column("email", "TEXT")
        with pytest.raises(StructuralViolation):
            table.create_unique(["email", "email"])

    def test_foreign_key(self) -> None:
        """Test a foreign key links both tables and coerces actions."""
        schema = SchemaState()
        build_users(schema)
        build_posts(schema)
        fk = schema.get_table("posts").foreign_keys[0]

        assert fk.foreign_table is schema.get_table("users")
        assert fk.is_single_column
        assert fk.on_delete == ForeignKeyAction.CASCADE
        assert fk.on_update == ForeignKeyAction.NO_ACTION

    def test_self_reference_rejected(self) -> None:
        """Test a foreign key must target another table."""
        schema = SchemaState()
        build_users(schema)
        with pytest.raises(StructuralViolation):
            schema.get_table("users").create_foreign_key("users", ["name"], ["id"])

    def test_length_mismatch_rejected(self) -> None:
        """Test local and foreign column lists must have the same length."""
        schema = SchemaState()
        build_users(schema)
        build_posts(schema, with_fk=False)
        with pytest.raises(StructuralViolation):
            schema.get_table("posts").create_foreign_key("users", ["user_id", "title"], ["id"])

    def test_missing_target_table(self) -> None:
        """Test a foreign key to an unknown table raises NotFoundError."""
        schema = SchemaState()
        build_posts(schema, with_fk=False)
        with pytest.raises(NotFoundError):
            schema.get_table("posts").create_foreign_key("users", ["user_id"], ["id"])

    def test_canonical_forms_ignore_order(self) -> None:
        """Test canonical column lists are order independent and escaped."""
        table = SchemaState().create_table("t")
        a = table.create_column("a,b", "TEXT")
        b = table.create_column("c", "TEXT")

        assert canonical_column_list([a, b]) == canonical_column_list([b, a])
        assert canonical_column_list([a, b]) == "a%2Cb,c"

    def test_foreign_key_canonical(self) -> None:
        """Test the canonical form includes target table and actions."""
        schema = SchemaState()
        build_users(schema)
        build_posts(schema)
        fk = schema.get_table("posts").foreign_keys[0]
        assert fk.canonical() == "user_id -> id on users | CASCADE | NO ACTION"


class TestSchemaState:
    """Tests for snapshot-level operations."""

    def test_duplicate_table(self) -> None:
        """Test creating a table over an existing name fails."""
        schema = SchemaState()
        schema.create_table("users")
        with pytest.raises(DuplicateNameError):
            schema.create_table("users")

    def test_rename_table(self) -> None:
        """Test renaming a table keeps the table order."""
        schema = SchemaState()
        schema.create_table("a")
        table = schema.create_table("b")
        schema.create_table("c")

        schema.rename_table("b", "bb")

        assert list(schema.tables) == ["a", "bb", "c"]
        assert table.name == "bb"

    def test_remove_referenced_table(self) -> None:
        """Test a table still referenced by a foreign key cannot be removed."""
        schema = SchemaState()
        build_users(schema)
        build_posts(schema)
        with pytest.raises(StructuralViolation):
            schema.remove_table("users")

        schema.remove_table("posts")
        schema.remove_table("users")
        assert schema.is_empty

    def test_query_helpers(self) -> None:
        """Test the snapshot-wide lookups."""
        schema = SchemaState()
        build_users(schema)
        build_posts(schema)
        schema.get_table("posts").create_index("posts_title", ["title"])

        assert [i.name for i in schema.all_indexes()] == ["posts_title"]
        assert len(schema.all_single_column_foreign_keys()) == 1
        assert [c.qualified_name for c in schema.references_to("users")] == ["posts.user_id"]
        assert schema.referencing_tables() == {"users": ["posts"]}

    def test_verify(self) -> None:
        """Test a well-formed snapshot verifies."""
        schema = SchemaState()
        build_users(schema, with_email=True)
        build_posts(schema)
        schema.verify()

    def test_describe(self) -> None:
        """Test the text dump lists columns and constraints."""
        schema = SchemaState()
        build_users(schema, with_email=True)
        text = schema.describe()

        assert "Table (users) {" in text
        assert "id INTEGER NOT NULL" in text
        assert "PRIMARY KEY (id)" in text
        assert "UNIQUE (email)" in text
