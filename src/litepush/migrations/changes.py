"""
Per-table classification results produced by the differ.

Every table present in both snapshots is classified exactly once as one
of Unchanged, Incremental or Recreate.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Unchanged:
    """The table needs no statement at all."""

    table: str


@dataclass(frozen=True)
class Incremental:
    """
    The table can be migrated with direct statements.

    Attributes:
        table: Table name
        added_columns: Columns added with ALTER TABLE ADD COLUMN
        removed_columns: Columns dropped with ALTER TABLE DROP COLUMN
        added_indexes: Indexes created on this table
        removed_indexes: Indexes dropped from this table
    """

    table: str
    added_columns: tuple[str, ...] = ()
    removed_columns: tuple[str, ...] = ()
    added_indexes: tuple[str, ...] = ()
    removed_indexes: tuple[str, ...] = ()


@dataclass(frozen=True)
class Recreate:
    """
    The table must be rebuilt through a shadow table.

    Attributes:
        table: Table name
        reasons: Human-readable reasons, in detection order
        structural: Whether a primary key, unique, foreign key, unique index
            or new column change is involved. Only structural changes
            invalidate the foreign keys of referencing tables.
    """

    table: str
    reasons: tuple[str, ...]
    structural: bool = False

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons)


TableChange = Unchanged | Incremental | Recreate


__all__ = ["Unchanged", "Incremental", "Recreate", "TableChange"]
