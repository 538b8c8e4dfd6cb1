"""
Human-readable summary of a schema diff.
"""

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, Field

from .changes import Incremental, Recreate, TableChange


class PushSummary(BaseModel):
    """
    What a plan adds, removes and rebuilds.

    Attributes:
        added_tables: Tables created from scratch
        removed_tables: Tables dropped
        added_columns: ``table.column`` entries added in place
        removed_columns: ``table.column`` entries dropped in place
        recreated_tables: Tables rebuilt through a shadow table
        recreate_reasons: Table name to joined reason string
    """

    added_tables: list[str] = Field(default_factory=list)
    removed_tables: list[str] = Field(default_factory=list)
    added_columns: list[str] = Field(default_factory=list)
    removed_columns: list[str] = Field(default_factory=list)
    recreated_tables: list[str] = Field(default_factory=list)
    recreate_reasons: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_changes(
        cls,
        added_tables: Iterable[str],
        removed_tables: Iterable[str],
        changes: Mapping[str, TableChange],
    ) -> "PushSummary":
        """Derive a summary from the differ's per-table classification."""
        summary = cls(added_tables=list(added_tables), removed_tables=list(removed_tables))

        for name, change in changes.items():
            if isinstance(change, Recreate):
                summary.recreated_tables.append(name)
                summary.recreate_reasons[name] = change.reason
            elif isinstance(change, Incremental):
                summary.added_columns.extend(f"{name}.{column}" for column in change.added_columns)
                summary.removed_columns.extend(f"{name}.{column}" for column in change.removed_columns)

        return summary

    @property
    def is_empty(self) -> bool:
        return not (
            self.added_tables
            or self.removed_tables
            or self.added_columns
            or self.removed_columns
            or self.recreated_tables
        )

    def describe(self) -> str:
        """
        Multi-line report of the summary.

        Returns:
            One line per category, then one line per recreated table with its reasons
        """
        lines = [
            f"Add tables: {', '.join(self.added_tables) or '-'}",
            f"Remove tables: {', '.join(self.removed_tables) or '-'}",
            f"Add columns: {', '.join(self.added_columns) or '-'}",
            f"Remove columns: {', '.join(self.removed_columns) or '-'}",
            f"Recreated tables: {', '.join(self.recreated_tables) or '-'}",
        ]
        for table, reason in self.recreate_reasons.items():
            lines.append(f"  {table}: {reason}")
        return "\n".join(lines)


__all__ = ["PushSummary"]
