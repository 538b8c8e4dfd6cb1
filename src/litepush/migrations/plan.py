"""
Migration plan produced by the differ.

A MigrationPlan is the ordered list of operations that reconciles a current
schema with a desired one, plus the summary and per-table classification
it was derived from. It is applied as one all-or-nothing unit.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .summary import PushSummary

if TYPE_CHECKING:
    from .changes import TableChange
    from .operations import Operation


@dataclass
class MigrationPlan:
    """
    Represents the full set of operations for one schema push.

    Attributes:
        operations: Operations in global emission order
        summary: Human-readable change report
        changes: Classification of every table present in both snapshots
        creation_mode: Whether the plan was computed in creation mode

    Example:
        plan = diff_schemas(current, desired)
        for sql in plan.forwards_sql():
            print(sql)
    """

    operations: list["Operation"] = field(default_factory=list)
    summary: PushSummary = field(default_factory=PushSummary)
    changes: dict[str, "TableChange"] = field(default_factory=dict)
    creation_mode: bool = False

    def forwards_sql(self) -> list[str]:
        """
        Flatten every operation into the literal statement list.

        Returns:
            SQL statements to apply, in order
        """
        statements = []
        for op in self.operations:
            statements.extend(op.forwards())
        return statements

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def operations_of(self, op_type: type["Operation"]) -> list["Operation"]:
        """Get the operations of one kind, in emission order."""
        return [op for op in self.operations if isinstance(op, op_type)]

    def describe(self) -> str:
        """
        Get a human-readable description of this plan.

        Returns:
            Multi-line string describing all operations
        """
        lines = [f"Operations ({len(self.operations)}):"]
        for i, op in enumerate(self.operations, 1):
            lines.append(f"  {i}. {op.describe()}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"MigrationPlan(operations={len(self.operations)}, creation_mode={self.creation_mode})"
