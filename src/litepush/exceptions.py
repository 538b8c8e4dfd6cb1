"""
litepush exceptions.

Custom exception hierarchy for schema construction, diffing and execution.
"""


class LitePushError(Exception):
    """Base exception for all litepush errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class StructuralViolation(LitePushError):
    """Raised when a schema snapshot breaks one of its structural invariants."""

    pass


class DuplicateNameError(StructuralViolation):
    """Raised when creating a table, column or index over an existing name."""

    def __init__(self, message: str, name: str | None = None):
        self.name = name
        super().__init__(message)


class NotFoundError(LitePushError):
    """Raised when a table or column is looked up by a name that does not exist."""

    def __init__(self, message: str, name: str | None = None):
        self.name = name
        super().__init__(message)


class ModeViolation(LitePushError):
    """Raised when creation mode is requested against a non-empty current schema."""

    pass


class ContractViolation(LitePushError):
    """
    Raised when plan generation asks for an entity that classification
    claims exists but does not.

    This always indicates a bug in the diff bookkeeping, never bad input.
    """

    pass


class UnsupportedTypeError(LitePushError):
    """Raised when a declared model field type has no SQLite column type."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ExecutionError(LitePushError):
    """Raised when applying a statement batch to the database fails."""

    def __init__(self, message: str, statements: list[str] | None = None):
        self.statements = statements or []
        super().__init__(message)


__all__ = [
    "LitePushError",
    "StructuralViolation",
    "DuplicateNameError",
    "NotFoundError",
    "ModeViolation",
    "ContractViolation",
    "UnsupportedTypeError",
    "ExecutionError",
]
