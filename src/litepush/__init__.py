from .config import PushOptions
from .exceptions import (
    ContractViolation,
    DuplicateNameError,
    ExecutionError,
    LitePushError,
    ModeViolation,
    NotFoundError,
    StructuralViolation,
    UnsupportedTypeError,
)
from .fields import AutoIncrement, DefaultSQL, ForeignKeyDef, IndexDef, PrimaryKey, References, SQLType, Unique
from .model_base import TableConfigDict, TableModel, clear_model_registry, get_registered_models
from .pusher import plan_schema, push_schema
from .reporter import LoggingReporter, NullReporter, Reporter
from .types import ColumnType, ForeignKeyAction

__all__ = [
    "TableModel",
    "TableConfigDict",
    "get_registered_models",
    "clear_model_registry",
    "PrimaryKey",
    "Unique",
    "AutoIncrement",
    "SQLType",
    "DefaultSQL",
    "References",
    "IndexDef",
    "ForeignKeyDef",
    "ColumnType",
    "ForeignKeyAction",
    "PushOptions",
    "plan_schema",
    "push_schema",
    "Reporter",
    "LoggingReporter",
    "NullReporter",
    "LitePushError",
    "StructuralViolation",
    "DuplicateNameError",
    "NotFoundError",
    "ModeViolation",
    "ContractViolation",
    "UnsupportedTypeError",
    "ExecutionError",
]
