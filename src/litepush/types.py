"""
Type definitions for litepush.

This module contains the enums used throughout the schema model for
column types and foreign key actions.
"""

from datetime import date, datetime, time
from decimal import Decimal
from enum import IntEnum, StrEnum
from uuid import UUID


class ColumnType(StrEnum):
    """
    Canonical SQLite column types.

    SQLite uses type affinity, so every declared type collapses onto one
    of five storage classes:
        - INTEGER: signed integer
        - TEXT: text string
        - REAL: 8-byte floating point
        - BLOB: raw bytes
        - NULL: no declared storage class

    UNKNOWN is the empty sentinel used when an introspected type text
    cannot be mapped. Such columns are rendered without a type keyword.
    """

    INTEGER = "INTEGER"
    TEXT = "TEXT"
    REAL = "REAL"
    BLOB = "BLOB"
    NULL = "NULL"
    UNKNOWN = ""

    @property
    def is_numeric(self) -> bool:
        """Whether values of this type default to ``0`` rather than ``''``."""
        return self in (ColumnType.INTEGER, ColumnType.REAL)

    @classmethod
    def from_python_type(cls, python_type: type) -> "ColumnType":
        """
        Map a Python type to a canonical column type.

        Args:
            python_type: A Python class (str, int, float, bool, bytes, ...)

        Returns:
            The corresponding ColumnType

        Raises:
            ValueError: If the type cannot be mapped
        """
        # bool and IntEnum are int subclasses, StrEnum is a str subclass
        if isinstance(python_type, type):
            if issubclass(python_type, (bool, int, IntEnum)):
                return cls.INTEGER
            if issubclass(python_type, (float, Decimal)):
                return cls.REAL
            if issubclass(python_type, (bytes, bytearray)):
                return cls.BLOB
            if issubclass(python_type, (str, StrEnum)):
                return cls.TEXT
        if python_type in PYTHON_TO_COLUMN_TYPE:
            return PYTHON_TO_COLUMN_TYPE[python_type]
        raise ValueError(f"Cannot map Python type {python_type} to a SQLite column type")


class ForeignKeyAction(StrEnum):
    """Referential actions for ON UPDATE / ON DELETE clauses."""

    NO_ACTION = "NO ACTION"
    RESTRICT = "RESTRICT"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    CASCADE = "CASCADE"


# Types stored as TEXT (ISO strings or JSON documents)
PYTHON_TO_COLUMN_TYPE: dict[type, ColumnType] = {
    datetime: ColumnType.TEXT,
    date: ColumnType.TEXT,
    time: ColumnType.TEXT,
    UUID: ColumnType.TEXT,
    dict: ColumnType.TEXT,
    list: ColumnType.TEXT,
}
