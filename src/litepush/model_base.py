"""
Declarative table models.

Application schemas are declared as pydantic models deriving from
TableModel. Every concrete subclass is registered for introspection.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict

from .fields import ForeignKeyDef, IndexDef

_MODEL_REGISTRY: list[type["TableModel"]] = []


def get_registered_models() -> list[type["TableModel"]]:
    """
    Get all registered table models.

    Returns:
        List of all model classes that inherit from TableModel
    """
    return _MODEL_REGISTRY.copy()


def clear_model_registry() -> None:
    """
    Clear the model registry. Useful for testing.
    """
    _MODEL_REGISTRY.clear()


class TableConfigDict(ConfigDict, total=False):
    """
    TableConfigDict extends pydantic's ConfigDict with table options.

    Attributes:
        table_name: Override the default table name (default: class name)
        primary_key: Primary key column names, used when no field carries PrimaryKey()
        unique_together: Multi-column UNIQUE constraints
        indexes: Named indexes
        foreign_keys: Multi-column foreign keys
    """

    table_name: str | None
    primary_key: list[str] | None
    unique_together: list[list[str]] | None
    indexes: list[IndexDef] | None
    foreign_keys: list[ForeignKeyDef] | None


class TableModel(BaseModel):
    """
    Base class for declarative table models.

    Field aliases map Python field names to column names.

    Example:
        class User(TableModel):
            model_config = TableConfigDict(
                table_name="users",
                indexes=[IndexDef(name="users_name_idx", columns=["name"])],
            )

            id: Annotated[int, PrimaryKey()]
            name: str
            email: Annotated[str | None, Unique()] = None
    """

    model_config = ConfigDict(
        populate_by_name=True,
    )

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Register subclasses in the model registry for schema introspection."""
        super().__init_subclass__(**kwargs)
        # Only register concrete models, not intermediate base classes
        if cls.__name__ != "TableModel" and not cls.__name__.startswith("_"):
            if cls not in _MODEL_REGISTRY:
                _MODEL_REGISTRY.append(cls)

    @classmethod
    def get_table_name(cls) -> str:
        """
        Get the table name for the model.

        Returns the table_name from model_config if set,
        otherwise returns the class name.
        """
        table_name = cls.model_config.get("table_name", None)
        if isinstance(table_name, str):
            return table_name
        return cls.__name__

    @classmethod
    def get_primary_key(cls) -> list[str]:
        return list(cls.model_config.get("primary_key", None) or [])

    @classmethod
    def get_unique_together(cls) -> list[list[str]]:
        return [list(columns) for columns in cls.model_config.get("unique_together", None) or []]

    @classmethod
    def get_indexes(cls) -> list[IndexDef]:
        return list(cls.model_config.get("indexes", None) or [])

    @classmethod
    def get_foreign_keys(cls) -> list[ForeignKeyDef]:
        return list(cls.model_config.get("foreign_keys", None) or [])


__all__ = ["TableModel", "TableConfigDict", "get_registered_models", "clear_model_registry"]
