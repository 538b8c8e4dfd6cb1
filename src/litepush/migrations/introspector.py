"""
Model introspection for schema pushes.

This module extracts schema information from declarative table models to
build a SchemaState that can be compared against the current database state.
"""

import types
import typing
from typing import TYPE_CHECKING, Any, get_args, get_origin

from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined

from ..exceptions import UnsupportedTypeError
from ..fields import AutoIncrement, DefaultSQL, PrimaryKey, References, SQLType, Unique
from ..types import ColumnType
from .sql import SqlExpression, sql_literal
from .state import SchemaState, Table

if TYPE_CHECKING:
    from ..model_base import TableModel


def _column_name(name: str, field_info: FieldInfo) -> str:
    return field_info.alias or name


def _marker(field_info: FieldInfo, marker_type: type) -> Any:
    for item in field_info.metadata:
        if isinstance(item, marker_type):
            return item
    return None


class ModelIntrospector:
    """
    Extracts schema information from table models.

    Tables, columns, primary keys, unique constraints and indexes are built
    in a first pass over every model. Foreign keys are attached in a second
    pass, once every target table exists.
    """

    def __init__(self, models: list[type["TableModel"]] | None = None, prefix: str | None = None):
        """
        Initialize the introspector with a list of models.

        Args:
            models: List of model classes to introspect. If None, uses
                    all registered models.
            prefix: Only keep tables whose name starts with this prefix
        """
        if models is None:
            from ..model_base import get_registered_models

            models = get_registered_models()
        self.models = models
        self.prefix = prefix

    def introspect(self) -> SchemaState:
        """
        Build SchemaState from the models.

        Returns:
            SchemaState representing all model definitions

        Raises:
            UnsupportedTypeError: If a field type has no SQLite column type
            StructuralViolation: If the declarations break a schema invariant
        """
        state = SchemaState()
        models = [m for m in self.models if not self.prefix or m.get_table_name().startswith(self.prefix)]

        for model in models:
            self._introspect_model(state, model)

        for model in models:
            self._introspect_foreign_keys(state.get_table(model.get_table_name()), model)

        return state

    def _resolve(self, model: type["TableModel"], name: str) -> str:
        """Accept either a field name or a column name in table-level config."""
        field_info = model.model_fields.get(name)
        if field_info is not None:
            return _column_name(name, field_info)
        return name

    def _introspect_model(self, state: SchemaState, model: type["TableModel"]) -> Table:
        table = state.create_table(model.get_table_name())
        primary_key: list[str] = []

        for field_name, field_info in model.model_fields.items():
            column_name = _column_name(field_name, field_info)
            column_type, nullable = self._column_type(field_name, field_info)

            table.create_column(
                column_name,
                column_type,
                not_null=not nullable,
                default=self._default(field_info),
                auto_increment=_marker(field_info, AutoIncrement) is not None,
                unique=_marker(field_info, Unique) is not None,
            )

            if _marker(field_info, PrimaryKey) is not None:
                primary_key.append(column_name)

        if not primary_key:
            primary_key = [self._resolve(model, name) for name in model.get_primary_key()]
        table.set_primary_key(*primary_key)

        for columns in model.get_unique_together():
            table.create_unique([self._resolve(model, name) for name in columns])

        for index in model.get_indexes():
            columns = [self._resolve(model, name) for name in index.columns]
            # Unique indexes are declared as constraints on the table
            if index.unique:
                table.create_unique(columns)
            else:
                table.create_index(index.name, columns)

        return table

    def _introspect_foreign_keys(self, table: Table, model: type["TableModel"]) -> None:
        for field_name, field_info in model.model_fields.items():
            reference = _marker(field_info, References)
            if reference is None:
                continue
            table.create_foreign_key(
                reference.table_name,
                [_column_name(field_name, field_info)],
                [reference.column],
                on_update=reference.on_update,
                on_delete=reference.on_delete,
            )

        for fk in model.get_foreign_keys():
            target = table.schema.get_table(fk.table_name)
            foreign_columns = list(fk.foreign_columns) or [c.name for c in target.primary_key]
            table.create_foreign_key(
                target,
                [self._resolve(model, name) for name in fk.columns],
                foreign_columns,
                on_update=fk.on_update,
                on_delete=fk.on_delete,
            )

    def _column_type(self, name: str, field_info: FieldInfo) -> tuple[ColumnType, bool]:
        """
        Map a field annotation to a column type.

        Returns:
            (column type, nullable)
        """
        type_hint = field_info.annotation
        nullable = False

        # Handle X | None and Optional[X]
        origin = get_origin(type_hint)
        if origin is types.UnionType or origin is typing.Union:
            args = get_args(type_hint)
            non_none_args = [a for a in args if a is not type(None)]
            nullable = type(None) in args
            if len(non_none_args) != 1:
                raise UnsupportedTypeError(f"Field {name} has an ambiguous union type {type_hint}", field=name)
            type_hint = non_none_args[0]

        sql_type = _marker(field_info, SQLType)
        if sql_type is not None:
            return ColumnType(sql_type.type), nullable

        # list[str], dict[str, Any], ...
        type_hint = get_origin(type_hint) or type_hint

        try:
            return ColumnType.from_python_type(type_hint), nullable
        except ValueError as e:
            raise UnsupportedTypeError(f"Unsupported type for field {name}: {type_hint}", field=name) from e

    def _default(self, field_info: FieldInfo) -> str | None:
        default_sql = _marker(field_info, DefaultSQL)
        if default_sql is not None:
            return SqlExpression(default_sql.sql, default_sql.params).to_sql()

        # Can't serialize factory, skip default
        if field_info.default is PydanticUndefined or field_info.default is None:
            return None
        return sql_literal(field_info.default)


def introspect_models(
    models: list[type["TableModel"]] | None = None,
    prefix: str | None = None,
) -> SchemaState:
    """
    Convenience function to introspect models.

    Args:
        models: List of model classes, or None to use all registered models
        prefix: Only keep tables whose name starts with this prefix

    Returns:
        SchemaState representing the models
    """
    introspector = ModelIntrospector(models, prefix=prefix)
    return introspector.introspect()
