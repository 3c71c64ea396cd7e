from __future__ import annotations

import logging
from typing import Any, Callable

from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import Column, Connection, String, inspect, text
from sqlalchemy.types import TypeEngine

logger = logging.getLogger(__name__)

TightenStrategy = Callable[["ColumnEvolver", str, str, TypeEngine], None]
DropStrategy = Callable[["ColumnEvolver", str, str], None]


def _tighten_with_template(template: str) -> TightenStrategy:
    def apply(evolver: ColumnEvolver, table: str, column: str, type_: TypeEngine) -> None:
        evolver.connection.execute(text(template.format(table=table, column=column)))

    return apply


def _tighten_with_alter(evolver: ColumnEvolver, table: str, column: str, type_: TypeEngine) -> None:
    evolver.ops.alter_column(table, column, existing_type=type_, nullable=False)


def _tighten_with_batch(evolver: ColumnEvolver, table: str, column: str, type_: TypeEngine) -> None:
    with evolver.ops.batch_alter_table(table) as batch_op:
        batch_op.alter_column(column, existing_type=type_, nullable=False)


def _drop_with_alter(evolver: ColumnEvolver, table: str, column: str) -> None:
    evolver.ops.drop_column(table, column)


def _drop_with_batch(evolver: ColumnEvolver, table: str, column: str) -> None:
    with evolver.ops.batch_alter_table(table) as batch_op:
        batch_op.drop_column(column)


# Backends with no native ALTER support or no SQLAlchemy dialect. Anything
# absent falls back to alembic's own dialect-aware operations.
TIGHTEN_STRATEGIES: dict[str, TightenStrategy] = {
    "derby": _tighten_with_template("ALTER TABLE {table} ALTER COLUMN {column} NOT NULL"),
    "sqlite": _tighten_with_batch,
}
DROP_STRATEGIES: dict[str, DropStrategy] = {
    "sqlite": _drop_with_batch,
}


class ColumnEvolver:
    def __init__(self, connection: Connection, database_type: str) -> None:
        self.connection = connection
        self.database_type = database_type.lower()
        self.ops = Operations(MigrationContext.configure(connection))

    def _column(self, table: str, column: str) -> dict[str, Any] | None:
        for info in inspect(self.connection).get_columns(table):
            if info["name"].lower() == column.lower():
                return info
        return None

    def has_column(self, table: str, column: str) -> bool:
        return self._column(table, column) is not None

    def ensure_column(
        self,
        table: str,
        column: str,
        type_: type[TypeEngine] = String,
        size: int | None = None,
        default_value: str | None = None,
        nullable: bool = True,
    ) -> bool:
        if self.has_column(table, column):
            logger.debug("Column %s.%s already exists", table, column)
            return False

        logger.info("Adding %s column to %s table.", column, table)
        column_type = type_(size) if size is not None else type_()
        self.ops.add_column(
            table,
            Column(column, column_type, nullable=nullable, server_default=default_value),
        )
        return True

    def drop_column_if_present(self, table: str, column: str) -> bool:
        if not self.has_column(table, column):
            return False

        logger.info("Dropping %s column from %s table.", column, table)
        DROP_STRATEGIES.get(self.database_type, _drop_with_alter)(self, table, column)
        return True

    def tighten_to_not_null(
        self,
        table: str,
        column: str,
        type_: type[TypeEngine] = String,
        size: int | None = None,
    ) -> bool:
        info = self._column(table, column)
        if info is None:
            raise LookupError(f"Column {table}.{column} does not exist")
        if not info["nullable"]:
            return False

        logger.info("Making %s column in the %s table non-nullable.", column, table)
        column_type = type_(size) if size is not None else type_()
        TIGHTEN_STRATEGIES.get(self.database_type, _tighten_with_alter)(self, table, column, column_type)
        return True
