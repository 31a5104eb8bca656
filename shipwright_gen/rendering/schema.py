"""SQLite DDL for the table of a resource.

:func:`build_schema` turns a :class:`ResourceSpec` into statement models;
each statement renders itself with :meth:`sql`.  The migration template
only calls :meth:`MigrationSchema.sql`, so the exact SQL text lives here and is tested
directly.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from shipwright_gen.descriptor.models import ResourceSpec

PRIMARY_KEY = "id"

_INDENT = "    "


def quote(identifier: str) -> str:
    """Quote an SQLite identifier."""
    return '"' + identifier.replace('"', '""') + '"'


# ---------------------------------------------------------------------------
# Statement models
# ---------------------------------------------------------------------------


class ColumnDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    sql_type: str
    nullable: bool = False
    unique: bool = False
    primary_key: bool = False

    def sql(self) -> str:
        parts = [quote(self.name), self.sql_type]
        if self.primary_key:
            parts.append("PRIMARY KEY")
        if not self.nullable:
            parts.append("NOT NULL")
        if self.unique:
            parts.append("UNIQUE")
        return " ".join(parts)


class ForeignKeyConstraint(BaseModel):
    """``FOREIGN KEY`` clause for a reference column."""

    model_config = ConfigDict(frozen=True)

    column: str
    table: str
    referenced_column: str = PRIMARY_KEY
    on_delete: str = Field(default="CASCADE", description="CASCADE or SET NULL")
    on_update: str = "CASCADE"

    def sql(self) -> str:
        return (
            f"FOREIGN KEY ({quote(self.column)}) "
            f"REFERENCES {quote(self.table)} ({quote(self.referenced_column)}) "
            f"ON DELETE {self.on_delete} ON UPDATE {self.on_update}"
        )


class CreateTableStatement(BaseModel):
    model_config = ConfigDict(frozen=True)

    table: str
    columns: tuple[ColumnDefinition, ...]
    foreign_keys: tuple[ForeignKeyConstraint, ...] = ()

    def sql(self) -> str:
        lines = [c.sql() for c in self.columns] + [fk.sql() for fk in self.foreign_keys]
        body = ",\n".join(_INDENT + line for line in lines)
        return f"CREATE TABLE IF NOT EXISTS {quote(self.table)} (\n{body}\n)"


class CreateIndexStatement(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    table: str
    column: str

    def sql(self) -> str:
        return (
            f"CREATE INDEX IF NOT EXISTS {quote(self.name)} "
            f"ON {quote(self.table)} ({quote(self.column)})"
        )


class MigrationSchema(BaseModel):
    """All statements of one create-table migration, in execution order."""

    model_config = ConfigDict(frozen=True)

    table: CreateTableStatement
    indexes: tuple[CreateIndexStatement, ...] = ()
    comment: Optional[str] = Field(default=None, description="Header comment line")

    @property
    def statements(self) -> list[str]:
        return [self.table.sql()] + [index.sql() for index in self.indexes]

    def sql(self) -> str:
        """Return the full script, each statement terminated by ``;``."""
        header = f"-- {self.comment}\n" if self.comment else ""
        return header + "\n\n".join(f"{s};" for s in self.statements) + "\n"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def build_schema(resource: ResourceSpec) -> MigrationSchema:
    """Build the create-table migration for *resource*.

    Columns follow field order after the implicit ``id`` primary key;
    foreign keys follow in the same order.  A nullable reference is set to
    NULL when its target row is deleted, a required one is deleted with it.
    """
    columns = [ColumnDefinition(name=PRIMARY_KEY, sql_type="INTEGER", primary_key=True)]
    foreign_keys: list[ForeignKeyConstraint] = []
    indexes: list[CreateIndexStatement] = []

    for field in resource.fields:
        columns.append(
            ColumnDefinition(
                name=field.column,
                sql_type=field.sql_type,
                nullable=field.nullable,
                unique=field.unique,
            )
        )
        if field.is_reference:
            foreign_keys.append(
                ForeignKeyConstraint(
                    column=field.column,
                    table=field.referenced_table or "",
                    referenced_column=field.referenced_column or PRIMARY_KEY,
                    on_delete="SET NULL" if field.nullable else "CASCADE",
                )
            )
        if field.indexed:
            indexes.append(
                CreateIndexStatement(
                    name=f"idx_{resource.table}_{field.column}",
                    table=resource.table,
                    column=field.column,
                )
            )

    return MigrationSchema(
        table=CreateTableStatement(
            table=resource.table,
            columns=tuple(columns),
            foreign_keys=tuple(foreign_keys),
        ),
        indexes=tuple(indexes),
        comment=f"Create {resource.table} table",
    )
