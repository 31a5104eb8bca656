"""Pydantic v2 models for resource descriptors.

A :class:`ResourceSpec` is the normalised, immutable form of the resource
name and field tokens typed on the command line.  :func:`storage_for` is the
only place that maps an abstract field type to its SQL column type and its
Python annotation; templates and the schema builder read it from here.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class FieldType(str, Enum):
    """Closed set of abstract field types accepted in field tokens."""

    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    TIMESTAMP = "timestamp"
    UUID = "uuid"
    JSON = "json"
    REFERENCE = "reference"


TYPE_ALIASES: dict[str, FieldType] = {
    "string": FieldType.TEXT,
    "str": FieldType.TEXT,
    "int": FieldType.INTEGER,
    "bool": FieldType.BOOLEAN,
    "datetime": FieldType.TIMESTAMP,
    "references": FieldType.REFERENCE,
}


# ---------------------------------------------------------------------------
# Storage mapping
# ---------------------------------------------------------------------------


class StorageType(BaseModel):
    """Where a field type lands: an SQLite column type and a Python annotation."""

    model_config = ConfigDict(frozen=True)

    sql_type: str = Field(..., description="Column type in the generated migration")
    python_type: str = Field(..., description="Annotation used in generated models")
    python_import: Optional[tuple[str, str]] = Field(
        default=None, description="``(module, name)`` needed by the annotation"
    )
    sample: str = Field(
        ..., description="Python literal of a valid value, used by generated tests"
    )


_STORAGE: dict[FieldType, StorageType] = {
    FieldType.TEXT: StorageType(sql_type="TEXT", python_type="str", sample='"sample"'),
    FieldType.INTEGER: StorageType(sql_type="INTEGER", python_type="int", sample="1"),
    FieldType.FLOAT: StorageType(sql_type="REAL", python_type="float", sample="1.5"),
    FieldType.BOOLEAN: StorageType(sql_type="BOOLEAN", python_type="bool", sample="True"),
    FieldType.DATE: StorageType(
        sql_type="DATE",
        python_type="date",
        python_import=("datetime", "date"),
        sample='"2025-01-01"',
    ),
    FieldType.TIMESTAMP: StorageType(
        sql_type="TIMESTAMP",
        python_type="datetime",
        python_import=("datetime", "datetime"),
        sample='"2025-01-01T00:00:00"',
    ),
    FieldType.UUID: StorageType(
        sql_type="TEXT",
        python_type="UUID",
        python_import=("uuid", "UUID"),
        sample='"00000000-0000-0000-0000-000000000001"',
    ),
    FieldType.JSON: StorageType(
        sql_type="TEXT",
        python_type="dict[str, Any]",
        python_import=("typing", "Any"),
        sample="{}",
    ),
    # Foreign keys point at the INTEGER primary key of the referenced table.
    FieldType.REFERENCE: StorageType(sql_type="INTEGER", python_type="int", sample="1"),
}


def storage_for(field_type: FieldType) -> StorageType:
    """Return the storage mapping for *field_type*.

    Total over :class:`FieldType`; every member has an entry.
    """
    return _STORAGE[field_type]


# ---------------------------------------------------------------------------
# Field & resource models
# ---------------------------------------------------------------------------


class FieldSpec(BaseModel):
    """One resource field parsed from a ``name:type[:modifier...]`` token."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Field identifier as typed by the user")
    type: FieldType = Field(..., description="Abstract field type")
    reference: Optional[str] = Field(
        default=None, description="Singular name of the referenced resource"
    )
    referenced_table: Optional[str] = Field(
        default=None, description="Table holding the referenced resource"
    )
    referenced_column: Optional[str] = Field(
        default=None, description="Column the foreign key points at (``id`` unless given)"
    )
    max_length: Optional[int] = Field(
        default=None, gt=0, description="Maximum length of a sized text field"
    )
    nullable: bool = Field(default=False, description="Whether NULL is allowed")
    unique: bool = Field(default=False, description="Whether values must be unique")
    indexed: bool = Field(default=False, description="Whether to create an index")
    external: bool = Field(
        default=False, description="Reference target is not checked against the workspace"
    )

    @property
    def is_reference(self) -> bool:
        return self.type is FieldType.REFERENCE

    @property
    def column(self) -> str:
        """Column (and model attribute) name: ``<name>_id`` for references."""
        if self.is_reference:
            return f"{self.name}_id"
        return self.name

    @property
    def storage(self) -> StorageType:
        return storage_for(self.type)

    @property
    def sql_type(self) -> str:
        if self.max_length is not None:
            return f"VARCHAR({self.max_length})"
        return self.storage.sql_type

    @property
    def sample(self) -> str:
        """Python literal of a value the generated changeset accepts."""
        if self.max_length is not None:
            return '"' + "sample"[: self.max_length] + '"'
        return self.storage.sample

    @property
    def annotation(self) -> str:
        """Python annotation, widened with ``| None`` when nullable."""
        base = self.storage.python_type
        return f"{base} | None" if self.nullable else base


class ResourceSpec(BaseModel):
    """A named resource with its ordered fields.

    Field order is significant: it fixes both the model attribute order and
    the column order of the generated migration.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Normalised singular snake_case name")
    singular: str = Field(..., description="Singular form, e.g. 'invoice_item'")
    plural: str = Field(..., description="Plural form, e.g. 'invoice_items'")
    class_name: str = Field(..., description="PascalCase singular, e.g. 'InvoiceItem'")
    fields: tuple[FieldSpec, ...] = Field(default=(), description="Fields in input order")

    @property
    def table(self) -> str:
        return self.plural

    @property
    def columns(self) -> list[str]:
        """Column names in order, not counting the implicit ``id`` key."""
        return [f.column for f in self.fields]

    @property
    def references(self) -> list[FieldSpec]:
        return [f for f in self.fields if f.is_reference]

    @property
    def has_sized_fields(self) -> bool:
        return any(f.max_length is not None for f in self.fields)

    def python_imports(self) -> list[tuple[str, list[str]]]:
        """Group the imports needed by field annotations, sorted by module."""
        grouped: dict[str, set[str]] = {}
        for f in self.fields:
            imp = f.storage.python_import
            if imp is not None:
                grouped.setdefault(imp[0], set()).add(imp[1])
        return [(module, sorted(names)) for module, names in sorted(grouped.items())]
