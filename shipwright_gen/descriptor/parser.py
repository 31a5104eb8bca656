"""Resource descriptor parsing.

Turns a raw resource name and ``name:type[=target][:modifier...]`` field
tokens into a :class:`ResourceSpec`.  Parsing does no I/O; checking that
reference targets exist is a separate step (:func:`check_references`)
because it needs the table names discovered in the workspace.

Examples of accepted tokens::

    title:text
    name:text256                   # -> VARCHAR(256), max_length=256
    age:integer:nullable
    email:text:unique:index
    post:reference                 # -> post_id, references posts(id)
    author:reference=user          # -> author_id, references users(id)
    owner:reference=account:external
    avatar:reference=avatars(uuid) # -> avatar_id, references avatars(uuid)
"""

from __future__ import annotations

import keyword
import re
from collections.abc import Collection, Sequence

from pydantic import BaseModel

from shipwright_gen.errors import (
    DuplicateFieldNameError,
    InvalidReferenceError,
    InvalidResourceNameError,
    MalformedFieldError,
    UnknownFieldTypeError,
    UnknownModifierError,
)

from .inflection import Inflector, to_pascal_case, to_snake_case
from .models import TYPE_ALIASES, FieldSpec, FieldType, ResourceSpec, storage_for


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_IDENTIFIER = re.compile(r"^[a-z][a-z0-9_]*$")
_FIELD_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_SIZED_TEXT = re.compile(r"^(?:text|string|str)(\d+)$")
_REFERENCE_TARGET = re.compile(r"^([A-Za-z][A-Za-z0-9_]*)(?:\(([A-Za-z_][A-Za-z0-9_]*)\))?$")

# Generated for every table; users cannot declare it.
RESERVED_COLUMNS = frozenset({"id"})

# Names a generated entity module binds at class or module level.  A field
# with one of these names would shadow an annotation or a pydantic member.
RESERVED_FIELD_NAMES = frozenset(
    {"model_config", "BaseModel", "ConfigDict", "Field", "TABLE"}
    | {name for name in dir(BaseModel) if not name.startswith("_")}
    | {
        name
        for field_type in FieldType
        for name in re.findall(r"[A-Za-z_]\w*", storage_for(field_type).python_type)
    }
)

MODIFIERS = frozenset({"nullable", "unique", "index", "external"})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse(
    raw_name: str,
    raw_field_tokens: Sequence[str],
    inflector: Inflector | None = None,
) -> ResourceSpec:
    """Parse a resource name and its field tokens.

    Args:
        raw_name: Resource name in any case style, singular or plural
            (``"InvoiceItem"``, ``"invoice_items"``).
        raw_field_tokens: Field tokens in the order they should appear in
            the generated model and table.
        inflector: Inflection rules; defaults to the built-in table.

    Returns:
        The normalised resource.

    Raises:
        DescriptorError: For an invalid name or any invalid token.
    """
    inflector = inflector or Inflector()
    singular = _normalise_name(raw_name, inflector)
    plural = inflector.pluralize(singular)

    fields: list[FieldSpec] = []
    seen: dict[str, str] = {}
    for token in raw_field_tokens:
        spec = _parse_field(token, inflector)
        for key in dict.fromkeys((spec.name.lower(), spec.column.lower())):
            if key in seen:
                raise DuplicateFieldNameError(key, seen[key], token)
            seen[key] = token
        fields.append(spec)

    return ResourceSpec(
        name=singular,
        singular=singular,
        plural=plural,
        class_name=to_pascal_case(singular),
        fields=tuple(fields),
    )


def check_references(resource: ResourceSpec, known_tables: Collection[str]) -> None:
    """Ensure every reference points at an existing table.

    A reference is accepted when its table is in *known_tables*, when it
    points back at *resource* itself, or when it was marked ``external``.

    Raises:
        InvalidReferenceError: Listing every reference that failed the check.
    """
    missing = [
        f
        for f in resource.references
        if not f.external
        and f.referenced_table != resource.table
        and f.referenced_table not in known_tables
    ]
    if missing:
        detail = ", ".join(f"{f.name} -> {f.referenced_table}" for f in missing)
        raise InvalidReferenceError(
            f"Referenced tables not found in the workspace: {detail}. "
            "Generate them first or mark the field ':external'.",
            fields=[f.name for f in missing],
        )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _normalise_name(raw_name: str, inflector: Inflector) -> str:
    if not raw_name or not raw_name.strip():
        raise InvalidResourceNameError(raw_name, "name must not be empty")
    snake = to_snake_case(raw_name)
    if not _IDENTIFIER.match(snake):
        raise InvalidResourceNameError(
            raw_name, "use letters, digits and underscores, starting with a letter"
        )
    singular = inflector.singularize(snake)
    if keyword.iskeyword(singular) or keyword.iskeyword(inflector.pluralize(singular)):
        raise InvalidResourceNameError(raw_name, "name is a Python keyword")
    return singular


def _parse_field(token: str, inflector: Inflector) -> FieldSpec:
    parts = token.strip().split(":")
    if len(parts) < 2 or not parts[1]:
        raise MalformedFieldError(token, "expected 'name:type[:modifier...]'")

    name, type_spec, modifiers = parts[0], parts[1], parts[2:]
    if not _FIELD_NAME.match(name) or keyword.iskeyword(name):
        raise MalformedFieldError(token, f"'{name}' is not a valid identifier")
    if name.lower() in RESERVED_COLUMNS:
        raise MalformedFieldError(token, f"'{name}' is generated automatically")

    type_tag, has_target, target = type_spec.partition("=")
    field_type, max_length = _resolve_type(token, type_tag.lower())

    flags: set[str] = set()
    for modifier in modifiers:
        modifier = modifier.lower()
        if modifier not in MODIFIERS:
            raise UnknownModifierError(token, modifier)
        flags.add(modifier)

    reference: str | None = None
    referenced_table: str | None = None
    referenced_column: str | None = None
    if field_type is FieldType.REFERENCE:
        if has_target and not target:
            raise InvalidReferenceError(
                f"Reference field '{token}' is missing its target name", fields=[name]
            )
        match = _REFERENCE_TARGET.match(target or name)
        target_name = to_snake_case(match.group(1)) if match else ""
        if not _IDENTIFIER.match(target_name):
            raise InvalidReferenceError(
                f"Reference target '{target or name}' in '{token}' is not a valid name",
                fields=[name],
            )
        if match.group(2):
            # ``table(column)`` names the table and key explicitly.
            referenced_table = target_name
            referenced_column = match.group(2)
            reference = inflector.singularize(target_name)
        else:
            reference = inflector.singularize(target_name)
            referenced_table = inflector.pluralize(reference)
            referenced_column = "id"
    else:
        if has_target:
            raise InvalidReferenceError(
                f"Only reference fields take a target ('{token}')", fields=[name]
            )
        if "external" in flags:
            raise MalformedFieldError(token, "'external' applies to reference fields only")

    column = f"{name}_id" if field_type is FieldType.REFERENCE else name
    if column in RESERVED_FIELD_NAMES or column.startswith("model_"):
        raise MalformedFieldError(
            token, f"'{column}' clashes with a name the generated model already uses"
        )

    return FieldSpec(
        name=name,
        type=field_type,
        reference=reference,
        referenced_table=referenced_table,
        referenced_column=referenced_column,
        max_length=max_length,
        nullable="nullable" in flags,
        unique="unique" in flags,
        indexed="index" in flags,
        external="external" in flags,
    )


def _resolve_type(token: str, type_tag: str) -> tuple[FieldType, int | None]:
    """Return the field type and, for ``text256``-style tags, the size."""
    sized = _SIZED_TEXT.match(type_tag)
    if sized:
        size = int(sized.group(1))
        if size < 1:
            raise MalformedFieldError(token, "text size must be at least 1")
        return FieldType.TEXT, size
    if type_tag in TYPE_ALIASES:
        return TYPE_ALIASES[type_tag], None
    try:
        return FieldType(type_tag), None
    except ValueError:
        known = [t.value for t in FieldType] + list(TYPE_ALIASES) + ["text<size>"]
        raise UnknownFieldTypeError(token, type_tag, known) from None
