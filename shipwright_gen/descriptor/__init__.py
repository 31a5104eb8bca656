"""Resource descriptor parser.

Normalises a resource name and its ``name:type[:modifier...]`` field tokens
into an immutable :class:`ResourceSpec`.

Usage::

    from shipwright_gen.descriptor import parse

    resource = parse("comment", ["body:text", "post:reference"])
    print(resource.plural)    # comments
    print(resource.columns)   # ['body', 'post_id']
"""

from shipwright_gen.descriptor.inflection import Inflector
from shipwright_gen.descriptor.models import (
    FieldSpec,
    FieldType,
    ResourceSpec,
    StorageType,
    storage_for,
)
from shipwright_gen.descriptor.parser import check_references, parse

__all__ = [
    "parse",
    "check_references",
    "Inflector",
    "FieldSpec",
    "FieldType",
    "ResourceSpec",
    "StorageType",
    "storage_for",
]
