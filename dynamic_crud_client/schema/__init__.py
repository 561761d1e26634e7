"""Table schema inference and resolution."""

from .inference import (
    default_schema,
    field_spec_from_column,
    infer_semantic_type,
    required_fields,
    schema_from_metadata,
    schema_from_sample,
    semantic_type_for_column,
)
from .resolver import SchemaResolver

__all__ = [
    "SchemaResolver",
    "default_schema",
    "field_spec_from_column",
    "infer_semantic_type",
    "required_fields",
    "schema_from_metadata",
    "schema_from_sample",
    "semantic_type_for_column",
]
