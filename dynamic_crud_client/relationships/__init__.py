"""Foreign-key inference, related-row loading and display labels."""

from .inference import (
    STATIC_FIELD_TABLES,
    alternate_table_name,
    infer_relationship,
    is_foreign_key_name,
    pluralize,
    singularize,
)
from .labels import label_for
from .resolver import RelationshipResolver

__all__ = [
    "STATIC_FIELD_TABLES",
    "RelationshipResolver",
    "alternate_table_name",
    "infer_relationship",
    "is_foreign_key_name",
    "label_for",
    "pluralize",
    "singularize",
]
