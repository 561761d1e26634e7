"""Pydantic schemas for the Dynamic CRUD Client."""

from .crud_schema import CrudResult, FormRecord, ListPayload, Pagination, UsageLimitInfo
from .session_schema import CacheEntry, TokenPair
from .table_schema import (
    ColumnMetadata,
    FieldSpec,
    RelatedOption,
    Relationship,
    RelationshipMetadata,
    SchemaMetadata,
    TableMetadata,
    TableSchema,
)

__all__ = [
    "CacheEntry",
    "ColumnMetadata",
    "CrudResult",
    "FieldSpec",
    "FormRecord",
    "ListPayload",
    "Pagination",
    "RelatedOption",
    "Relationship",
    "RelationshipMetadata",
    "SchemaMetadata",
    "TableMetadata",
    "TableSchema",
    "TokenPair",
    "UsageLimitInfo",
]
