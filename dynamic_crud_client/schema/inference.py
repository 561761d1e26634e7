"""
Pure schema inference functions.

Every input maps to a defined output: column metadata, sample values and bare
table names all resolve to a semantic type without raising.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..constants import (
    FOREIGN_KEY_SUFFIX,
    PRIMARY_KEY_FIELD,
    TIMESTAMP_FIELDS,
    FormMode,
    SchemaSource,
    SemanticType,
)
from ..schemas.table_schema import ColumnMetadata, FieldSpec, TableMetadata, TableSchema

DEFAULT_LONGTEXT_THRESHOLD = 255

_ISO_DATETIME = re.compile(
    r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$"
)
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_NUMERIC_STORAGE = ("numeric", "decimal", "float", "double", "real", "money")

# Guessed columns for common table names, checked in order against the table name
_NAME_GUESSES: Tuple[Tuple[str, Tuple[Tuple[str, SemanticType], ...]], ...] = (
    (
        "user",
        (
            ("username", SemanticType.TEXT),
            ("email", SemanticType.TEXT),
            ("password_hash", SemanticType.TEXT),
            ("role_id", SemanticType.ID),
        ),
    ),
    (
        "product",
        (
            ("name", SemanticType.TEXT),
            ("description", SemanticType.LONGTEXT),
            ("price", SemanticType.NUMBER),
            ("stock", SemanticType.INTEGER),
        ),
    ),
    (
        "order",
        (
            ("customer_id", SemanticType.ID),
            ("total", SemanticType.NUMBER),
            ("status", SemanticType.TEXT),
        ),
    ),
    (
        "post",
        (
            ("title", SemanticType.TEXT),
            ("content", SemanticType.LONGTEXT),
            ("author_id", SemanticType.ID),
            ("published", SemanticType.BOOLEAN),
        ),
    ),
    (
        "customer",
        (
            ("name", SemanticType.TEXT),
            ("email", SemanticType.TEXT),
            ("phone", SemanticType.TEXT),
        ),
    ),
    (
        "role",
        (
            ("name", SemanticType.TEXT),
            ("description", SemanticType.TEXT),
        ),
    ),
)


def is_id_name(name: str) -> bool:
    """Whether a column name looks like a primary or foreign key."""
    return name == PRIMARY_KEY_FIELD or name.endswith(FOREIGN_KEY_SUFFIX)


# ==================== METADATA ====================


def semantic_type_for_column(name: str, storage_type: Optional[str]) -> SemanticType:
    """
    Map a declared column to its semantic type.

    Args:
        name: Column name
        storage_type: Backend storage type name (e.g. "uuid", "timestamptz")

    Returns:
        Semantic type
    """
    storage = (storage_type or "").lower()
    if "uuid" in storage or "int" in storage or is_id_name(name):
        return SemanticType.ID
    if "timestamp" in storage or "date" in storage:
        return SemanticType.TIMESTAMP
    if "bool" in storage:
        return SemanticType.BOOLEAN
    if any(marker in storage for marker in _NUMERIC_STORAGE):
        return SemanticType.NUMBER
    if "text" in storage:
        return SemanticType.LONGTEXT
    return SemanticType.TEXT


def field_spec_from_column(column: ColumnMetadata) -> FieldSpec:
    """Build a FieldSpec from a declared column."""
    constraints = frozenset(c.strip().lower() for c in column.constraints if c)
    return FieldSpec(
        semantic_type=semantic_type_for_column(column.name, column.type),
        required="not null" in constraints,
        is_primary="primary key" in constraints,
        constraints=constraints,
        storage_type=column.type or None,
    )


def schema_from_metadata(table: TableMetadata) -> TableSchema:
    """Build an authoritative schema from a metadata table declaration."""
    return TableSchema(
        table_name=table.name,
        fields={column.name: field_spec_from_column(column) for column in table.columns},
        source=SchemaSource.METADATA,
    )


# ==================== SAMPLE ROWS ====================


def infer_semantic_type(
    name: str, value: Any, longtext_threshold: int = DEFAULT_LONGTEXT_THRESHOLD
) -> SemanticType:
    """
    Infer a field's semantic type from one sample value.

    Args:
        name: Field name
        value: Sample value as decoded from JSON
        longtext_threshold: Strings longer than this are longtext

    Returns:
        Semantic type
    """
    if isinstance(value, bool):
        return SemanticType.BOOLEAN
    if isinstance(value, int):
        return SemanticType.INTEGER
    if isinstance(value, float):
        return SemanticType.INTEGER if value.is_integer() else SemanticType.NUMBER
    if isinstance(value, str):
        if _ISO_DATETIME.match(value):
            return SemanticType.TIMESTAMP
        if _ISO_DATE.match(value):
            return SemanticType.DATE
    if is_id_name(name):
        return SemanticType.ID
    if isinstance(value, str) and len(value) > longtext_threshold:
        return SemanticType.LONGTEXT
    return SemanticType.TEXT


def schema_from_sample(
    table_name: str,
    row: Mapping[str, Any],
    longtext_threshold: int = DEFAULT_LONGTEXT_THRESHOLD,
) -> TableSchema:
    """Infer a schema from a single sample row."""
    fields = {
        name: FieldSpec(
            semantic_type=infer_semantic_type(name, value, longtext_threshold),
            is_primary=name == PRIMARY_KEY_FIELD,
        )
        for name, value in row.items()
    }
    return TableSchema(table_name=table_name, fields=fields, source=SchemaSource.SAMPLE)


# ==================== DEFAULT FALLBACK ====================


def guessed_columns(table_name: str) -> List[Tuple[str, SemanticType]]:
    """Columns guessed from the table name; empty when nothing matches."""
    lowered = table_name.lower()
    for stem, columns in _NAME_GUESSES:
        if stem in lowered:
            return list(columns)
    return []


def default_schema(table_name: str) -> TableSchema:
    """
    Placeholder schema for tables with no metadata and no rows.

    Always contains id and both timestamps, plus guesses based on the name.
    """
    fields: Dict[str, FieldSpec] = {
        PRIMARY_KEY_FIELD: FieldSpec(semantic_type=SemanticType.ID, is_primary=True),
    }
    for name, semantic_type in guessed_columns(table_name):
        fields[name] = FieldSpec(semantic_type=semantic_type)
    for name in TIMESTAMP_FIELDS:
        fields[name] = FieldSpec(semantic_type=SemanticType.TIMESTAMP)
    return TableSchema(table_name=table_name, fields=fields, source=SchemaSource.DEFAULT)


# ==================== REQUIRED FIELDS ====================


def required_fields(schema: TableSchema, mode: FormMode) -> List[str]:
    """
    Fields that must carry a value for a submission.

    Timestamps are always excluded; the primary key is excluded on create.
    """
    excluded: Iterable[str] = TIMESTAMP_FIELDS
    if mode == FormMode.CREATE:
        excluded = (*TIMESTAMP_FIELDS, schema.primary_key)
    return [
        name
        for name, spec in schema.fields.items()
        if spec.required and name not in excluded
    ]
