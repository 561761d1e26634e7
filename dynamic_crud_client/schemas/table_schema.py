"""
Pydantic schemas for table shapes and relationships.

Covers both the metadata document produced by an upstream "describe all
tables" step and the resolved per-session view of a table.
"""

from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import PRIMARY_KEY_FIELD, RelationshipOrigin, SchemaSource, SemanticType


# ==================== METADATA DOCUMENT ====================


class ColumnMetadata(BaseModel):
    """One declared column."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, description="Column name")
    type: str = Field(default="", description="Backend storage type name")
    constraints: List[str] = Field(default_factory=list, description="Declared constraints")


class RelationshipMetadata(BaseModel):
    """One declared relationship; incomplete declarations are tolerated and skipped."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    target_table: Optional[str] = Field(default=None, alias="targetTable")
    type: Optional[str] = Field(default=None, description="e.g. one-to-many")
    source_column: Optional[str] = Field(default=None, alias="sourceColumn")
    target_column: Optional[str] = Field(default=None, alias="targetColumn")

    @property
    def is_complete(self) -> bool:
        return bool(self.target_table and self.type and self.source_column and self.target_column)


class TableMetadata(BaseModel):
    """A declared table."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    columns: List[ColumnMetadata] = Field(default_factory=list)
    relationships: List[RelationshipMetadata] = Field(default_factory=list)

    def declared_relationships(self) -> List[RelationshipMetadata]:
        """Complete relationship declarations only."""
        return [rel for rel in self.relationships if rel.is_complete]

    @property
    def primary_key(self) -> str:
        """First column constrained as the primary key, else `id`."""
        for column in self.columns:
            if any(c.strip().lower() == "primary key" for c in column.constraints if c):
                return column.name
        return PRIMARY_KEY_FIELD


class SchemaMetadata(BaseModel):
    """Metadata for every table the backend exposes."""

    model_config = ConfigDict(extra="ignore")

    tables: List[TableMetadata] = Field(default_factory=list)

    def table(self, name: str) -> Optional[TableMetadata]:
        """Find a table by exact name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    @property
    def table_names(self) -> List[str]:
        return [table.name for table in self.tables]


# ==================== RESOLVED SCHEMA ====================


class FieldSpec(BaseModel):
    """One column's contract; immutable once computed."""

    model_config = ConfigDict(frozen=True)

    semantic_type: SemanticType = Field(description="Abstract field kind")
    required: bool = Field(default=False, description="Declared not-null")
    is_primary: bool = Field(default=False, description="Declared primary key")
    constraints: FrozenSet[str] = Field(default_factory=frozenset)
    storage_type: Optional[str] = Field(
        default=None, description="Backend storage type when known from metadata"
    )


class TableSchema(BaseModel):
    """Inferred or declared shape of a table."""

    table_name: str
    fields: Dict[str, FieldSpec] = Field(default_factory=dict)
    source: SchemaSource = Field(description="Which resolution step produced this schema")

    @property
    def is_authoritative(self) -> bool:
        """The default fallback is only a placeholder for empty-state forms."""
        return self.source != SchemaSource.DEFAULT

    @property
    def field_names(self) -> List[str]:
        return list(self.fields)

    @property
    def primary_key(self) -> str:
        for name, spec in self.fields.items():
            if spec.is_primary:
                return name
        return PRIMARY_KEY_FIELD

    def get(self, field: str) -> Optional[FieldSpec]:
        return self.fields.get(field)


class Relationship(BaseModel):
    """A field that references another table."""

    model_config = ConfigDict(frozen=True)

    source_table: str
    source_field: str
    target_table: str
    target_field: str = PRIMARY_KEY_FIELD
    origin: RelationshipOrigin


class RelatedOption(BaseModel):
    """A picker entry for a foreign-key field."""

    value: Any
    label: str
