"""
Pure foreign-key inference.

`infer_relationship` applies the precedence rules in a fixed order and is
total: every (table, field) pair yields either a Relationship or None.
"""

from typing import Iterable, List, Mapping, Optional

from ..constants import FOREIGN_KEY_SUFFIX, PRIMARY_KEY_FIELD, RelationshipOrigin
from ..schemas.table_schema import Relationship, SchemaMetadata

# Field names whose target table cannot be derived from the stem
STATIC_FIELD_TABLES: Mapping[str, str] = {
    "author_id": "users",
    "owner_id": "users",
    "creator_id": "users",
    "created_by_id": "users",
    "user_id": "users",
    "assignee_id": "users",
    "manager_id": "users",
    "reviewer_id": "users",
    "parent_id": "categories",
}


def pluralize(word: str) -> str:
    """Naive English plural: consonant+y -> ies, s/x/ch/sh -> es, else s."""
    if not word:
        return word
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "ch", "sh")):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    """Inverse of pluralize for the common cases."""
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("ses", "xes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def alternate_table_name(table: str) -> str:
    """The other grammatical number of a table name (users <-> user)."""
    singular = singularize(table)
    return pluralize(table) if singular == table else singular


def is_foreign_key_name(field: str) -> bool:
    return field != PRIMARY_KEY_FIELD and field.endswith(FOREIGN_KEY_SUFFIX)


def field_stem(field: str) -> str:
    """`customer_id` -> `customer`."""
    return field[: -len(FOREIGN_KEY_SUFFIX)] if field.endswith(FOREIGN_KEY_SUFFIX) else field


def stem_candidates(stem: str) -> List[str]:
    """Table names a stem may refer to: exact, `+s`, and `y -> ies`."""
    candidates = [stem, stem + "s"]
    if stem.endswith("y"):
        candidates.append(stem[:-1] + "ies")
    return candidates


def infer_relationship(
    table: str,
    field: str,
    metadata: Optional[SchemaMetadata] = None,
    known_tables: Iterable[str] = (),
    field_table_map: Optional[Mapping[str, str]] = None,
    primary_key: Optional[str] = None,
) -> Optional[Relationship]:
    """
    Infer the table a field references.

    Precedence:
    1. a relationship declared on the current table for this column
    2. another table's declaration targeting the current table via this column
    3. the `_id` stem matched against known tables
    4. the static field dictionary (extra mappings first)
    5. any remaining `_id` field guessed as `<stem>s`

    The table's own primary key is never a reference, whatever its name.

    Args:
        table: Table holding the field
        field: Field name
        metadata: Declared metadata document, if any
        known_tables: Tables the session knows about
        field_table_map: Extra field -> table mappings
        primary_key: Primary key of `table`; taken from metadata when omitted

    Returns:
        Relationship, or None when the field is not a foreign key
    """
    declared = metadata.table(table) if metadata is not None else None
    if primary_key is None:
        primary_key = declared.primary_key if declared is not None else PRIMARY_KEY_FIELD
    if field in (primary_key, PRIMARY_KEY_FIELD):
        return None

    if declared is not None:
        for rel in declared.declared_relationships():
            if rel.source_column == field:
                return Relationship(
                    source_table=table,
                    source_field=field,
                    target_table=rel.target_table,
                    target_field=rel.target_column,
                    origin=RelationshipOrigin.DECLARED,
                )

    if metadata is not None:
        for other in metadata.tables:
            if other.name == table:
                continue
            for rel in other.declared_relationships():
                if rel.target_table == table and rel.source_column == field:
                    return Relationship(
                        source_table=table,
                        source_field=field,
                        target_table=other.name,
                        origin=RelationshipOrigin.REVERSE_DECLARED,
                    )

    if not is_foreign_key_name(field):
        return None

    stem = field_stem(field)
    known = set(known_tables)
    for candidate in stem_candidates(stem):
        if candidate in known:
            return Relationship(
                source_table=table,
                source_field=field,
                target_table=candidate,
                origin=RelationshipOrigin.KNOWN_TABLE,
            )

    mapped = (field_table_map or {}).get(field) or STATIC_FIELD_TABLES.get(field)
    if mapped:
        return Relationship(
            source_table=table,
            source_field=field,
            target_table=mapped,
            origin=RelationshipOrigin.STATIC_MAP,
        )

    return Relationship(
        source_table=table,
        source_field=field,
        target_table=stem + "s",
        origin=RelationshipOrigin.GUESSED,
    )
