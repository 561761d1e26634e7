"""
Client-side validation of create/update submissions.

Runs before any network call; a non-empty result means the submission is
rejected with no side effects.
"""

from typing import Any, Collection, Dict, Mapping, Optional

from ..constants import FormMode, SemanticType
from ..relationships.inference import field_stem, is_foreign_key_name
from ..schema.inference import required_fields
from ..schemas.table_schema import TableSchema


def humanize(field: str) -> str:
    """`customer_id` -> `Customer`, `first_name` -> `First name`."""
    words = field_stem(field).replace("_", " ").strip()
    return words[:1].upper() + words[1:] if words else field


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_selections(
    values: Mapping[str, Any], reference_fields: Collection[str], identity_field: str
) -> Dict[str, str]:
    """Reference fields present in the submission but left empty, in form order."""
    return {
        field: f"Please select a value for {humanize(field)}"
        for field, value in values.items()
        if field in reference_fields and field != identity_field and is_empty(value)
    }


def validate_submission(
    schema: TableSchema,
    values: Mapping[str, Any],
    mode: FormMode,
    identity_field: str,
    reference_fields: Optional[Collection[str]] = None,
) -> Dict[str, str]:
    """
    Validate a submission against a table schema.

    Reference fields that are present but empty must be selected; fields
    the schema marks required must carry a value (`False` only counts for
    boolean fields).

    Args:
        schema: Resolved table schema
        values: Coerced submission values
        mode: Create or update
        identity_field: Field carrying the caller identity, exempt from the selection check
        reference_fields: Fields known to reference another table; defaults to
            every `_id` field other than the primary key

    Returns:
        Mapping of field name to message; empty when the submission is valid
    """
    if reference_fields is None:
        reference_fields = [
            field
            for field in values
            if is_foreign_key_name(field) and field != schema.primary_key
        ]

    errors = missing_selections(values, reference_fields, identity_field)

    for field in required_fields(schema, mode):
        if field in errors:
            continue
        value = values.get(field)
        spec = schema.fields[field]
        if is_empty(value) or (value is False and spec.semantic_type != SemanticType.BOOLEAN):
            errors[field] = f"{humanize(field)} is required"

    return errors
