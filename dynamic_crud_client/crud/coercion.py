"""
Value coercion per semantic type.

Form values usually arrive as strings; each semantic type has exactly one rule
turning them into the wire representation the backend expects.
"""

from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..constants import SemanticType
from ..exceptions import ValidationError, validation_failed
from ..schemas.table_schema import FieldSpec, TableSchema

_TRUE_STRINGS = frozenset({"true", "on", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "off", "0", "no", ""})


def _parse_iso(value: str) -> datetime:
    # fromisoformat only accepts a trailing Z from Python 3.11 on
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise ValueError("must be a number")


def coerce_integer(value: Any) -> Optional[int]:
    if value == "":
        return None
    number = _to_number(value)
    if isinstance(number, float):
        if not number.is_integer():
            raise ValueError("must be a whole number")
        return int(number)
    return number


def coerce_number(value: Any) -> Optional[Any]:
    if value == "":
        return None
    number = _to_number(value)
    if isinstance(number, float) and number != number:
        raise ValueError("must be a number")
    return number


def coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError("must be true or false")


def coerce_date(value: Any) -> Optional[str]:
    """Normalize to YYYY-MM-DD."""
    if value == "":
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return _parse_iso(str(value)).date().isoformat()


def coerce_timestamp(value: Any) -> Optional[str]:
    """Normalize to an ISO 8601 date-time string."""
    if value == "":
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat()
    return _parse_iso(str(value)).isoformat()


def coerce_text(value: Any) -> Any:
    return value


_RULES: Dict[SemanticType, Callable[[Any], Any]] = {
    SemanticType.TEXT: coerce_text,
    SemanticType.LONGTEXT: coerce_text,
    SemanticType.INTEGER: coerce_integer,
    SemanticType.NUMBER: coerce_number,
    SemanticType.BOOLEAN: coerce_boolean,
    SemanticType.DATE: coerce_date,
    SemanticType.TIMESTAMP: coerce_timestamp,
}


def coerce_value(field: str, value: Any, spec: FieldSpec) -> Any:
    """
    Coerce one value per its field spec.

    Args:
        field: Field name, for error reporting
        value: Raw value
        spec: Field contract

    Returns:
        Wire value

    Raises:
        ValidationError: If the value cannot be represented as the field's type
    """
    if value is None:
        return None

    if spec.semantic_type == SemanticType.ID:
        # Empty stays empty so the foreign-key check can name the field
        storage = (spec.storage_type or "").lower()
        if isinstance(value, str) and value.strip().isdigit() and "int" in storage:
            return int(value.strip())
        return value

    try:
        return _RULES[spec.semantic_type](value)
    except (TypeError, ValueError) as e:
        raise validation_failed(field, value, str(e) or "invalid value", cause=e)


def coerce_values(
    schema: TableSchema, values: Mapping[str, Any]
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Coerce every value of a submission.

    Fields unknown to the schema pass through unchanged.

    Returns:
        Tuple of (coerced values, field errors)
    """
    coerced: Dict[str, Any] = {}
    errors: Dict[str, str] = {}
    for field, value in values.items():
        spec = schema.get(field)
        if spec is None:
            coerced[field] = value
            continue
        try:
            coerced[field] = coerce_value(field, value, spec)
        except ValidationError as e:
            errors[field] = e.message
            coerced[field] = value
    return coerced, errors
