"""Display labels for related rows shown in pickers."""

from typing import Any, Callable, Dict, Mapping, Optional

from ..constants import PRIMARY_KEY_FIELD
from .inference import singularize

GENERIC_LABEL_FIELDS = (
    "name",
    "title",
    "label",
    "display_name",
    "full_name",
    "first_name+last_name",
    "username",
    "email",
    "description",
    "code",
)


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def short_id(row: Mapping[str, Any]) -> str:
    """First 8 characters of the row's id."""
    return str(row.get(PRIMARY_KEY_FIELD, ""))[:8]


def _user_label(row: Mapping[str, Any]) -> Optional[str]:
    for field in ("name", "username", "email"):
        text = _text(row.get(field))
        if text:
            return text
    return None


def _loan_label(row: Mapping[str, Any]) -> Optional[str]:
    date = _text(row.get("loan_date") or row.get("start_date") or row.get("created_at"))
    label = f"Loan {short_id(row)}"
    if date:
        label += f" ({date[:10]})"
    return label


LABEL_OVERRIDES: Dict[str, Callable[[Mapping[str, Any]], Optional[str]]] = {
    "users": _user_label,
    "loans": _loan_label,
}


def _candidate(row: Mapping[str, Any], field: str) -> Optional[str]:
    if "+" in field:
        parts = [_text(row.get(part)) for part in field.split("+")]
        joined = " ".join(part for part in parts if part)
        return joined or None
    return _text(row.get(field))


def label_for(row: Mapping[str, Any], table: str) -> str:
    """
    Pick the display string for a related row.

    Table overrides win; then the generic candidate fields in order; then any
    field whose name contains "name" or "title"; finally
    "<Capitalized singular table> <first 8 chars of id>".

    Args:
        row: Related row
        table: Table the row belongs to

    Returns:
        Non-empty display string
    """
    override = LABEL_OVERRIDES.get(table)
    if override is not None:
        label = override(row)
        if label:
            return label

    for field in GENERIC_LABEL_FIELDS:
        label = _candidate(row, field)
        if label:
            return label

    for field, value in row.items():
        if "name" in field or "title" in field:
            label = _text(value)
            if label:
                return label

    return f"{singularize(table).capitalize()} {short_id(row)}".strip()
