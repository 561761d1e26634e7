"""Generic CRUD execution with client-side coercion and validation."""

from .coercion import coerce_value, coerce_values
from .executor import CrudExecutor
from .generations import RequestGenerations
from .validation import humanize, missing_selections, validate_submission

__all__ = [
    "CrudExecutor",
    "RequestGenerations",
    "coerce_value",
    "coerce_values",
    "humanize",
    "missing_selections",
    "validate_submission",
]
