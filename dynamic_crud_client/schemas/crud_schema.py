"""
Result and form structures for CRUD operations.

This module provides a clean result object for CRUD attempts, including the
terminal state of the attempt, the server payload and any error information.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..constants import FormMode, OperationState


class Pagination(BaseModel):
    """Pagination block of a `{data, pagination}` list response."""

    page: Optional[int] = None
    limit: Optional[int] = None
    total: Optional[int] = None


class ListPayload(BaseModel):
    """A list response after shape discrimination."""

    rows: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: Optional[Pagination] = None
    shape: str = Field(description="Which accepted shape matched")


class FormRecord(BaseModel):
    """In-progress create/update payload."""

    table_name: str
    mode: FormMode
    values: Dict[str, Any] = Field(default_factory=dict)
    record_id: Optional[Any] = None


class UsageLimitInfo(BaseModel):
    """Plan-limit details extracted from an error."""

    type: str = Field(default="requests", description="Which quota was hit")
    percentage: float = Field(default=100.0, description="Share of the quota used")
    message: str = ""
    plan: Optional[str] = None


class CrudResult(BaseModel):
    """
    Result of a CRUD attempt.

    Contains the terminal state, the server payload and optional error details.
    """

    state: OperationState = Field(description="Terminal state of the attempt")
    success: bool = Field(description="Whether the attempt succeeded")
    table: str = Field(description="Table the operation targeted")

    data: Any = Field(default=None, description="Server payload on success")
    pagination: Optional[Pagination] = Field(default=None, description="List pagination")

    # Error information
    error_message: Optional[str] = Field(default=None, description="Error message on failure")
    error_code: Optional[str] = Field(default=None, description="Error code on failure")
    status_code: Optional[int] = Field(default=None, description="HTTP status on failure")
    field_errors: Dict[str, str] = Field(
        default_factory=dict, description="Per-field validation messages"
    )

    stale: bool = Field(
        default=False, description="A newer request for the same operation key was issued"
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Result creation timestamp"
    )

    @classmethod
    def success_result(
        cls, table: str, data: Any = None, pagination: Optional[Pagination] = None, **kwargs
    ) -> "CrudResult":
        """
        Create a successful result.

        Args:
            table: Target table
            data: Server payload
            pagination: Pagination block for list calls
            **kwargs: Additional fields

        Returns:
            CrudResult in the succeeded state
        """
        return cls(
            state=OperationState.SUCCEEDED,
            success=True,
            table=table,
            data=data,
            pagination=pagination,
            **kwargs,
        )

    @classmethod
    def rejected_result(cls, table: str, field_errors: Dict[str, str], **kwargs) -> "CrudResult":
        """
        Create a result for a submission rejected before any network call.

        Args:
            table: Target table
            field_errors: Per-field messages

        Returns:
            CrudResult in the rejected state
        """
        first_message = next(iter(field_errors.values()), "Validation failed")
        return cls(
            state=OperationState.REJECTED,
            success=False,
            table=table,
            error_message=first_message,
            field_errors=dict(field_errors),
            **kwargs,
        )

    @classmethod
    def failure_result(
        cls,
        table: str,
        error_message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ) -> "CrudResult":
        """
        Create a failed result.

        Args:
            table: Target table
            error_message: Error description
            error_code: Error code
            status_code: HTTP status of the failed response

        Returns:
            CrudResult in the failed state
        """
        return cls(
            state=OperationState.FAILED,
            success=False,
            table=table,
            error_message=error_message,
            error_code=error_code,
            status_code=status_code,
            **kwargs,
        )
