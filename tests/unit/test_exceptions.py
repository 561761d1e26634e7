"""
Unit tests for the exception system.

Tests the error taxonomy, factory functions and correlation id handling.
"""

from dynamic_crud_client.exceptions import (
    ApiRequestError,
    AuthExpiredError,
    BaseError,
    ErrorCode,
    FormValidationError,
    NetworkError,
    SessionDeadError,
    TransientServerError,
    UsageLimitError,
    ValidationError,
    clear_correlation_id,
    get_correlation_id,
    not_found,
    set_correlation_id,
    validation_failed,
)


class TestBaseError:
    """Test BaseError class."""

    def test_basic_error_creation(self):
        """Test creating a basic error."""
        error = BaseError("Test error message")

        assert error.message == "Test error message"
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500
        assert error.cause is None
        assert error.context["error_id"] == error.error_id

    def test_error_with_cause(self):
        """Test error with underlying cause."""
        original_error = ValueError("Original error")
        error = BaseError("Wrapped error", cause=original_error)

        assert error.cause is original_error
        assert error.context["cause"]["type"] == "ValueError"
        assert error.error_chain == [error, original_error]

    def test_to_dict(self):
        """Test dictionary conversion without the cause traceback."""
        error = BaseError("Oops", error_code=ErrorCode.CONFLICT, status_code=409, table="orders")
        data = error.to_dict()["error"]

        assert data["message"] == "Oops"
        assert data["code"] == ErrorCode.CONFLICT.value
        assert data["status"] == 409
        assert data["context"]["table"] == "orders"
        assert "cause" not in data

    def test_add_context(self):
        """Test adding context after construction."""
        error = BaseError("Oops").add_context(attempt=2)
        assert error.context["attempt"] == 2


class TestRequestErrors:
    """Test request pipeline error classes."""

    def test_api_request_error_fields(self):
        """Test that server-provided detail is kept on the error."""
        error = ApiRequestError(
            "Bad input", status_code=422, details="name too long", request_id="req-1", endpoint="/x"
        )

        assert error.status == 422
        assert error.details == "name too long"
        assert error.request_id == "req-1"
        assert error.context["endpoint"] == "/x"

    def test_default_statuses(self):
        """Test the default status of each subclass."""
        assert AuthExpiredError().status_code == 401
        assert AuthExpiredError(status_code=403).status_code == 403
        assert UsageLimitError().status_code == 429
        assert TransientServerError().status_code == 500
        assert NetworkError().status_code == 503
        assert SessionDeadError().status_code == 401

    def test_error_codes(self):
        """Test that subclasses carry their error codes."""
        assert AuthExpiredError().error_code == ErrorCode.AUTH_EXPIRED
        assert UsageLimitError().error_code == ErrorCode.LIMIT_EXCEEDED
        assert SessionDeadError().error_code == ErrorCode.SESSION_DEAD
        assert NetworkError().error_code == ErrorCode.CONNECTION_ERROR


class TestValidationErrors:
    """Test validation error classes."""

    def test_validation_error_field(self):
        """Test that the failing field is kept."""
        error = ValidationError("Bad", field="price")
        assert error.field == "price"
        assert error.status_code == 400

    def test_form_validation_error(self):
        """Test that the first field error becomes the message."""
        error = FormValidationError(
            {"customer_id": "Please select a value for Customer", "total": "Total is required"},
            table="orders",
        )

        assert error.message == "Please select a value for Customer"
        assert error.field == "customer_id"
        assert error.field_errors["total"] == "Total is required"
        assert error.context["table"] == "orders"
        assert error.error_code == ErrorCode.VALIDATION_FAILED
        assert error.status_code == 400

    def test_form_validation_error_missing_selection(self):
        """Test an unselected reference carries its own code."""
        error = FormValidationError(
            {"customer_id": "Please select a value for Customer"},
            table="orders",
            error_code=ErrorCode.MISSING_SELECTION,
        )

        assert error.error_code == ErrorCode.MISSING_SELECTION
        assert error.to_dict()["error"]["code"] == ErrorCode.MISSING_SELECTION.value


class TestFactoryFunctions:
    """Test error factory functions."""

    def test_validation_failed(self):
        """Test the validation factory."""
        error = validation_failed("price", "abc", "must be a number")
        assert error.message == "Validation failed for price: must be a number"
        assert error.context["value"] == "abc"

    def test_not_found(self):
        """Test the not found factory."""
        error = not_found("orders", id="42")
        assert error.status_code == 404
        assert error.error_code == ErrorCode.NOT_FOUND
        assert error.message == "orders not found: id=42"


class TestCorrelationId:
    """Test correlation id management."""

    def test_correlation_id_lifecycle(self):
        """Test setting, reading and clearing the correlation id."""
        set_correlation_id("corr-1")
        try:
            assert get_correlation_id() == "corr-1"
            assert BaseError("Oops").context["correlation_id"] == "corr-1"
        finally:
            clear_correlation_id()
        assert get_correlation_id() is None
