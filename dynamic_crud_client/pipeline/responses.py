"""
Response parsing and error construction.

List responses come back in one of several shapes; the parser tries each
accepted shape in a fixed order and fails loudly when none matches. Error
bodies are turned into structured exceptions carrying status, message,
details and request id.
"""

from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..constants import HEADER_REQUEST_ID
from ..exceptions import (
    ApiRequestError,
    AuthExpiredError,
    BaseError,
    ErrorCode,
    ResponseShapeError,
    TransientServerError,
    UsageLimitError,
)
from ..schemas.crud_schema import ListPayload, Pagination, UsageLimitInfo

_LIMIT_MARKERS = ("limit", "quota", "upgrade your plan")


# ==================== BODY PARSING ====================


def parse_json_body(response: httpx.Response) -> Any:
    """
    Decode a response body.

    Args:
        response: HTTP response

    Returns:
        Decoded JSON, raw text when the body is not JSON, or None when empty
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _require_rows(items: List[Any], shape: str) -> List[Dict[str, Any]]:
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ResponseShapeError(
                f"List item {index} is not an object",
                shape=shape,
                item_type=type(item).__name__,
            )
    return items


def parse_list_response(payload: Any) -> ListPayload:
    """
    Discriminate a list response.

    Accepted shapes, tried in order: bare array; `{data: [...], pagination}`;
    `{records: [...]}`; a single object (treated as a one-row list).

    Args:
        payload: Decoded response body

    Returns:
        ListPayload with rows, optional pagination and the matched shape

    Raises:
        ResponseShapeError: If the payload matches none of the shapes
    """
    if isinstance(payload, list):
        return ListPayload(rows=_require_rows(payload, "array"), shape="array")

    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            raw_pagination = payload.get("pagination")
            pagination = (
                Pagination(**{k: raw_pagination.get(k) for k in ("page", "limit", "total")})
                if isinstance(raw_pagination, dict)
                else None
            )
            return ListPayload(
                rows=_require_rows(data, "data"), pagination=pagination, shape="data"
            )

        records = payload.get("records")
        if isinstance(records, list):
            return ListPayload(rows=_require_rows(records, "records"), shape="records")

        if "data" not in payload and "records" not in payload and payload:
            return ListPayload(rows=[payload], shape="single")

    raise ResponseShapeError(
        "Unrecognized list response shape", payload_type=type(payload).__name__
    )


def parse_record_response(payload: Any) -> Dict[str, Any]:
    """
    Discriminate a single-record response: `{data: {...}}` or a bare object.

    Raises:
        ResponseShapeError: If the payload is not an object
    """
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, dict):
            return data
        return payload
    raise ResponseShapeError(
        "Unrecognized record response shape", payload_type=type(payload).__name__
    )


# ==================== ERROR TEXT ====================


def message_for_status(status_code: int) -> str:
    """
    Map an HTTP status code to a user-friendly message.

    Args:
        status_code: HTTP status code

    Returns:
        User-friendly error message
    """
    if status_code == 400:
        return "Bad request: Missing or invalid input."
    if status_code == 401:
        return "Your session has expired. Please log in again."
    if status_code == 403:
        return "You do not have permission to access this resource."
    if status_code == 404:
        return "The requested resource was not found."
    if status_code == 429:
        return "Too many requests. Please try again later."
    if 500 <= status_code <= 504:
        return "The server encountered an error. Please try again later."
    return "An unexpected error occurred."


def _errors_to_text(errors: Any) -> Optional[str]:
    if isinstance(errors, str):
        return errors
    if isinstance(errors, list):
        parts = []
        for item in errors:
            if isinstance(item, dict):
                text = item.get("message") or item.get("msg")
                if text:
                    parts.append(str(text))
            elif item:
                parts.append(str(item))
        return "; ".join(parts) or None
    if isinstance(errors, dict):
        return "; ".join(f"{k}: {v}" for k, v in errors.items()) or None
    return None


def extract_error_text(payload: Any, status_code: int) -> str:
    """
    Pick the surfaced error text.

    Priority: `message`, `details`, `error`, `errors`; falls back to the
    status-code message.
    """
    if isinstance(payload, dict):
        for key in ("message", "details", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
        errors_text = _errors_to_text(payload.get("errors"))
        if errors_text:
            return errors_text
    elif isinstance(payload, str) and payload.strip():
        return payload.strip()
    return message_for_status(status_code)


def _looks_like_limit(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _LIMIT_MARKERS)


def error_from_response(
    status_code: int,
    payload: Any,
    endpoint: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> ApiRequestError:
    """
    Build the structured error for a non-successful response.

    Args:
        status_code: HTTP status
        payload: Decoded response body
        endpoint: Endpoint that was called
        headers: Response headers (for a request id fallback)

    Returns:
        The most specific ApiRequestError subclass for the response
    """
    message = extract_error_text(payload, status_code)
    details = payload.get("details") if isinstance(payload, dict) else None
    request_id = payload.get("requestId") if isinstance(payload, dict) else None
    if not request_id and headers is not None:
        request_id = headers.get(HEADER_REQUEST_ID)

    kwargs: Dict[str, Any] = {
        "status_code": status_code,
        "details": details,
        "request_id": request_id,
        "endpoint": endpoint,
    }

    if status_code == 429 or (status_code in (402, 403) and _looks_like_limit(message)):
        return UsageLimitError(message, **kwargs)
    if status_code in (401, 403):
        return AuthExpiredError(message, **kwargs)
    if status_code >= 500:
        return TransientServerError(message, **kwargs)
    error_code = ErrorCode.NOT_FOUND if status_code == 404 else ErrorCode.EXTERNAL_API_ERROR
    if status_code == 409:
        error_code = ErrorCode.CONFLICT
    return ApiRequestError(message, error_code=error_code, **kwargs)


def format_api_error(error: Optional[BaseError], include_request_id: bool = False) -> str:
    """
    Format an error into a single display string.

    Args:
        error: Structured error
        include_request_id: Append the request id (development builds)

    Returns:
        Display message
    """
    if error is None:
        return "An unknown error occurred"

    message = error.message or message_for_status(error.status_code)
    details = getattr(error, "details", None)
    if details and isinstance(details, str) and details != message:
        message = f"{message}: {details}"

    request_id = getattr(error, "request_id", None)
    if include_request_id and request_id:
        message = f"{message} (Request ID: {request_id})"
    return message


# ==================== USAGE LIMITS ====================


def is_usage_limit_error(error: Any) -> bool:
    """Whether an error is a plan-limit rejection."""
    if isinstance(error, UsageLimitError):
        return True
    if isinstance(error, BaseError):
        return error.error_code == ErrorCode.LIMIT_EXCEEDED
    return False


def extract_usage_limit_info(error: Any) -> Optional[UsageLimitInfo]:
    """
    Pull quota details out of a usage-limit error.

    Recognizes `limitType`/`type`, `percentage`, `used`/`limit` and `plan`
    inside the error's details object.

    Returns:
        UsageLimitInfo, or None for errors that are not usage-limit errors
    """
    if not is_usage_limit_error(error):
        return None

    details = getattr(error, "details", None)
    info: Dict[str, Any] = {"message": error.message}
    if isinstance(details, dict):
        limit_type = details.get("limitType") or details.get("type")
        if limit_type:
            info["type"] = str(limit_type)
        percentage = details.get("percentage")
        used, limit = details.get("used"), details.get("limit")
        if isinstance(percentage, (int, float)):
            info["percentage"] = float(percentage)
        elif isinstance(used, (int, float)) and isinstance(limit, (int, float)) and limit:
            info["percentage"] = round(used / limit * 100, 1)
        if details.get("plan"):
            info["plan"] = str(details["plan"])
    return UsageLimitInfo(**info)
