"""Authenticated request pipeline, response parsing and auth helpers."""

from .auth import AuthService
from .request_pipeline import RequestPipeline
from .responses import (
    error_from_response,
    extract_error_text,
    extract_usage_limit_info,
    format_api_error,
    is_usage_limit_error,
    message_for_status,
    parse_json_body,
    parse_list_response,
    parse_record_response,
)

__all__ = [
    "AuthService",
    "RequestPipeline",
    "error_from_response",
    "extract_error_text",
    "extract_usage_limit_info",
    "format_api_error",
    "is_usage_limit_error",
    "message_for_status",
    "parse_json_body",
    "parse_list_response",
    "parse_record_response",
]
