"""
Constants and enums for the Dynamic CRUD Client.

This module centralizes all magic strings and constants used throughout
the client to ensure consistency and maintainability.
"""

from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    API_BASE_URL = "CRUD_API_BASE_URL"
    API_TIMEOUT = "CRUD_API_TIMEOUT"
    CACHE_BACKEND = "CRUD_CACHE_BACKEND"
    CACHE_FILE = "CRUD_CACHE_FILE"
    CACHE_TTL = "CRUD_CACHE_TTL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"


class HttpMethod(str, Enum):
    """HTTP methods issued by the request pipeline."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class SemanticType(str, Enum):
    """Abstract field kinds used for coercion and validation."""

    TEXT = "text"
    LONGTEXT = "longtext"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    TIMESTAMP = "timestamp"
    ID = "id"


class SchemaSource(str, Enum):
    """Where a resolved table schema came from."""

    METADATA = "metadata"
    MEMO = "memo"
    SAMPLE = "sample"
    DEFAULT = "default"


class RelationshipOrigin(str, Enum):
    """Which precedence rule produced a relationship."""

    DECLARED = "declared"
    REVERSE_DECLARED = "reverse_declared"
    KNOWN_TABLE = "known_table"
    STATIC_MAP = "static_map"
    GUESSED = "guessed"


class FormMode(str, Enum):
    """Mode of an in-progress form."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class OperationState(str, Enum):
    """Lifecycle of a single CRUD attempt."""

    IDLE = "idle"
    VALIDATING = "validating"
    REJECTED = "rejected"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class EventName(str, Enum):
    """Out-of-band notifications published by the pipeline."""

    API_ERROR = "api_error"
    USAGE_LIMIT = "usage_limit"
    SESSION_EXPIRED = "session_expired"


class PersistedKey(str, Enum):
    """Keys written by the bootstrap step to device storage."""

    ACCESS_TOKEN = "accessToken"
    REFRESH_TOKEN = "refreshToken"
    USERNAME = "username"
    USER_PLAN = "userPlan"


# Header names
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_AUTHORIZATION = "Authorization"
HEADER_IDENTITY = "XAuthUserId"
HEADER_IDENTITY_FALLBACK = "x-user-id"
HEADER_REQUEST_ID = "x-request-id"

JSON_CONTENT_TYPE = "application/json"

# Fields populated automatically and never enforced as required
TIMESTAMP_FIELDS = ("created_at", "updated_at")
PRIMARY_KEY_FIELD = "id"
FOREIGN_KEY_SUFFIX = "_id"

# Status codes that trigger the refresh-and-retry path
AUTH_FAILURE_STATUSES = frozenset({401, 403})
