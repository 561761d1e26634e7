"""Utility modules for the Dynamic CRUD Client."""

# Cache keys
from .hash_utils import (
    build_cache_key,
    encode_query,
    normalize_path,
    normalize_query,
    resource_family,
    split_endpoint,
)

# JSON helpers
from .json_utils import EnhancedJSONEncoder, canonical_dumps, dumps, loads

# Logging
from .logger import configure_logging, get_logger, reset_logging

# Access-token claims
from .token_utils import decode_claims, get_expiry, get_username_claim, seconds_until_expiry

__all__ = [
    "EnhancedJSONEncoder",
    "build_cache_key",
    "canonical_dumps",
    "configure_logging",
    "decode_claims",
    "dumps",
    "encode_query",
    "get_expiry",
    "get_logger",
    "get_username_claim",
    "loads",
    "normalize_path",
    "normalize_query",
    "reset_logging",
    "resource_family",
    "seconds_until_expiry",
    "split_endpoint",
]
