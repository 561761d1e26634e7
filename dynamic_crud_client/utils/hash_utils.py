"""
Hash utilities for response-cache keys.

This module provides functions for turning a request (method, path, query,
body) into a deterministic cache key, so that two logically identical
requests collide and two different ones never do.
"""

import hashlib
from typing import Any, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

from ..constants import HttpMethod
from .json_utils import canonical_dumps

QueryInput = Union[str, Mapping[str, Any], None]


def normalize_path(path: str) -> str:
    """
    Normalize a request path.

    Args:
        path: Path relative to the API origin, with or without leading slash

    Returns:
        Path with exactly one leading slash and no trailing slash
    """
    path = "/" + path.strip().lstrip("/")
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def split_endpoint(endpoint: str) -> Tuple[str, str]:
    """
    Split an endpoint into its path and raw query string.

    Args:
        endpoint: Endpoint such as "/products?page=1&limit=10"

    Returns:
        Tuple of (normalized path, raw query string)
    """
    path, _, query = endpoint.partition("?")
    return normalize_path(path), query


def normalize_query(*queries: QueryInput) -> List[Tuple[str, str]]:
    """
    Merge query inputs into a sorted list of string pairs.

    Args:
        *queries: Raw query strings and/or parameter mappings

    Returns:
        Sorted list of (name, value) pairs; None values are dropped
    """
    pairs: List[Tuple[str, str]] = []
    for query in queries:
        if not query:
            continue
        if isinstance(query, str):
            pairs.extend(parse_qsl(query, keep_blank_values=True))
        else:
            pairs.extend((str(k), str(v)) for k, v in query.items() if v is not None)
    return sorted(pairs)


def encode_query(pairs: List[Tuple[str, str]]) -> str:
    """Encode normalized pairs back into a query string."""
    return urlencode(pairs)


def resource_family(path: str) -> str:
    """
    Get the resource family of a path (its first segment).

    Args:
        path: Request path, optionally including a query string

    Returns:
        First path segment, or "" for the root path
    """
    normalized, _ = split_endpoint(path)
    return normalized.lstrip("/").split("/", 1)[0]


def build_cache_key(
    method: str,
    path: str,
    query: QueryInput = None,
    body: Optional[Any] = None,
) -> str:
    """
    Build a deterministic cache key for a request.

    Args:
        method: HTTP method
        path: Request path (a query string embedded in it is honoured)
        query: Additional query parameters
        body: Request body; only participates for non-GET methods

    Returns:
        String key of the form "<family>:<METHOD>:<sha256>"
    """
    method = (method or HttpMethod.GET.value).upper()
    normalized_path, embedded_query = split_endpoint(path)
    pairs = normalize_query(embedded_query, query)
    key_body = body if method != HttpMethod.GET.value else None

    digest = hashlib.sha256(
        canonical_dumps([method, normalized_path, pairs, key_body]).encode("utf-8")
    ).hexdigest()
    return f"{resource_family(normalized_path)}:{method}:{digest}"
