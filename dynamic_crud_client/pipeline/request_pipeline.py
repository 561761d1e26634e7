"""
Authenticated request pipeline.

Single entry point for every HTTP call the client makes. It attaches auth and
identity headers, serves GETs from the response cache, invalidates the cache
after mutations, refreshes the access token proactively when it is about to
expire, and performs exactly one refresh-and-retry when a request comes back
401/403. Concurrent refreshes share one in-flight task.
"""

import asyncio
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import httpx

from ..cache.response_cache import ResponseCache
from ..config import AppConfig, get_config
from ..constants import (
    AUTH_FAILURE_STATUSES,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_TYPE,
    HEADER_IDENTITY,
    HEADER_IDENTITY_FALLBACK,
    JSON_CONTENT_TYPE,
    EventName,
    HttpMethod,
)
from ..events import EventBus
from ..exceptions import BaseError, NetworkError, SessionDeadError
from ..session import SessionManager
from ..utils.hash_utils import (
    build_cache_key,
    encode_query,
    normalize_query,
    resource_family,
    split_endpoint,
)
from ..utils.json_utils import dumps
from ..utils.logger import get_logger
from ..utils.token_utils import get_username_claim, seconds_until_expiry
from .responses import error_from_response, is_usage_limit_error, parse_json_body


class RequestPipeline:
    """Issues HTTP calls on behalf of every other component."""

    def __init__(
        self,
        session: SessionManager,
        cache: ResponseCache,
        config: Optional[AppConfig] = None,
        events: Optional[EventBus] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the pipeline.

        Args:
            session: Session manager holding tokens and identity
            cache: Response cache
            config: Client configuration (defaults to the global config)
            events: Event bus for out-of-band error notifications
            client: HTTP client; created lazily when omitted
            clock: Epoch-seconds source used for token expiry checks
        """
        self.session = session
        self.cache = cache
        self.config = config or get_config()
        self.events = events or EventBus()
        self.clock = clock
        self.logger = get_logger()

        self._client = client
        self._owns_client = client is None
        self._refresh_task: Optional["asyncio.Task[str]"] = None

    # ==================== CLIENT LIFECYCLE ====================

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the shared async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.api.base_url,
                timeout=httpx.Timeout(self.config.api.timeout_seconds),
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this pipeline created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ==================== HEADERS ====================

    def build_headers(
        self,
        access_token: Optional[str],
        extra: Optional[Mapping[str, str]] = None,
        skip_auth: bool = False,
    ) -> Dict[str, str]:
        """
        Build request headers.

        The identity goes out under two header names. A username claim in the
        access token overrides the stored identity for the fallback header.

        Args:
            access_token: Token to send (None for unauthenticated calls)
            extra: Caller-supplied headers
            skip_auth: Send the skip-auth marker instead of the bearer token

        Returns:
            Header mapping
        """
        headers: Dict[str, str] = {HEADER_CONTENT_TYPE: JSON_CONTENT_TYPE}
        if extra:
            headers.update(extra)

        claim_identity = None
        if skip_auth:
            headers[self.config.api.skip_auth_header] = "true"
        elif access_token:
            headers[HEADER_AUTHORIZATION] = f"Bearer {access_token}"
            claim_identity = get_username_claim(access_token, self.config.auth.username_claims)

        identity = self.session.identity
        if identity:
            headers[HEADER_IDENTITY] = identity
        if claim_identity or identity:
            headers[HEADER_IDENTITY_FALLBACK] = claim_identity or identity
        return headers

    # ==================== EXECUTE ====================

    async def execute(
        self,
        endpoint: str,
        method: str = HttpMethod.GET.value,
        body: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
        skip_cache: bool = False,
        headers: Optional[Mapping[str, str]] = None,
        skip_auth: bool = False,
        cache_ttl: Optional[int] = None,
    ) -> Any:
        """
        Execute a request through the pipeline.

        Args:
            endpoint: Path relative to the API origin, optionally with a query string
            method: HTTP method (GET when unspecified)
            body: JSON body for mutating methods
            params: Extra query parameters
            skip_cache: Bypass the cache lookup for this GET
            headers: Extra request headers
            skip_auth: Use skip-auth mode (no bearer token, no refresh)
            cache_ttl: TTL override for a cached GET

        Returns:
            Decoded response payload

        Raises:
            ApiRequestError: Non-successful response (after the auth retry)
            NetworkError: Transport failure
            SessionDeadError: The token refresh failed
        """
        method = (method or HttpMethod.GET.value).upper()
        path, embedded_query = split_endpoint(endpoint)
        query = normalize_query(embedded_query, params)
        is_get = method == HttpMethod.GET.value
        cache_key = build_cache_key(method, path, encode_query(query), body)

        if is_get and not skip_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.logger.debug("Cache hit", extra={"path": path, "cache_key": cache_key})
                return cached

        if not skip_auth and not self._is_auth_endpoint(path):
            refreshed = await self._ensure_fresh_token()
        else:
            refreshed = False

        response, sent_token = await self._send(method, path, query, body, headers, skip_auth)

        if (
            response.status_code in AUTH_FAILURE_STATUSES
            and not skip_auth
            and not self._is_auth_endpoint(path)
            and self.session.refresh_token
        ):
            if self.session.access_token == sent_token and not refreshed:
                self.logger.info(
                    "Auth failure, refreshing token before retry",
                    extra={"path": path, "status": response.status_code},
                )
                await self.refresh_access_token()
            else:
                self.logger.debug(
                    "Token already refreshed for this request", extra={"path": path}
                )
            response, _ = await self._send(method, path, query, body, headers, skip_auth)

        payload = parse_json_body(response)

        if not response.is_success:
            error = error_from_response(
                response.status_code, payload, endpoint=path, headers=response.headers
            )
            self._notify_error(error)
            raise error

        if is_get:
            ttl = cache_ttl if cache_ttl is not None else self.cache.ttl_for(path)
            self.cache.put(cache_key, payload, resource_family(path), ttl=ttl)
        else:
            self.cache.invalidate(resource_family(path))

        return payload

    async def _send(
        self,
        method: str,
        path: str,
        query: List[Tuple[str, str]],
        body: Optional[Any],
        headers: Optional[Mapping[str, str]],
        skip_auth: bool,
    ) -> Tuple[httpx.Response, Optional[str]]:
        access_token = None if skip_auth else self.session.access_token
        request_headers = self.build_headers(access_token, headers, skip_auth)
        content = dumps(body) if body is not None else None

        client = await self.get_client()
        try:
            response = await client.request(
                method, path, params=query or None, content=content, headers=request_headers
            )
        except httpx.TimeoutException as e:
            error = NetworkError("Request timed out", endpoint=path, cause=e, method=method)
            self._notify_error(error)
            raise error
        except httpx.HTTPError as e:
            error = NetworkError(
                f"Network request failed: {e}", endpoint=path, cause=e, method=method
            )
            self._notify_error(error)
            raise error

        self.logger.debug(
            f"{method} {path}", extra={"status": response.status_code, "query": dict(query)}
        )
        return response, access_token

    def _is_auth_endpoint(self, path: str) -> bool:
        api = self.config.api
        return path in (api.login_endpoint, api.refresh_endpoint, api.logout_endpoint)

    def _notify_error(self, error: BaseError) -> None:
        self.events.publish(EventName.API_ERROR, error)
        if is_usage_limit_error(error):
            self.events.publish(EventName.USAGE_LIMIT, error)

    # ==================== TOKEN REFRESH ====================

    async def _ensure_fresh_token(self) -> bool:
        """Refresh ahead of expiry. Returns True when a refresh happened."""
        token = self.session.access_token
        if not token or not self.session.refresh_token:
            return False
        remaining = seconds_until_expiry(token, now=self.clock())
        if remaining is not None and remaining < self.config.auth.refresh_threshold_seconds:
            self.logger.info(
                "Access token close to expiry, refreshing", extra={"seconds_left": int(remaining)}
            )
            await self.refresh_access_token()
            return True
        return False

    async def refresh_access_token(self) -> str:
        """
        Refresh the access token, coalescing concurrent callers.

        The first caller starts the refresh; everyone arriving while it is in
        flight awaits the same task.

        Returns:
            The new access token

        Raises:
            SessionDeadError: If the refresh failed (the session has been cleared)
        """
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._perform_refresh())
        return await self._refresh_task

    async def _perform_refresh(self) -> str:
        refresh_token = self.session.refresh_token
        if not refresh_token:
            raise self._session_dead("No refresh token available")

        client = await self.get_client()
        try:
            response = await client.post(
                self.config.api.refresh_endpoint,
                content=dumps({"refreshToken": refresh_token}),
                headers={HEADER_CONTENT_TYPE: JSON_CONTENT_TYPE},
            )
        except httpx.HTTPError as e:
            raise self._session_dead("Token refresh failed", cause=e)

        if not response.is_success:
            raise self._session_dead("Token refresh failed", status=response.status_code)

        payload = parse_json_body(response)
        access_token = payload.get("accessToken") if isinstance(payload, dict) else None
        if not access_token:
            raise self._session_dead("No access token returned")

        self.session.update_access_token(access_token)
        self.logger.info("Access token refreshed")
        return access_token

    def _session_dead(
        self, message: str, cause: Optional[Exception] = None, **context
    ) -> SessionDeadError:
        """Tear the session down; refresh failure is fatal and never retried."""
        self.session.clear()
        self.cache.clear_all()
        error = SessionDeadError(message, cause=cause, **context)
        self.events.publish(EventName.SESSION_EXPIRED, error)
        return error
