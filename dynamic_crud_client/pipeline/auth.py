"""
Login and logout helpers.

Both calls run through the request pipeline so they share its transport,
headers, error mapping and event notifications.
"""

from typing import Any, Dict, Optional

from ..cache.response_cache import ResponseCache
from ..constants import HEADER_IDENTITY, HttpMethod
from ..exceptions import BaseError
from ..session import SessionManager
from ..utils.logger import get_logger
from .request_pipeline import RequestPipeline


class AuthService:
    """
    Service for establishing and tearing down sessions.

    This service provides:
    - Credential login storing the returned token pair and identity
    - Best-effort logout that always leaves the client signed out
    """

    def __init__(self, pipeline: RequestPipeline, session: SessionManager, cache: ResponseCache):
        """Initialize with the pipeline, session manager and response cache."""
        self.pipeline = pipeline
        self.session = session
        self.cache = cache
        self.logger = get_logger()

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        """
        Log in with username and password.

        Tokens are stored only when the response carries both of them. The
        identity comes from the response's identity field or username, and
        falls back to the submitted username.

        Args:
            username: Account username
            password: Account password

        Returns:
            The decoded login response

        Raises:
            ApiRequestError: If the backend rejects the credentials
            NetworkError: If the backend is unreachable
        """
        payload = await self.pipeline.execute(
            self.pipeline.config.api.login_endpoint,
            method=HttpMethod.POST.value,
            body={"username": username, "password": password},
        )
        data: Dict[str, Any] = payload if isinstance(payload, dict) else {}

        access_token = data.get("accessToken")
        refresh_token = data.get("refreshToken")
        if access_token and refresh_token:
            self.session.set_tokens(access_token, refresh_token)
        else:
            self.logger.warning("Login response did not include a full token pair")

        identity: Optional[str] = data.get(HEADER_IDENTITY) or data.get("username") or username
        self.session.set_identity(str(identity))
        self.cache.clear_all()

        self.logger.info(
            "Logged in", extra={"identity": identity, "active": self.session.is_active()}
        )
        return data

    async def logout(self) -> None:
        """Log out; the backend call is best-effort and the local session is always cleared."""
        if self.session.is_active():
            try:
                await self.pipeline.execute(
                    self.pipeline.config.api.logout_endpoint, method=HttpMethod.POST.value
                )
            except BaseError as e:
                self.logger.warning(
                    "Logout request failed, clearing session anyway",
                    extra={"error_message": e.message},
                )

        self.session.clear()
        self.cache.clear_all()
        self.logger.info("Logged out")
