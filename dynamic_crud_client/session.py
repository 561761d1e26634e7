"""
Session management for the Dynamic CRUD Client.

The SessionManager holds the current token pair and caller identity in process
memory so the request pipeline never reads persisted storage per request.
It is an injectable object with an explicit init()/dispose() lifecycle, so
independent sessions (and tests) never leak state into each other.
"""

from typing import Dict, Mapping, Optional

from .constants import PersistedKey
from .schemas.session_schema import TokenPair
from .utils.logger import get_logger


class SessionManager:
    """In-memory holder of the TokenPair and Identity."""

    def __init__(self):
        self._tokens: Optional[TokenPair] = None
        self._identity: Optional[str] = None
        self._plan: Optional[str] = None
        self._disposed = False
        self.logger = get_logger()

    # ==================== LIFECYCLE ====================

    def init(
        self,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        identity: Optional[str] = None,
        plan: Optional[str] = None,
    ) -> "SessionManager":
        """
        Start a session, discarding any previous state.

        Args:
            access_token: Access token, if already known
            refresh_token: Refresh token, if already known
            identity: Caller identity string
            plan: Caller's subscription plan

        Returns:
            Self for method chaining
        """
        self.clear()
        self._disposed = False
        self.set_tokens(access_token, refresh_token)
        self.set_identity(identity)
        self._plan = plan or None
        return self

    def dispose(self) -> None:
        """Wipe all session state and mark the manager disposed."""
        self.clear()
        self._disposed = True
        self.logger.debug("Session disposed")

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ==================== TOKENS ====================

    def set_tokens(self, access_token: Optional[str], refresh_token: Optional[str]) -> None:
        """
        Replace both tokens.

        A partial pair (either token missing) is normalized to no tokens.
        """
        if access_token and refresh_token:
            self._tokens = TokenPair(access_token=access_token, refresh_token=refresh_token)
        else:
            if access_token or refresh_token:
                self.logger.warning("Discarding partial token pair")
            self._tokens = None

    def update_access_token(self, access_token: str) -> None:
        """
        Replace only the access token after a refresh.

        Raises:
            RuntimeError: If there is no token pair to update
        """
        if self._tokens is None:
            raise RuntimeError("Cannot update access token without an active token pair")
        self._tokens = self._tokens.with_access_token(access_token)

    @property
    def tokens(self) -> Optional[TokenPair]:
        return self._tokens

    @property
    def access_token(self) -> Optional[str]:
        return self._tokens.access_token if self._tokens else None

    @property
    def refresh_token(self) -> Optional[str]:
        return self._tokens.refresh_token if self._tokens else None

    # ==================== IDENTITY ====================

    def set_identity(self, identity: Optional[str]) -> None:
        """Set the caller's user id propagated to the backend."""
        self._identity = identity or None

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def plan(self) -> Optional[str]:
        return self._plan

    # ==================== STATE ====================

    def clear(self) -> None:
        """Wipe tokens, identity and plan; effective for all subsequent requests."""
        self._tokens = None
        self._identity = None
        self._plan = None

    def is_active(self) -> bool:
        """True iff an access token is present."""
        return self.access_token is not None

    # ==================== BOOTSTRAP HANDOFF ====================

    def restore(self, persisted: Mapping[str, Optional[str]]) -> bool:
        """
        Accept credentials read from device storage by the bootstrap step.

        Args:
            persisted: Mapping keyed by accessToken, refreshToken, username, userPlan

        Returns:
            Whether the restored session is active
        """
        self.init(
            access_token=persisted.get(PersistedKey.ACCESS_TOKEN.value),
            refresh_token=persisted.get(PersistedKey.REFRESH_TOKEN.value),
            identity=persisted.get(PersistedKey.USERNAME.value),
            plan=persisted.get(PersistedKey.USER_PLAN.value),
        )
        self.logger.info(
            "Session restored",
            extra={"active": self.is_active(), "identity": self._identity},
        )
        return self.is_active()

    def snapshot(self) -> Dict[str, Optional[str]]:
        """Current state in the persisted-key layout, for the bootstrap step to write."""
        return {
            PersistedKey.ACCESS_TOKEN.value: self.access_token,
            PersistedKey.REFRESH_TOKEN.value: self.refresh_token,
            PersistedKey.USERNAME.value: self._identity,
            PersistedKey.USER_PLAN.value: self._plan,
        }
