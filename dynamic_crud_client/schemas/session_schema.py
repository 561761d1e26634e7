"""
Pydantic schemas for session credentials and cache entries.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..utils.token_utils import get_expiry


class TokenPair(BaseModel):
    """Current auth credential. Both tokens are always present together."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., min_length=1, description="Short-lived bearer token")
    refresh_token: str = Field(..., min_length=1, description="Long-lived refresh token")

    @property
    def expires_at(self) -> Optional[datetime]:
        """Expiry derived from the access token's `exp` claim."""
        return get_expiry(self.access_token)

    def with_access_token(self, access_token: str) -> "TokenPair":
        """Copy with a replaced access token; the refresh token is not rotated."""
        return TokenPair(access_token=access_token, refresh_token=self.refresh_token)


class CacheEntry(BaseModel):
    """Memoized response."""

    key: str
    family: str = Field(description="Resource family used for invalidation")
    payload: Any
    expires_at: float = Field(description="Epoch seconds from which the entry is a miss")

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at
