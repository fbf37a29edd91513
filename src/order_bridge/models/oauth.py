"""Pydantic models for storefront OAuth data."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class OAuthCredential(BaseModel):
    """Cached access/refresh token pair for the storefront API."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None  # epoch seconds; None means "assume valid"
    token_type: Optional[str] = None
    scope: Optional[str] = None
    refresh_failures: int = 0

    class Config:
        from_attributes = True

    def expires_within(self, seconds: float, now: float) -> bool:
        """True when the token expires within `seconds` of `now`."""
        if self.expires_at is None:
            return False
        return self.expires_at - now <= seconds


class TokenResponse(BaseModel):
    """Token endpoint response (RFC 6749 section 5.1)."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[float] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None

    class Config:
        extra = "allow"

    def to_credential(
        self,
        now: float,
        previous_refresh_token: Optional[str] = None,
    ) -> OAuthCredential:
        """Build a credential, keeping the previous refresh token if none was issued."""
        return OAuthCredential(
            access_token=self.access_token or "",
            refresh_token=self.refresh_token or previous_refresh_token,
            expires_at=now + float(self.expires_in) if self.expires_in else None,
            token_type=self.token_type,
            scope=self.scope,
            refresh_failures=0,
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TokenResponse":
        """Parse a token payload, unwrapping a {"data": {...}} envelope if present."""
        if not isinstance(payload, dict):
            raise ValueError("Token payload is not a JSON object")
        if "access_token" not in payload and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        return cls(**payload)
