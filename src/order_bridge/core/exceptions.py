"""Exception types raised by the order bridge."""

from typing import Optional


class OrderBridgeError(Exception):
    """Base class for all order bridge errors."""


class ConfigurationError(OrderBridgeError):
    """Required settings for an operation are missing."""


class NotConnectedError(OrderBridgeError):
    """No usable storefront credential is stored."""


class ProviderError(OrderBridgeError):
    """A provider call failed. Carries the HTTP status and response body."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (status={self.status_code}, body={(self.body or '')[:500]})"
        return base


class AuthExchangeError(ProviderError):
    """The authorization-code grant was rejected by the provider."""


class RefreshError(ProviderError):
    """The refresh-token grant was rejected by the provider."""


class AuthorizationStateError(OrderBridgeError):
    """OAuth callback presented an unknown, expired or already used state."""


class OrderLookupError(ProviderError):
    """Storefront order API failed with a transport or server-class error."""
