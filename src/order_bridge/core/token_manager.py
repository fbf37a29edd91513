"""Token management for storefront API authentication."""

import secrets
import time
from typing import Callable, Dict, Optional
from urllib.parse import urlencode

import httpx

from order_bridge.config.constants import (
    GRANT_AUTHORIZATION_CODE,
    GRANT_REFRESH_TOKEN,
    OAUTH_STATE_BYTES,
)
from order_bridge.config.settings import Settings
from order_bridge.core.exceptions import (
    AuthExchangeError,
    AuthorizationStateError,
    ConfigurationError,
    NotConnectedError,
    RefreshError,
)
from order_bridge.core.logger import setup_logger
from order_bridge.core.monitoring import capture_message
from order_bridge.db.repository import OAuthRepository
from order_bridge.models.oauth import OAuthCredential, TokenResponse

logger = setup_logger(__name__)

# Connection status values reported by TokenManager.connection_status()
STATUS_CONNECTED = "connected"
STATUS_NOT_CONNECTED = "not_connected"
STATUS_NEEDS_REAUTHORIZATION = "needs_reauthorization"


class TokenManager:
    """
    Owns the storefront OAuth credential lifecycle.

    Exchanges authorization codes, refreshes expiring access tokens and hands
    out a currently valid access token. The credential lives in the database,
    never in process memory, so every call reads the stored row.
    """

    def __init__(
        self,
        settings: Settings,
        repository: OAuthRepository,
        http_client: httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize manager with settings, credential storage and HTTP client."""
        self.settings = settings
        self.repository = repository
        self.client = http_client
        self.clock = clock
        self.provider = settings.storefront_provider
        self.refresh_margin = settings.token_refresh_margin_seconds

    # ------------------------------------------------------------------
    # Authorization (connect) flow
    # ------------------------------------------------------------------

    async def begin_authorization(self) -> str:
        """
        Issue an anti-forgery state and build the provider's authorize URL.

        Returns:
            URL the store admin's browser should be redirected to
        """
        self._require("storefront_auth_url", "storefront_client_id", "storefront_redirect_uri")

        state = secrets.token_urlsafe(OAUTH_STATE_BYTES)
        await self.repository.save_pending_authorization(self.provider, state, created_at=self.clock())

        params = {
            "response_type": "code",
            "client_id": self.settings.storefront_client_id,
            "redirect_uri": self.settings.storefront_redirect_uri,
            "state": state,
        }
        if self.settings.storefront_scopes:
            params["scope"] = self.settings.storefront_scopes

        logger.info(f"Issued authorization state for provider {self.provider}")
        return f"{self.settings.storefront_auth_url}?{urlencode(params)}"

    async def complete_authorization(self, state: str, code: str) -> OAuthCredential:
        """
        Validate the callback state and exchange the authorization code.

        Raises:
            AuthorizationStateError: state unknown, expired or already used
            AuthExchangeError: provider rejected the code
        """
        consumed = await self.repository.consume_pending_authorization(
            self.provider,
            state,
            max_age_seconds=self.settings.pending_authorization_ttl_seconds,
            now=self.clock(),
        )
        if not consumed:
            logger.warning("Rejected OAuth callback with unknown or used state")
            raise AuthorizationStateError("Unknown, expired or already used authorization state")

        return await self.exchange_authorization_code(code)

    async def exchange_authorization_code(self, code: str) -> OAuthCredential:
        """
        Exchange an authorization code for a credential and persist it.

        Returns:
            The stored credential

        Raises:
            AuthExchangeError: non-2xx response, transport failure or no access_token
        """
        self._require(
            "storefront_token_url",
            "storefront_client_id",
            "storefront_client_secret",
            "storefront_redirect_uri",
        )

        form = {
            "grant_type": GRANT_AUTHORIZATION_CODE,
            "code": code,
            "redirect_uri": self.settings.storefront_redirect_uri,
            "client_id": self.settings.storefront_client_id,
            "client_secret": self.settings.storefront_client_secret,
        }

        logger.info("Exchanging authorization code for storefront token")
        token = await self._post_token_request(form, AuthExchangeError)

        credential = token.to_credential(now=self.clock())
        await self.repository.save_oauth_credential(self.provider, credential)
        logger.info("Storefront token saved after authorization")
        return credential

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------

    async def get_valid_access_token(self) -> Optional[str]:
        """
        Return a currently valid access token, refreshing it if necessary.

        Returns:
            Access token, or None when the store is not connected, the token
            expired without a refresh token, or the refresh failed
        """
        credential = await self.repository.get_oauth_credential(self.provider)

        if credential is None or not credential.access_token:
            logger.info("No storefront credential stored")
            return None

        now = self.clock()
        if not credential.expires_within(self.refresh_margin, now):
            return credential.access_token

        if not credential.refresh_token:
            logger.warning("Storefront token expired and no refresh token is available")
            return None

        if credential.refresh_failures >= self.settings.refresh_failure_threshold:
            logger.error(
                f"Storefront token refresh failed {credential.refresh_failures} times in a row; "
                "re-authorization required"
            )
            return None

        try:
            refreshed = await self.refresh(credential)
        except ConfigurationError as e:
            logger.error(f"Cannot refresh storefront token: {e}")
            return None
        except RefreshError as e:
            failures = await self.repository.record_refresh_failure(self.provider)
            logger.error(f"Storefront token refresh failed ({failures} consecutive): {e}")
            if failures == self.settings.refresh_failure_threshold:
                capture_message(
                    f"Storefront {self.provider} needs re-authorization after {failures} failed refreshes",
                    level="error",
                    context={"status_code": e.status_code},
                )
            return None

        return refreshed.access_token

    async def require_access_token(self) -> str:
        """
        Like get_valid_access_token(), but raise when no token is available.

        Raises:
            NotConnectedError: the store must be (re-)authorized
        """
        access_token = await self.get_valid_access_token()
        if not access_token:
            raise NotConnectedError(f"No usable {self.provider} credential; re-authorization required")
        return access_token

    async def refresh(self, credential: OAuthCredential) -> OAuthCredential:
        """
        Run a refresh-token grant and persist the new credential.

        The previous refresh token is kept when the provider omits a new one.

        Raises:
            RefreshError: non-2xx response, transport failure or no access_token
        """
        self._require("storefront_token_url", "storefront_client_id", "storefront_client_secret")

        form = {
            "grant_type": GRANT_REFRESH_TOKEN,
            "refresh_token": credential.refresh_token,
            "client_id": self.settings.storefront_client_id,
            "client_secret": self.settings.storefront_client_secret,
        }

        logger.info("Refreshing storefront access token")
        token = await self._post_token_request(form, RefreshError)

        refreshed = token.to_credential(now=self.clock(), previous_refresh_token=credential.refresh_token)
        await self.repository.save_oauth_credential(self.provider, refreshed)
        logger.info("Storefront access token refreshed successfully")
        return refreshed

    async def connection_status(self) -> str:
        """Describe the stored credential for health checks."""
        credential = await self.repository.get_oauth_credential(self.provider)
        if credential is None or not credential.access_token:
            return STATUS_NOT_CONNECTED
        if credential.refresh_failures >= self.settings.refresh_failure_threshold:
            return STATUS_NEEDS_REAUTHORIZATION
        if credential.expires_within(0, self.clock()) and not credential.refresh_token:
            return STATUS_NEEDS_REAUTHORIZATION
        return STATUS_CONNECTED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _post_token_request(self, form: Dict[str, str], error_cls: type) -> TokenResponse:
        """POST a form-encoded grant to the token endpoint."""
        try:
            response = await self.client.post(
                self.settings.storefront_token_url,
                data=form,
                headers={"Accept": "application/json"},
                timeout=self.settings.http_timeout_seconds,
            )
        except httpx.HTTPError as e:
            raise error_cls(f"Token endpoint unreachable: {e}") from e

        if not response.is_success:
            logger.error(f"Token endpoint error: {response.status_code} - {response.text[:500]}")
            raise error_cls(
                f"Token endpoint rejected {form['grant_type']} grant",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            token = TokenResponse.from_payload(response.json())
        except ValueError as e:
            raise error_cls(
                "Token endpoint returned an unparseable body",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if not token.access_token:
            raise error_cls(
                "Token endpoint response has no access_token",
                status_code=response.status_code,
                body=response.text,
            )

        return token

    def _require(self, *names: str) -> None:
        """Raise ConfigurationError if any named setting is empty."""
        missing = [name.upper() for name in names if not getattr(self.settings, name)]
        if missing:
            raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")
