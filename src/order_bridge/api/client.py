"""Storefront (IdeaSoft) admin API client."""

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from order_bridge.config.constants import LOOKUP_CLIENT_ERROR_STATUSES
from order_bridge.core.exceptions import OrderLookupError
from order_bridge.core.logger import setup_logger

from .endpoints import ORDER_DETAIL, ORDERS

logger = setup_logger(__name__)


class StorefrontAPIClient:
    """
    Async HTTP client for the storefront order API.

    Responses in the not-found/bad-request class come back as None so callers
    can fall through to the next lookup strategy; anything else that is not a
    2xx is raised as OrderLookupError.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_root: str,
        timeout: float = 15.0,
    ):
        """Initialize API client with a shared httpx client."""
        self.client = http_client
        self.api_root = api_root.rstrip("/")
        self.timeout = timeout

    async def get_order(self, identifier: str, access_token: str) -> Optional[Any]:
        """
        Fetch a single order using the identifier as primary key.

        Args:
            identifier: Order number as typed by the customer
            access_token: Storefront bearer token

        Returns:
            Parsed JSON body, or None when the API answers 400/404/422
        """
        path = ORDER_DETAIL.format(identifier=quote(identifier, safe=""))
        return await self._get(path, access_token)

    async def list_orders(self, params: Dict[str, Any], access_token: str) -> Optional[Any]:
        """
        Fetch the order list with query parameters (filters or pagination).

        Returns:
            Parsed JSON body, or None when the API answers 400/404/422
        """
        return await self._get(ORDERS, access_token, params=params)

    async def _get(
        self,
        path: str,
        access_token: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[Any]:
        """Make an authenticated GET request to the storefront API."""
        url = f"{self.api_root}{path}"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

        try:
            logger.info(f"Making storefront API request to {path} params={params or {}}")
            response = await self.client.get(url, params=params, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling storefront {path}: {e}")
            raise OrderLookupError(f"Timeout calling {path}") from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling storefront {path}: {e}")
            raise OrderLookupError(f"Transport error calling {path}: {e}") from e

        if response.status_code in LOOKUP_CLIENT_ERROR_STATUSES:
            logger.info(f"Storefront {path} answered {response.status_code}, treating as no result")
            return None

        if not response.is_success:
            logger.error(f"Storefront API error calling {path}: {response.status_code} - {response.text[:500]}")
            raise OrderLookupError(
                f"Storefront API error calling {path}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Unparseable storefront response from {path}: {response.text[:200]}")
            raise OrderLookupError(
                f"Invalid JSON from {path}",
                status_code=response.status_code,
                body=response.text,
            ) from e
