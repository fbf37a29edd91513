"""Order lookup against the storefront API, whose response schema is not fixed."""

from typing import Any, Dict, List, Optional, Sequence

from order_bridge.api.client import StorefrontAPIClient
from order_bridge.config.constants import (
    CARRIER_FIELDS,
    DETAIL_ENVELOPE_KEYS,
    LIMIT_PARAM,
    LIST_ENVELOPE_KEYS,
    ORDER_CODE_FIELDS,
    ORDER_FILTER_PARAMS,
    ORDER_NUMBER_FIELDS,
    ORDER_STATUS_FIELDS,
    PAGE_PARAM,
    TRACKING_NUMBER_FIELDS,
    TRACKING_URL_FIELDS,
    UNKNOWN_STATUS,
)
from order_bridge.core.logger import setup_logger
from order_bridge.models.order import OrderSummary
from order_bridge.utils.fields import first_present, iter_present

logger = setup_logger(__name__)


def extract_items(payload: Any) -> List[Dict[str, Any]]:
    """Return the order objects of a list response ([...], {"data": [...]}, ...)."""
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        for key in LIST_ENVELOPE_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
    return []


def extract_order(payload: Any) -> Optional[Dict[str, Any]]:
    """Return the order object of a detail response ({...} or {"data": {...}})."""
    if not isinstance(payload, dict) or not payload:
        return None
    if first_present(payload, ORDER_NUMBER_FIELDS) is not None:
        return payload
    for key in DETAIL_ENVELOPE_KEYS:
        value = payload.get(key)
        if isinstance(value, dict) and value:
            return value
    if isinstance(payload.get("data"), list):
        # A list envelope where an order was expected
        return None
    return payload


def matches_identifier(order: Dict[str, Any], identifier: str) -> bool:
    """True if any identifier-bearing field equals the target, case-insensitively."""
    target = identifier.strip().casefold()
    return any(value.casefold() == target for _, value in iter_present(order, ORDER_NUMBER_FIELDS))


def carries_order_code(order: Dict[str, Any]) -> bool:
    """True if the order exposes any known order-code field besides its primary key."""
    return first_present(order, ORDER_CODE_FIELDS) is not None


def summarize_order(order: Dict[str, Any], identifier: str) -> OrderSummary:
    """Normalize status and shipping fields of a found order."""
    return OrderSummary(
        order_number=first_present(order, ORDER_CODE_FIELDS, default=identifier),
        status=first_present(order, ORDER_STATUS_FIELDS, default=UNKNOWN_STATUS),
        carrier=first_present(order, CARRIER_FIELDS),
        tracking_number=first_present(order, TRACKING_NUMBER_FIELDS),
        tracking_url=first_present(order, TRACKING_URL_FIELDS),
        raw=order,
    )


class OrderResolver:
    """
    Finds an order by its customer-facing number.

    Strategies, stopping at the first usable result:
      1. direct fetch with the number as primary key
      2. filtered list, one candidate query parameter at a time
      3. bounded paginated scan of the order list

    A not-found/bad-request answer moves on to the next strategy; any other
    failure raises OrderLookupError immediately. Returns None when every
    strategy is exhausted.
    """

    def __init__(
        self,
        api_client: StorefrontAPIClient,
        max_pages: int = 10,
        page_size: int = 50,
        filter_params: Sequence[str] = tuple(ORDER_FILTER_PARAMS),
    ):
        """Initialize resolver with API client and fallback bounds."""
        self.api_client = api_client
        self.max_pages = max_pages
        self.page_size = page_size
        self.filter_params = list(filter_params)

    async def find_order(self, identifier: str, access_token: str) -> Optional[OrderSummary]:
        """
        Resolve an order number to an order summary.

        Args:
            identifier: Validated order number
            access_token: Storefront bearer token

        Returns:
            OrderSummary, or None if no strategy found the order

        Raises:
            OrderLookupError: transport or server-class failure at any step
        """
        order = await self._find_direct(identifier, access_token)
        if order is None:
            order = await self._find_filtered(identifier, access_token)
        if order is None:
            order = await self._find_paginated(identifier, access_token)

        if order is None:
            logger.info(f"Order {identifier} not found after all lookup strategies")
            return None

        summary = summarize_order(order, identifier)
        logger.info(f"Resolved order {summary.order_number}: status={summary.status}")
        return summary

    async def _find_direct(self, identifier: str, access_token: str) -> Optional[Dict[str, Any]]:
        payload = await self.api_client.get_order(identifier, access_token)
        if payload is None:
            logger.info(f"Direct lookup of {identifier} returned no result")
            return None

        order = extract_order(payload)
        if order is not None:
            return order

        for item in extract_items(payload):
            if matches_identifier(item, identifier):
                return item

        logger.info(f"Direct lookup of {identifier} returned no usable order")
        return None

    async def _find_filtered(self, identifier: str, access_token: str) -> Optional[Dict[str, Any]]:
        for param in self.filter_params:
            payload = await self.api_client.list_orders(
                {param: identifier, LIMIT_PARAM: self.page_size},
                access_token,
            )
            items = extract_items(payload)
            if not items:
                continue

            for item in items:
                if matches_identifier(item, identifier):
                    logger.info(f"Filtered lookup matched {identifier} using '{param}'")
                    return item

            if not any(carries_order_code(item) for item in items):
                # Codes live under a field we do not know; trust the filter
                logger.info(f"Filtered lookup took first of {len(items)} results using '{param}'")
                return items[0]

            # Orders carrying other numbers: the provider ignored this parameter
            logger.debug(f"Filter '{param}' returned {len(items)} non-matching orders, trying next")

        return None

    async def _find_paginated(self, identifier: str, access_token: str) -> Optional[Dict[str, Any]]:
        for page in range(1, self.max_pages + 1):
            payload = await self.api_client.list_orders(
                {PAGE_PARAM: page, LIMIT_PARAM: self.page_size},
                access_token,
            )
            items = extract_items(payload)
            if not items:
                # Past the last page (or the list endpoint refused paging)
                break

            for item in items:
                if matches_identifier(item, identifier):
                    logger.info(f"Paginated scan found {identifier} on page {page}")
                    return item

        return None
