"""Storefront admin API module."""

from .client import StorefrontAPIClient
from .endpoints import ORDER_DETAIL, ORDERS

__all__ = ["StorefrontAPIClient", "ORDER_DETAIL", "ORDERS"]
