"""Storefront admin API endpoint paths (relative to the API root)."""

ORDERS = "/orders"
ORDER_DETAIL = "/orders/{identifier}"
