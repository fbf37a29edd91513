"""Pydantic models for order data."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from order_bridge.config.constants import UNKNOWN_STATUS


class OrderSummary(BaseModel):
    """Normalized status and shipping summary of a storefront order."""

    order_number: str
    status: str = UNKNOWN_STATUS
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)
