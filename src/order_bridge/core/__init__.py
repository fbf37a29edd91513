"""Core module - Logging, signature verification, token lifecycle and error monitoring."""

from order_bridge.core.logger import setup_logger
from order_bridge.core.signature import validate_webhook_request, verify_hub_signature

__all__ = ["setup_logger", "verify_hub_signature", "validate_webhook_request"]
