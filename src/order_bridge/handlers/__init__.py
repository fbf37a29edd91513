"""Handlers module - WhatsApp webhook event handling."""

from order_bridge.handlers.webhook import handle_inbound_message, handle_webhook_event

__all__ = ["handle_webhook_event", "handle_inbound_message"]
