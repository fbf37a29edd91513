"""Integrations module - Third-party service integrations (WhatsApp Cloud API)."""

from order_bridge.integrations.whatsapp import WhatsAppClient

__all__ = ["WhatsAppClient"]
