"""WhatsApp Order Bridge - order status answers over WhatsApp."""

__version__ = "1.0.0"
