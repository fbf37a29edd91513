"""Services module - Order number extraction, order lookup and conversation flow."""
