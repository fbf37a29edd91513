"""Pydantic models for dialogue state, OAuth data, orders and webhook events."""
