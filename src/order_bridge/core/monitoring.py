"""
GlitchTip Error Monitoring Utilities

Helper functions for error tracking and context management.
All helpers are no-ops until sentry_sdk.init() has been called.
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from order_bridge.core.logger import setup_logger

logger = setup_logger(__name__)


def init_monitoring(dsn: Optional[str], environment: str) -> bool:
    """
    Initialize GlitchTip (Sentry-compatible) error monitoring.

    Args:
        dsn: GlitchTip DSN; monitoring stays disabled when empty
        environment: Deployment environment name

    Returns:
        True if monitoring was initialized
    """
    if not dsn:
        logger.info("GlitchTip monitoring disabled (no GLITCHTIP_DSN set)")
        return False

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                LoggingIntegration(
                    level=None,  # Capture all log levels as breadcrumbs
                    event_level=logging.ERROR,  # Send ERROR logs as events
                ),
            ],
            traces_sample_rate=0.1,
            send_default_pii=False,
        )
        logger.info("GlitchTip error monitoring initialized")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize GlitchTip: {e}")
        return False


def set_conversation_context(
    customer_id: Optional[int] = None,
    message_type: Optional[str] = None,
    **extra_tags,
) -> None:
    """
    Set conversation-specific context for error tracking.

    Args:
        customer_id: Internal customer id (never the phone number)
        message_type: WhatsApp message type (text, button, interactive, ...)
        **extra_tags: Additional tags to add
    """
    try:
        if customer_id is not None:
            sentry_sdk.set_tag("conversation.customer_id", customer_id)
        if message_type:
            sentry_sdk.set_tag("conversation.message_type", message_type)

        for key, value in extra_tags.items():
            sentry_sdk.set_tag(key, value)

        context_data = {
            "customer_id": customer_id,
            "message_type": message_type,
        }
        context_data.update(extra_tags)
        sentry_sdk.set_context("conversation", context_data)

    except Exception as e:
        logger.warning(f"Failed to set conversation context: {e}")


def capture_exception(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
) -> None:
    """
    Capture an exception and send to GlitchTip.

    Args:
        error: The exception to capture
        context: Additional context data
        level: Error level (error, warning, info)
    """
    try:
        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context("custom", context)
            scope.set_level(level)
            sentry_sdk.capture_exception(error)

    except Exception as e:
        logger.warning(f"Failed to capture exception in GlitchTip: {e}")


def capture_message(
    message: str,
    level: str = "info",
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture a message and send to GlitchTip.

    Args:
        message: Message to capture
        level: Message level (info, warning, error)
        context: Additional context data
    """
    try:
        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context("custom", context)
            scope.set_level(level)
            sentry_sdk.capture_message(message)

    except Exception as e:
        logger.warning(f"Failed to capture message in GlitchTip: {e}")
