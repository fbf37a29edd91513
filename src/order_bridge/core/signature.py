"""WhatsApp Webhook Signature Verification.

Verifies that incoming webhooks are genuinely from Meta using HMAC-SHA256.
Meta signs the raw request body with the app secret and sends the result in
the X-Hub-Signature-256 header as "sha256=<hexdigest>".
"""

import hashlib
import hmac
from typing import Optional

from order_bridge.core.logger import setup_logger

logger = setup_logger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(app_secret: str, raw_body: bytes) -> str:
    """Compute the X-Hub-Signature-256 header value for a body."""
    digest = hmac.new(
        app_secret.encode("utf-8"),
        raw_body,
        hashlib.sha256,
    ).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_hub_signature(
    raw_body: bytes,
    signature_header: Optional[str],
    app_secret: Optional[str],
    allow_unsigned: bool = False,
) -> bool:
    """
    Verify a Meta webhook signature.

    Args:
        raw_body: Raw request body as bytes (NOT parsed JSON)
        signature_header: Value from X-Hub-Signature-256 header
        app_secret: WhatsApp app secret used as the HMAC key
        allow_unsigned: Accept deliveries when secret or header is missing

    Returns:
        True if the signature is valid, or the delivery is unsigned and
        unsigned deliveries are explicitly allowed
    """
    if not app_secret:
        if allow_unsigned:
            logger.warning("Accepting webhook without verification: WHATSAPP_APP_SECRET is not set")
            return True
        logger.error("Rejecting webhook: WHATSAPP_APP_SECRET is not set")
        return False

    if not signature_header:
        if allow_unsigned:
            logger.warning("Accepting webhook without X-Hub-Signature-256 header (ALLOW_UNSIGNED_WEBHOOKS)")
            return True
        logger.warning("Webhook received without X-Hub-Signature-256 header")
        return False

    expected_signature = compute_signature(app_secret, raw_body)

    # Compare using constant-time comparison
    if hmac.compare_digest(expected_signature, signature_header.strip()):
        logger.debug("Valid webhook signature")
        return True

    logger.warning(f"Invalid webhook signature. Got: {signature_header[:16]}...")
    return False


def validate_webhook_request(
    raw_body: bytes,
    signature_header: Optional[str],
    app_secret: Optional[str],
    allow_unsigned: bool = False,
) -> tuple[bool, Optional[str]]:
    """
    Full webhook validation: basic checks + signature verification.

    Args:
        raw_body: Raw request body as bytes
        signature_header: Value from X-Hub-Signature-256 header
        app_secret: WhatsApp app secret
        allow_unsigned: Accept unsigned deliveries (development only)

    Returns:
        Tuple of (is_valid: bool, error_message: Optional[str])
        If valid: (True, None)
        If invalid: (False, error_message)
    """
    try:
        body_str = raw_body.decode("utf-8")
    except UnicodeDecodeError as e:
        error = f"Invalid UTF-8 in request body: {e}"
        logger.error(error)
        return False, error

    # Body must not be empty
    if not body_str.strip():
        return False, "Empty request body"

    if not verify_hub_signature(raw_body, signature_header, app_secret, allow_unsigned):
        return False, "Invalid webhook signature"

    return True, None
