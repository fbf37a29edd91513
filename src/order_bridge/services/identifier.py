"""Order number extraction and intent detection for inbound chat text."""

import re
from typing import Iterable, Optional

from order_bridge.config.constants import (
    CANCEL_KEYWORDS,
    ORDER_INTENT_KEYWORDS,
    ORDER_TRACKING_MENU_OPTION,
)

# Tokens are delimited by anything that is not an ASCII letter or digit
_BOUNDARY_BEFORE = r"(?<![0-9A-Za-z])"
_BOUNDARY_AFTER = r"(?![0-9A-Za-z])"


def build_order_number_pattern(order_number_format: str, length: int) -> "re.Pattern[str]":
    """
    Compile the regex for one order number shape.

    numeric:      exactly `length` digits
    alphanumeric: exactly `length` letters/digits, at least one digit
                  (so ordinary words of the same length never match)
    """
    if length < 1:
        raise ValueError("order number length must be positive")

    if order_number_format == "numeric":
        body = rf"\d{{{length}}}"
    elif order_number_format == "alphanumeric":
        body = rf"(?=[A-Za-z]*\d)[A-Za-z0-9]{{{length}}}"
    else:
        raise ValueError(f"Unknown order number format: {order_number_format}")

    return re.compile(f"{_BOUNDARY_BEFORE}{body}{_BOUNDARY_AFTER}", re.IGNORECASE)


class OrderIdentifierExtractor:
    """Finds a validly shaped order number in free-form text."""

    def __init__(self, order_number_format: str = "alphanumeric", length: int = 13):
        """Initialize extractor for one deployment's order number contract."""
        self.order_number_format = order_number_format
        self.length = length
        self.pattern = build_order_number_pattern(order_number_format, length)

    def extract(self, text: Optional[str]) -> Optional[str]:
        """
        Return the first (leftmost) order number token in the text.

        Args:
            text: Raw inbound text

        Returns:
            The token exactly as typed, or None if the text holds no valid token
        """
        if not text:
            return None
        match = self.pattern.search(text.strip())
        return match.group(0) if match else None


def _normalize(text: Optional[str]) -> str:
    return " ".join((text or "").casefold().split())


def looks_like_order_intent(text: Optional[str], locale: str = "en") -> bool:
    """True if the text asks about an order ("where is my order", "1", ...)."""
    normalized = _normalize(text)
    if not normalized:
        return False
    if normalized == ORDER_TRACKING_MENU_OPTION:
        return True
    return _contains_any(normalized, ORDER_INTENT_KEYWORDS.get(locale, ORDER_INTENT_KEYWORDS["en"]))


def is_cancel_request(text: Optional[str], locale: str = "en") -> bool:
    """True if the whole message asks to abandon the current dialogue."""
    normalized = _normalize(text).strip(".!? ")
    return normalized in CANCEL_KEYWORDS.get(locale, CANCEL_KEYWORDS["en"])


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    # Keywords start on a word boundary; suffixes are allowed ("orders", "kargom")
    return any(re.search(r"\b" + re.escape(keyword), text) for keyword in keywords)
