"""User-facing reply texts, keyed by locale."""

from typing import Dict

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "help": (
            "Hello! 👋\n"
            "1) Order tracking\n\n"
            "Write \"where is my order\" or \"1\", or send your {length}-character order number directly."
        ),
        "ask_identifier": "To track your order, please send your {length}-character order number.",
        "invalid_identifier": "Please send a valid {length}-character order number. (e.g. {example})",
        "order_found": "Order no: {order_number}\nStatus: {status}",
        "carrier": "Carrier: {carrier}",
        "tracking_number": "Tracking number: {tracking_number}",
        "tracking_url": "Track your shipment: {tracking_url}",
        "order_not_found": "I could not find an order with the number {identifier}. Please check it and try again.",
        "lookup_failed": "I couldn't check your order right now. Please try again shortly.",
        "not_connected": (
            "Order tracking is temporarily unavailable because the store is not connected.\n"
            "Store admin: connect it at {connect_url}"
        ),
        "cancelled": "Okay, order tracking cancelled.",
    },
    "tr": {
        "help": (
            "Merhaba 👋\n"
            "1) Sipariş Takibi\n\n"
            "“Siparişim nerede” veya “1” yaz, ya da {length} haneli sipariş numaranı doğrudan gönder."
        ),
        "ask_identifier": "Sipariş takibi için {length} haneli sipariş numaranı yazar mısın?",
        "invalid_identifier": "Lütfen geçerli {length} haneli sipariş numaranı yaz. (Örn: {example})",
        "order_found": "Sipariş no: {order_number}\nDurum: {status}",
        "carrier": "Kargo firması: {carrier}",
        "tracking_number": "Takip no: {tracking_number}",
        "tracking_url": "Kargo takip: {tracking_url}",
        "order_not_found": "{identifier} numaralı bir sipariş bulamadım. Kontrol edip tekrar dener misin?",
        "lookup_failed": "Siparişi şu an sorgulayamadım. Birazdan tekrar dener misin?",
        "not_connected": (
            "Mağaza bağlantısı olmadığı için sipariş takibi şu an kullanılamıyor.\n"
            "Mağaza yöneticisi: {connect_url} adresinden bağlayabilir."
        ),
        "cancelled": "Tamam, sipariş takibini iptal ettim.",
    },
}

# Example identifier patterns shown in prompts, truncated to the configured length
EXAMPLE_IDENTIFIERS = {
    "numeric": "2025010100001234567890",
    "alphanumeric": "ABCDE12345FGHJK6789",
}


def get_messages(locale: str) -> Dict[str, str]:
    """Return the reply catalog for a locale, falling back to English."""
    return MESSAGES.get(locale, MESSAGES["en"])


def example_identifier(order_number_format: str, length: int) -> str:
    """Build a sample order number of the configured shape."""
    pattern = EXAMPLE_IDENTIFIERS.get(order_number_format, EXAMPLE_IDENTIFIERS["alphanumeric"])
    return (pattern * (length // len(pattern) + 1))[:length]
