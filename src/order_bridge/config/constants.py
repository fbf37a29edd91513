"""
Centralized application constants.

Flow tags, provider field-name candidates and intent keywords shared by the
flow controller, the order resolver and the token manager.
"""

# ==============================================================================
# CONVERSATION FLOW
# ==============================================================================

FLOW_ORDER_TRACKING = "order_tracking"
STEP_AWAIT_IDENTIFIER = "await_identifier"

# Menu shortcut shown in the help text
ORDER_TRACKING_MENU_OPTION = "1"

# Locale-sensitive "where is my order" keywords (matched from a word start, lowercased)
ORDER_INTENT_KEYWORDS = {
    "en": ["where is my order", "my order", "order", "track", "tracking", "shipment", "delivery"],
    "tr": ["sipariş", "siparis", "kargo", "nerede", "takip", "teslim"],
}

# Words that abandon the order-tracking dialogue (whole-message match)
CANCEL_KEYWORDS = {
    "en": ["cancel", "stop", "never mind", "nevermind"],
    "tr": ["iptal", "vazgeç", "vazgec", "dur"],
}

# ==============================================================================
# CONVERSATIONS
# ==============================================================================

CONVERSATION_OPEN = "open"
CONVERSATION_CLOSED = "closed"

DIRECTION_IN = "in"
DIRECTION_OUT = "out"

# ==============================================================================
# ORDER LOOKUP
# ==============================================================================

# Query parameters the provider might honour for "find by order code"
ORDER_FILTER_PARAMS = ["search", "orderNumber", "order_number", "code", "q"]

# Page/limit parameter names for the enumeration fallback
PAGE_PARAM = "page"
LIMIT_PARAM = "limit"

# HTTP statuses classified as "not found / bad request" (cascade continues)
LOOKUP_CLIENT_ERROR_STATUSES = (400, 404, 422)

# Envelope keys wrapping list and detail responses
LIST_ENVELOPE_KEYS = ["data", "items", "orders", "results"]
DETAIL_ENVELOPE_KEYS = ["data", "order"]

# Candidate paths, first present non-empty value wins.
# Dotted segments walk nested objects; numeric segments index lists.
ORDER_NUMBER_FIELDS = [
    "orderNumber",
    "order_number",
    "code",
    "orderCode",
    "order_code",
    "transactionId",
    "transaction_id",
    "number",
    "id",
]

# The same candidates minus the numeric primary key, which every order carries
ORDER_CODE_FIELDS = [field for field in ORDER_NUMBER_FIELDS if field != "id"]

ORDER_STATUS_FIELDS = [
    "orderStatus.name",
    "order_status.name",
    "status.name",
    "orderStatus",
    "order_status",
    "status",
    "statusName",
    "status_name",
    "state",
]

CARRIER_FIELDS = [
    "shipment.carrier.name",
    "shipment.carrier",
    "shipping.carrier",
    "shippingCompany.name",
    "shipping_company.name",
    "cargoCompany.name",
    "cargo_company.name",
    "shippingCompany",
    "shipping_company",
    "cargoCompany",
    "cargo_company",
    "carrierName",
    "carrier_name",
    "carrier",
    "shipments.0.carrier",
]

TRACKING_NUMBER_FIELDS = [
    "shipment.trackingNumber",
    "shipment.tracking_number",
    "shipping.trackingNumber",
    "shipping.tracking_number",
    "trackingNumber",
    "tracking_number",
    "cargoTrackingNumber",
    "cargo_tracking_number",
    "trackingCode",
    "tracking_code",
    "shipments.0.trackingNumber",
    "shipments.0.tracking_number",
]

TRACKING_URL_FIELDS = [
    "shipment.trackingUrl",
    "shipment.tracking_url",
    "shipping.trackingUrl",
    "shipping.tracking_url",
    "trackingUrl",
    "tracking_url",
    "cargoTrackingUrl",
    "cargo_tracking_url",
    "trackingLink",
    "tracking_link",
    "shipments.0.trackingUrl",
    "shipments.0.tracking_url",
]

UNKNOWN_STATUS = "unknown"

# ==============================================================================
# OAUTH
# ==============================================================================

# Refresh when the access token expires within this many seconds
TOKEN_REFRESH_MARGIN_SECONDS = 60

GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"

# Bytes of entropy in the anti-forgery state value
OAUTH_STATE_BYTES = 32
