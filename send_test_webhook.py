#!/usr/bin/env python3
"""Send a signed WhatsApp text message webhook to a running bridge."""

import hashlib
import hmac
import json
import os
import sys
import time

import requests
from dotenv import load_dotenv

load_dotenv()

APP_SECRET = os.getenv("WHATSAPP_APP_SECRET", "")
WEBHOOK_URL = os.getenv("TEST_WEBHOOK_URL", "http://localhost:8000/webhook")

# Load test data from environment or use placeholders
FROM_NUMBER = os.getenv("TEST_FROM_NUMBER", "905551112233")
PROFILE_NAME = os.getenv("TEST_PROFILE_NAME", "Test Customer")
TEXT = " ".join(sys.argv[1:]) or os.getenv("TEST_MESSAGE_TEXT", "where is my order")

timestamp = int(time.time())
payload = {
    "object": "whatsapp_business_account",
    "entry": [
        {
            "id": "TEST_WABA_ID",
            "changes": [
                {
                    "field": "messages",
                    "value": {
                        "messaging_product": "whatsapp",
                        "metadata": {"phone_number_id": os.getenv("WHATSAPP_PHONE_NUMBER_ID", "TEST")},
                        "contacts": [{"wa_id": FROM_NUMBER, "profile": {"name": PROFILE_NAME}}],
                        "messages": [
                            {
                                "from": FROM_NUMBER,
                                "id": f"wamid.TEST{timestamp}",
                                "timestamp": str(timestamp),
                                "type": "text",
                                "text": {"body": TEXT},
                            }
                        ],
                    },
                }
            ],
        }
    ],
}

# Sign exactly the bytes that are sent
body = json.dumps(payload).encode("utf-8")
headers = {"Content-Type": "application/json"}
if APP_SECRET:
    digest = hmac.new(APP_SECRET.encode("utf-8"), body, hashlib.sha256).hexdigest()
    headers["X-Hub-Signature-256"] = f"sha256={digest}"

print("=" * 80)
print("SENDING TEST WEBHOOK")
print("=" * 80)
print(f"\nFrom: {FROM_NUMBER}")
print(f"Text: {TEXT}")
print(f"Signed: {'yes' if APP_SECRET else 'no (WHATSAPP_APP_SECRET not set)'}")

try:
    response = requests.post(WEBHOOK_URL, data=body, headers=headers, timeout=10)

    print(f"\n{'=' * 80}")
    print(f"RESPONSE: {response.status_code}")
    print(f"{'=' * 80}")
    print(f"Body: {response.text or '(empty)'}")

    if response.status_code == 200:
        print("\nWebhook accepted. The reply is sent to the number above via WhatsApp.")
    else:
        print("\nWebhook rejected")

except requests.RequestException as e:
    print(f"\nError: {e}")
