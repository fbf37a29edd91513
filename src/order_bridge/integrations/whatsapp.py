"""Send replies through the WhatsApp Cloud API."""

from typing import Optional

import httpx

from order_bridge.config.settings import Settings
from order_bridge.core.logger import setup_logger

logger = setup_logger(__name__)


class WhatsAppClient:
    """Best-effort sender of plain-text WhatsApp messages."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        """
        Initialize sender.

        Args:
            settings: Application settings (token, phone number id, API version)
            http_client: Shared async HTTP client
        """
        self.client = http_client
        self.token = settings.whatsapp_token
        self.phone_number_id = settings.whatsapp_phone_number_id
        self.timeout = settings.http_timeout_seconds
        self.enabled = bool(self.token and self.phone_number_id)
        self.messages_url = (
            f"{settings.graph_api_base_url.rstrip('/')}/{settings.graph_api_version}"
            f"/{self.phone_number_id}/messages"
        )

        if not self.enabled:
            logger.warning("WhatsApp sending disabled (WHATSAPP_TOKEN or WHATSAPP_PHONE_NUMBER_ID not set)")

    async def send_text(self, recipient: str, body: str) -> bool:
        """
        Send a text message. Never raises; failures are logged.

        Args:
            recipient: Recipient phone number (WhatsApp id)
            body: Message text

        Returns:
            True if the Cloud API accepted the message, False otherwise
        """
        if not self.enabled:
            logger.error(f"Cannot send WhatsApp message to {self._mask(recipient)}: sender not configured")
            return False

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient,
            "type": "text",
            "text": {"preview_url": True, "body": body},
        }

        try:
            response = await self.client.post(
                self.messages_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()

            logger.info(f"Sent WhatsApp message to {self._mask(recipient)} (status={response.status_code})")
            return True

        except httpx.HTTPStatusError as e:
            logger.error(
                f"WhatsApp API error sending to {self._mask(recipient)}: "
                f"{e.response.status_code} - {e.response.text[:500]}"
            )
            return False

        except httpx.TimeoutException:
            logger.error(f"Timeout sending WhatsApp message to {self._mask(recipient)}")
            return False

        except httpx.HTTPError as e:
            logger.error(f"Error sending WhatsApp message to {self._mask(recipient)}: {e}", exc_info=True)
            return False

    @staticmethod
    def _mask(phone: Optional[str]) -> str:
        """Mask a phone number for logs."""
        if not phone:
            return "<unknown>"
        return f"***{phone[-4:]}"
