"""Webhook event handling."""

from typing import Any, Dict, Optional

from order_bridge.config.constants import DIRECTION_IN, DIRECTION_OUT
from order_bridge.core.logger import setup_logger
from order_bridge.core.monitoring import capture_exception, set_conversation_context
from order_bridge.db.repository import ConversationRepository
from order_bridge.integrations.whatsapp import WhatsAppClient
from order_bridge.models.webhook import InboundMessage, WebhookPayload
from order_bridge.services.flow_controller import FlowController

logger = setup_logger(__name__)


async def handle_webhook_event(
    event_payload: Dict[str, Any],
    conversations: ConversationRepository,
    flow_controller: FlowController,
    whatsapp: WhatsAppClient,
) -> int:
    """
    Handle an incoming WhatsApp webhook delivery.

    Args:
        event_payload: Parsed webhook payload
        conversations: Customer/conversation/message storage
        flow_controller: Dialogue state machine
        whatsapp: Outbound sender

    Returns:
        Number of messages processed (duplicates and status-only changes excluded)
    """
    payload = WebhookPayload(**event_payload)
    processed = 0

    for message, profile_name in payload.iter_messages():
        try:
            if await handle_inbound_message(message, profile_name, conversations, flow_controller, whatsapp):
                processed += 1
        except Exception as e:
            # Don't raise - other messages in the delivery still get handled
            await conversations.session.rollback()
            logger.error(f"Error processing message {message.id}: {e}", exc_info=True, extra={"message_id": message.id})
            capture_exception(e, context={"message_id": message.id, "message_type": message.type})

    if processed == 0:
        logger.debug("Webhook delivery had no new inbound messages")

    return processed


async def handle_inbound_message(
    message: InboundMessage,
    profile_name: Optional[str],
    conversations: ConversationRepository,
    flow_controller: FlowController,
    whatsapp: WhatsAppClient,
) -> bool:
    """
    Record one inbound message, run the dialogue and send the reply.

    Returns:
        False if the message was a duplicate delivery and was skipped
    """
    if await conversations.has_incoming_message(message.id):
        logger.info(f"Duplicate delivery of message {message.id}, skipping", extra={"message_id": message.id})
        return False

    text = message.extract_text()
    customer = await conversations.get_or_create_customer(message.from_, profile_name)
    conversation_id = await conversations.get_or_create_open_conversation(customer.id)

    set_conversation_context(customer_id=customer.id, message_type=message.type)
    logger.info(
        f"Incoming {message.type} message",
        extra={"customer_id": customer.id, "message_id": message.id},
    )

    await conversations.append_message(
        conversation_id,
        DIRECTION_IN,
        text,
        raw_payload=message.model_dump(by_alias=True, exclude_none=True),
        wa_message_id=message.id,
    )

    reply = await flow_controller.handle_text(customer.id, text)

    sent = await whatsapp.send_text(message.from_, reply)
    await conversations.append_message(
        conversation_id,
        DIRECTION_OUT,
        reply,
        raw_payload={"sent": sent, "reply_to": message.id},
    )

    return True
