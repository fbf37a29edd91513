"""Repositories for customers, conversations, flow state and OAuth data."""

import time
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from order_bridge.config.constants import CONVERSATION_CLOSED, CONVERSATION_OPEN, DIRECTION_IN
from order_bridge.core.logger import setup_logger
from order_bridge.models.flow import IDLE, FlowState, flow_state_from_row, flow_state_to_row
from order_bridge.models.oauth import OAuthCredential

from .models import (
    Conversation,
    Customer,
    FlowStateRecord,
    Message,
    OAuthCredentialRecord,
    PendingAuthorization,
    utcnow,
)

logger = setup_logger(__name__)


class ConversationRepository:
    """Data access for customers, conversations and the message log."""

    def __init__(self, session: AsyncSession, conversation_timeout_hours: int = 24):
        """Initialize repository with async session."""
        self.session = session
        self.conversation_timeout = timedelta(hours=conversation_timeout_hours)

    async def get_or_create_customer(self, phone: str, name: Optional[str] = None) -> Customer:
        """Find a customer by phone number, creating it on first contact."""
        result = await self.session.execute(select(Customer).where(Customer.phone == phone))
        customer = result.scalar_one_or_none()

        if customer is not None:
            # Profile names can change; keep the latest one we have seen
            if name and customer.name != name:
                customer.name = name
                await self.session.commit()
            return customer

        customer = Customer(phone=phone, name=name)
        self.session.add(customer)
        try:
            await self.session.commit()
        except IntegrityError:
            # A concurrent delivery created the customer between select and insert
            await self.session.rollback()
            result = await self.session.execute(select(Customer).where(Customer.phone == phone))
            customer = result.scalar_one()
            logger.info(f"Customer {customer.id} created concurrently, reusing it", extra={"customer_id": customer.id})
            return customer

        await self.session.refresh(customer)
        logger.info(f"Created customer {customer.id}", extra={"customer_id": customer.id})
        return customer

    async def get_or_create_open_conversation(self, customer_id: int) -> int:
        """
        Return the id of the customer's open conversation.

        An open conversation idle for longer than the timeout is closed and a
        new one is started. The returned conversation is touched.
        """
        query = (
            select(Conversation)
            .where(Conversation.customer_id == customer_id, Conversation.status == CONVERSATION_OPEN)
            .order_by(Conversation.id.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        conversation = result.scalar_one_or_none()
        now = utcnow()

        if conversation is not None and now - conversation.last_message_at > self.conversation_timeout:
            conversation.status = CONVERSATION_CLOSED
            conversation.ended_at = now
            logger.info(
                f"Closed idle conversation {conversation.id}",
                extra={"customer_id": customer_id},
            )
            conversation = None

        if conversation is None:
            conversation = Conversation(
                customer_id=customer_id,
                status=CONVERSATION_OPEN,
                started_at=now,
                last_message_at=now,
            )
            self.session.add(conversation)
        else:
            conversation.last_message_at = now

        await self.session.commit()
        await self.session.refresh(conversation)
        return conversation.id

    async def append_message(
        self,
        conversation_id: int,
        direction: str,
        text: Optional[str],
        raw_payload: Optional[Dict[str, Any]] = None,
        wa_message_id: Optional[str] = None,
    ) -> Message:
        """Append a message to the conversation log."""
        message = Message(
            conversation_id=conversation_id,
            direction=direction,
            text=text or None,
            raw_payload=raw_payload,
            wa_message_id=wa_message_id,
        )
        self.session.add(message)
        await self.session.commit()
        return message

    async def has_incoming_message(self, wa_message_id: Optional[str]) -> bool:
        """True if an inbound message with this WhatsApp id was already recorded."""
        if not wa_message_id:
            return False
        query = (
            select(Message.id)
            .where(Message.direction == DIRECTION_IN, Message.wa_message_id == wa_message_id)
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.first() is not None


class FlowStateRepository:
    """Data access for the per-customer flow state."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with async session."""
        self.session = session

    async def get_flow_state(self, customer_id: int) -> FlowState:
        """Current state of the customer; no row means idle."""
        record = await self.session.get(FlowStateRecord, customer_id)
        if record is None:
            return IDLE
        return flow_state_from_row(record.flow_name, record.step, record.data)

    async def set_flow_state(self, customer_id: int, state: FlowState) -> None:
        """Upsert the customer's state (idle clears the row)."""
        flow_name, step, data = flow_state_to_row(state)
        if flow_name is None:
            await self.clear_flow_state(customer_id)
            return

        record = await self.session.get(FlowStateRecord, customer_id)
        if record is None:
            record = FlowStateRecord(customer_id=customer_id)
            self.session.add(record)

        record.flow_name = flow_name
        record.step = step
        record.data = data
        record.updated_at = utcnow()
        await self.session.commit()

    async def clear_flow_state(self, customer_id: int) -> None:
        """Reset the customer to idle."""
        await self.session.execute(delete(FlowStateRecord).where(FlowStateRecord.customer_id == customer_id))
        await self.session.commit()


class OAuthRepository:
    """Data access for the cached credential and pending authorizations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with async session."""
        self.session = session

    async def get_oauth_credential(self, provider: str) -> Optional[OAuthCredential]:
        """The stored credential for a provider, or None if never connected."""
        record = await self.session.get(OAuthCredentialRecord, provider)
        if record is None:
            return None
        return OAuthCredential.model_validate(record)

    async def save_oauth_credential(self, provider: str, credential: OAuthCredential) -> None:
        """Insert or overwrite the provider's credential."""
        record = await self.session.get(OAuthCredentialRecord, provider)
        if record is None:
            record = OAuthCredentialRecord(provider=provider)
            self.session.add(record)

        record.access_token = credential.access_token
        record.refresh_token = credential.refresh_token
        record.expires_at = credential.expires_at
        record.token_type = credential.token_type
        record.scope = credential.scope
        record.refresh_failures = credential.refresh_failures
        record.updated_at = utcnow()
        await self.session.commit()

    async def record_refresh_failure(self, provider: str) -> int:
        """Increment the consecutive refresh failure counter; returns the new count."""
        record = await self.session.get(OAuthCredentialRecord, provider)
        if record is None:
            return 0
        record.refresh_failures = (record.refresh_failures or 0) + 1
        record.updated_at = utcnow()
        await self.session.commit()
        return record.refresh_failures

    async def save_pending_authorization(self, provider: str, state: str, created_at: Optional[float] = None) -> None:
        """Store an anti-forgery state issued before redirecting to the provider."""
        self.session.add(
            PendingAuthorization(
                state=state,
                provider=provider,
                created_at=created_at if created_at is not None else time.time(),
            )
        )
        await self.session.commit()

    async def consume_pending_authorization(
        self,
        provider: str,
        state: str,
        max_age_seconds: Optional[float] = None,
        now: Optional[float] = None,
    ) -> bool:
        """
        Consume a pending authorization exactly once.

        The row is deleted whether or not it is still fresh, so a state value
        can never be presented twice.

        Returns:
            True if the state was issued for this provider and has not expired
        """
        query = select(PendingAuthorization.created_at).where(
            PendingAuthorization.state == state,
            PendingAuthorization.provider == provider,
        )
        created_at = (await self.session.execute(query)).scalar_one_or_none()
        if created_at is None:
            return False

        # Only the request whose DELETE removed the row gets to use it
        result = await self.session.execute(
            delete(PendingAuthorization).where(PendingAuthorization.state == state)
        )
        await self.session.commit()
        if result.rowcount != 1:
            return False

        if max_age_seconds is not None:
            now = now if now is not None else time.time()
            if now - created_at > max_age_seconds:
                logger.warning("Pending authorization expired before callback")
                return False

        return True
