"""Repository behaviour against a real (SQLite) database."""

import asyncio
from datetime import timedelta

from sqlalchemy import select

from order_bridge.config.constants import CONVERSATION_CLOSED, DIRECTION_IN, DIRECTION_OUT
from order_bridge.db import (
    Conversation,
    Customer,
    ConversationRepository,
    FlowStateRecord,
    FlowStateRepository,
    OAuthRepository,
)
from order_bridge.models.flow import IDLE, AwaitingIdentifierState
from order_bridge.models.oauth import OAuthCredential


# ----------------------------
# Flow state
# ----------------------------


async def test_unknown_customer_is_idle(session):
    assert await FlowStateRepository(session).get_flow_state(999) == IDLE


async def test_set_flow_state_is_idempotent(session):
    repo = FlowStateRepository(session)
    state = AwaitingIdentifierState()

    await repo.set_flow_state(1, state)
    await repo.set_flow_state(1, state)

    assert await repo.get_flow_state(1) == state
    rows = (await session.execute(select(FlowStateRecord))).scalars().all()
    assert len(rows) == 1


async def test_last_identifier_is_kept(session):
    repo = FlowStateRepository(session)
    await repo.set_flow_state(1, AwaitingIdentifierState(last_identifier="ABC1234567890"))

    state = await repo.get_flow_state(1)
    assert isinstance(state, AwaitingIdentifierState)
    assert state.last_identifier == "ABC1234567890"


async def test_idle_clears_the_row(session):
    repo = FlowStateRepository(session)
    await repo.set_flow_state(1, AwaitingIdentifierState())
    await repo.set_flow_state(1, IDLE)

    assert await repo.get_flow_state(1) == IDLE
    assert await session.get(FlowStateRecord, 1) is None


async def test_inconsistent_row_reads_as_idle(session):
    session.add(FlowStateRecord(customer_id=7, flow_name="order_tracking", step=None, data={}))
    await session.commit()

    assert await FlowStateRepository(session).get_flow_state(7) == IDLE


# ----------------------------
# Customers, conversations, messages
# ----------------------------


async def test_customer_created_once_and_name_updated(session):
    repo = ConversationRepository(session)
    first = await repo.get_or_create_customer("905551112233", "Ayse")
    again = await repo.get_or_create_customer("905551112233", "Ayse K.")

    assert first.id == again.id
    assert again.name == "Ayse K."


async def test_concurrent_first_contact_creates_one_customer(session_factory):
    async def first_contact():
        async with session_factory() as session:
            customer = await ConversationRepository(session).get_or_create_customer("905551112233")
            return customer.id

    ids = await asyncio.gather(first_contact(), first_contact())

    assert ids[0] == ids[1]
    async with session_factory() as session:
        customers = (await session.execute(select(Customer))).scalars().all()
    assert len(customers) == 1


async def test_customer_inserted_between_lookup_and_insert_is_reused(session_factory, monkeypatch):
    async with session_factory() as session, session_factory() as other:
        lookup = session.execute
        raced = []

        async def lookup_then_race(*args, **kwargs):
            result = await lookup(*args, **kwargs)
            if not raced:
                # Another delivery for the same phone commits right after our lookup
                raced.append(await ConversationRepository(other).get_or_create_customer("905551112233"))
            return result

        monkeypatch.setattr(session, "execute", lookup_then_race)
        customer = await ConversationRepository(session).get_or_create_customer("905551112233", "Ayse")

    assert customer.id == raced[0].id


async def test_open_conversation_is_reused(session):
    repo = ConversationRepository(session)
    customer = await repo.get_or_create_customer("905551112233")

    first = await repo.get_or_create_open_conversation(customer.id)
    second = await repo.get_or_create_open_conversation(customer.id)

    assert first == second


async def test_idle_conversation_is_closed_after_timeout(session):
    repo = ConversationRepository(session, conversation_timeout_hours=1)
    customer = await repo.get_or_create_customer("905551112233")
    first_id = await repo.get_or_create_open_conversation(customer.id)

    conversation = await session.get(Conversation, first_id)
    conversation.last_message_at = conversation.last_message_at - timedelta(hours=2)
    await session.commit()

    second_id = await repo.get_or_create_open_conversation(customer.id)

    assert second_id != first_id
    closed = await session.get(Conversation, first_id)
    assert closed.status == CONVERSATION_CLOSED
    assert closed.ended_at is not None


async def test_duplicate_inbound_detection(session):
    repo = ConversationRepository(session)
    customer = await repo.get_or_create_customer("905551112233")
    conversation_id = await repo.get_or_create_open_conversation(customer.id)

    assert not await repo.has_incoming_message("wamid.1")
    await repo.append_message(conversation_id, DIRECTION_IN, "hi", wa_message_id="wamid.1")
    await repo.append_message(conversation_id, DIRECTION_OUT, "hello", raw_payload={"sent": True})

    assert await repo.has_incoming_message("wamid.1")
    assert not await repo.has_incoming_message(None)


# ----------------------------
# OAuth
# ----------------------------


async def test_credential_roundtrip_and_failure_counter(session):
    repo = OAuthRepository(session)
    assert await repo.get_oauth_credential("ideasoft") is None
    assert await repo.record_refresh_failure("ideasoft") == 0

    await repo.save_oauth_credential(
        "ideasoft",
        OAuthCredential(access_token="A1", refresh_token="R1", expires_at=1000.0),
    )
    assert await repo.record_refresh_failure("ideasoft") == 1
    assert await repo.record_refresh_failure("ideasoft") == 2

    stored = await repo.get_oauth_credential("ideasoft")
    assert stored.access_token == "A1"
    assert stored.refresh_token == "R1"
    assert stored.refresh_failures == 2


async def test_pending_authorization_consumed_once(session):
    repo = OAuthRepository(session)
    await repo.save_pending_authorization("ideasoft", "state-1", created_at=100.0)

    assert await repo.consume_pending_authorization("ideasoft", "state-1", max_age_seconds=600, now=200.0)
    assert not await repo.consume_pending_authorization("ideasoft", "state-1", max_age_seconds=600, now=200.0)


async def test_pending_authorization_rejects_other_provider_and_expired(session):
    repo = OAuthRepository(session)
    await repo.save_pending_authorization("ideasoft", "state-2", created_at=100.0)
    await repo.save_pending_authorization("ideasoft", "state-3", created_at=100.0)

    assert not await repo.consume_pending_authorization("other", "state-2")
    assert not await repo.consume_pending_authorization("ideasoft", "state-3", max_age_seconds=60, now=1000.0)
    # Expired state is gone too
    assert not await repo.consume_pending_authorization("ideasoft", "state-3")
