"""Per-message isolation inside one webhook delivery."""

from sqlalchemy import select

from order_bridge.db import ConversationRepository, Customer, Message
from order_bridge.handlers.webhook import handle_webhook_event

FROM = "905551112233"


class BrokenFirstReply:
    """Dialogue stub whose first turn leaves a failed flush behind."""

    def __init__(self, session):
        self.session = session
        self.turns = 0

    async def handle_text(self, customer_id, text):
        self.turns += 1
        if self.turns == 1:
            self.session.add(Customer(phone=FROM))
            await self.session.flush()
        return f"echo: {text}"


class StubSender:
    def __init__(self):
        self.sent = []

    async def send_text(self, to, text):
        self.sent.append((to, text))
        return True


def delivery(*texts):
    messages = [
        {"from": FROM, "id": f"wamid.{i}", "timestamp": "1700000000", "type": "text", "text": {"body": text}}
        for i, text in enumerate(texts)
    ]
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WABA",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "contacts": [{"wa_id": FROM, "profile": {"name": "Ayse"}}],
                            "messages": messages,
                        },
                    }
                ],
            }
        ],
    }


async def test_failed_message_does_not_poison_the_rest_of_the_delivery(session):
    sender = StubSender()

    processed = await handle_webhook_event(
        delivery("first", "second"),
        ConversationRepository(session),
        BrokenFirstReply(session),
        sender,
    )

    assert processed == 1
    assert sender.sent == [(FROM, "echo: second")]

    texts = (await session.execute(select(Message.text).order_by(Message.id))).scalars().all()
    assert texts == ["first", "second", "echo: second"]
