"""Pydantic models for WhatsApp Cloud API webhook events."""

from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field


class TextBody(BaseModel):
    """Body of a text message."""

    body: str = ""


class ButtonBody(BaseModel):
    """Quick-reply button press from a template message."""

    text: str = ""
    payload: Optional[str] = None


class ReplyTitle(BaseModel):
    """Title of an interactive button or list reply."""

    id: Optional[str] = None
    title: str = ""


class InteractiveBody(BaseModel):
    """Interactive message reply (button_reply or list_reply)."""

    type: Optional[str] = None
    button_reply: Optional[ReplyTitle] = None
    list_reply: Optional[ReplyTitle] = None


class InboundMessage(BaseModel):
    """A single inbound message from a customer."""

    id: str = Field(..., description="WhatsApp message id (wamid)")
    from_: str = Field(..., alias="from", description="Sender phone number")
    timestamp: Optional[str] = None
    type: str = "text"
    text: Optional[TextBody] = None
    button: Optional[ButtonBody] = None
    interactive: Optional[InteractiveBody] = None

    class Config:
        extra = "allow"
        populate_by_name = True

    def extract_text(self) -> str:
        """Return the customer-visible text; non-text message types yield ""."""
        if self.type == "text" and self.text:
            return self.text.body or ""
        if self.type == "button" and self.button:
            return self.button.text or ""
        if self.type == "interactive" and self.interactive:
            reply = self.interactive.button_reply or self.interactive.list_reply
            return reply.title if reply else ""
        return ""


class ContactProfile(BaseModel):
    """Profile of the sending contact."""

    name: Optional[str] = None


class Contact(BaseModel):
    """Sender contact info."""

    wa_id: Optional[str] = None
    profile: Optional[ContactProfile] = None

    class Config:
        extra = "allow"


class ChangeValue(BaseModel):
    """Payload of a single change notification."""

    messaging_product: Optional[str] = None
    contacts: List[Contact] = Field(default_factory=list)
    messages: List[InboundMessage] = Field(default_factory=list)
    statuses: List[Dict[str, Any]] = Field(default_factory=list)

    class Config:
        extra = "allow"

    def contact_name(self, wa_id: str) -> Optional[str]:
        """Profile name of the contact with the given id (or the only contact)."""
        for contact in self.contacts:
            if contact.wa_id == wa_id and contact.profile:
                return contact.profile.name
        if len(self.contacts) == 1 and self.contacts[0].profile:
            return self.contacts[0].profile.name
        return None


class Change(BaseModel):
    """A change entry (field="messages" for message events)."""

    field: Optional[str] = None
    value: ChangeValue = Field(default_factory=ChangeValue)


class Entry(BaseModel):
    """Webhook entry for one WhatsApp Business Account."""

    id: Optional[str] = None
    changes: List[Change] = Field(default_factory=list)


class WebhookPayload(BaseModel):
    """Top-level WhatsApp webhook payload."""

    object: Optional[str] = None
    entry: List[Entry] = Field(default_factory=list)

    class Config:
        extra = "allow"

    def iter_messages(self) -> Iterator[Tuple[InboundMessage, Optional[str]]]:
        """Yield (message, sender profile name); status-only changes yield nothing."""
        for entry in self.entry:
            for change in entry.changes:
                for message in change.value.messages:
                    yield message, change.value.contact_name(message.from_)
