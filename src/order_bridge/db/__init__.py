"""Database module."""

from .base import Base, get_engine, get_session_factory, init_db
from .models import Conversation, Customer, FlowStateRecord, Message, OAuthCredentialRecord, PendingAuthorization
from .repository import ConversationRepository, FlowStateRepository, OAuthRepository

__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "init_db",
    "Conversation",
    "Customer",
    "FlowStateRecord",
    "Message",
    "OAuthCredentialRecord",
    "PendingAuthorization",
    "ConversationRepository",
    "FlowStateRepository",
    "OAuthRepository",
]
