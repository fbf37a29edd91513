"""FastAPI dependencies wiring settings, database sessions and services."""

from typing import AsyncIterator

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from order_bridge.api.client import StorefrontAPIClient
from order_bridge.config.settings import Settings, settings
from order_bridge.core.token_manager import TokenManager
from order_bridge.db.repository import ConversationRepository, FlowStateRepository, OAuthRepository
from order_bridge.integrations.whatsapp import WhatsAppClient
from order_bridge.services.flow_controller import FlowController
from order_bridge.services.order_resolver import OrderResolver


def get_settings() -> Settings:
    """Dependency for the application settings."""
    return settings


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for getting database session."""
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise RuntimeError("Database not initialized")

    async with session_factory() as session:
        yield session


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Dependency for the shared outbound HTTP client."""
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise RuntimeError("HTTP client not initialized")
    return client


def get_token_manager(
    app_settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db_session),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> TokenManager:
    """Dependency for the storefront token manager."""
    return TokenManager(app_settings, OAuthRepository(session), http_client)


def get_conversation_repository(
    app_settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db_session),
) -> ConversationRepository:
    """Dependency for customer/conversation storage."""
    return ConversationRepository(session, app_settings.conversation_timeout_hours)


def get_whatsapp_client(
    app_settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> WhatsAppClient:
    """Dependency for the outbound WhatsApp sender."""
    return WhatsAppClient(app_settings, http_client)


def get_flow_controller(
    app_settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db_session),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    token_manager: TokenManager = Depends(get_token_manager),
) -> FlowController:
    """Dependency for the order-tracking flow controller."""
    api_client = StorefrontAPIClient(
        http_client,
        app_settings.storefront_api_root,
        timeout=app_settings.http_timeout_seconds,
    )
    resolver = OrderResolver(
        api_client,
        max_pages=app_settings.order_list_max_pages,
        page_size=app_settings.order_list_page_size,
    )
    return FlowController(app_settings, FlowStateRepository(session), token_manager, resolver)
