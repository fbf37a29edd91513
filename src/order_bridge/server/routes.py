"""API routes for the WhatsApp webhook receiver and storefront OAuth."""

import json
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request, Response
from fastapi.responses import PlainTextResponse, RedirectResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from order_bridge.config.settings import Settings
from order_bridge.core.exceptions import AuthExchangeError, AuthorizationStateError, ConfigurationError
from order_bridge.core.logger import setup_logger
from order_bridge.core.monitoring import capture_exception
from order_bridge.core.signature import validate_webhook_request
from order_bridge.core.token_manager import TokenManager
from order_bridge.db.repository import ConversationRepository
from order_bridge.handlers.webhook import handle_webhook_event
from order_bridge.integrations.whatsapp import WhatsAppClient
from order_bridge.server.dependencies import (
    get_conversation_repository,
    get_db_session,
    get_flow_controller,
    get_settings,
    get_token_manager,
    get_whatsapp_client,
)
from order_bridge.services.flow_controller import FlowController

logger = setup_logger(__name__)
router = APIRouter()


@router.get("/")
async def root() -> dict:
    """Root endpoint with basic service info."""
    return {
        "service": "WhatsApp Order Bridge",
        "version": "1.0.0",
        "endpoints": {
            "webhook_verify": "GET /webhook",
            "webhook": "POST /webhook",
            "storefront_connect": "GET /storefront/connect",
            "storefront_callback": "GET /storefront/callback",
            "health": "GET /health",
            "docs": "GET /docs",
        },
    }


@router.get("/health")
async def health_check(
    app_settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db_session),
    token_manager: TokenManager = Depends(get_token_manager),
) -> dict:
    """Health check endpoint for monitoring."""
    health_status = {
        "status": "healthy",
        "service": "order-bridge",
        "checks": {},
    }

    # Database reachability
    try:
        await session.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "ok"
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        health_status["checks"]["database"] = f"error: {type(e).__name__}"
        health_status["status"] = "degraded"

    # WhatsApp configuration
    env_checks = {
        "whatsapp_token": "ok" if app_settings.whatsapp_token else "missing",
        "whatsapp_phone_number_id": "ok" if app_settings.whatsapp_phone_number_id else "missing",
        "whatsapp_verify_token": "ok" if app_settings.whatsapp_verify_token else "missing",
        "whatsapp_app_secret": "ok" if app_settings.whatsapp_app_secret else "missing",
    }
    if any(v == "missing" for v in env_checks.values()):
        health_status["status"] = "degraded"
    health_status["checks"]["environment"] = env_checks

    # Storefront connection
    if health_status["checks"]["database"] == "ok":
        storefront = await token_manager.connection_status()
        health_status["checks"]["storefront"] = storefront
        if storefront != "connected":
            health_status["status"] = "degraded"

    health_status["checks"]["unsigned_webhooks"] = "allowed" if app_settings.allow_unsigned_webhooks else "rejected"

    return health_status


@router.get("/webhook")
async def verify_webhook(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
    app_settings: Settings = Depends(get_settings),
) -> Response:
    """Meta webhook verification handshake."""
    if (
        hub_mode == "subscribe"
        and app_settings.whatsapp_verify_token
        and hub_verify_token == app_settings.whatsapp_verify_token
    ):
        logger.info("Webhook verified successfully")
        return PlainTextResponse(hub_challenge or "", status_code=200)

    logger.warning(f"Webhook verification failed: mode={hub_mode}")
    return PlainTextResponse("Verification failed", status_code=403)


@router.post("/webhook")
async def whatsapp_webhook(
    request: Request,
    x_hub_signature_256: Optional[str] = Header(None),
    app_settings: Settings = Depends(get_settings),
    conversations: ConversationRepository = Depends(get_conversation_repository),
    flow_controller: FlowController = Depends(get_flow_controller),
    whatsapp: WhatsAppClient = Depends(get_whatsapp_client),
) -> Response:
    """
    Main WhatsApp webhook endpoint - verifies, records and answers messages.

    **CRITICAL**: Once the signature is valid the response is always 200,
    even if processing fails. Meta retries non-2xx deliveries.

    Args:
        request: The HTTP request from Meta
        x_hub_signature_256: HMAC-SHA256 signature of the raw body

    Returns:
        401 for a bad signature, otherwise 200 "OK"
    """
    # Get raw body for signature verification
    raw_body = await request.body()

    is_valid, error_msg = validate_webhook_request(
        raw_body,
        x_hub_signature_256,
        app_settings.whatsapp_app_secret,
        allow_unsigned=app_settings.allow_unsigned_webhooks,
    )
    if not is_valid:
        logger.warning(f"Rejected webhook request: {error_msg}")
        return PlainTextResponse("Unauthorized", status_code=401)

    try:
        event_payload = json.loads(raw_body)
        processed = await handle_webhook_event(event_payload, conversations, flow_controller, whatsapp)
        logger.info(f"Webhook handled: {processed} message(s) processed")
    except Exception as e:
        logger.error(f"Error processing webhook: {e}", exc_info=True)
        capture_exception(e)

    # Always acknowledge so Meta does not redeliver
    return PlainTextResponse("OK", status_code=200)


@router.get("/storefront/connect")
async def storefront_connect(
    token_manager: TokenManager = Depends(get_token_manager),
) -> Response:
    """Start the storefront OAuth flow (store admin opens this in a browser)."""
    try:
        authorize_url = await token_manager.begin_authorization()
    except ConfigurationError as e:
        logger.error(f"Cannot start storefront authorization: {e}")
        return PlainTextResponse(str(e), status_code=500)

    return RedirectResponse(authorize_url, status_code=302)


@router.get("/storefront/callback")
async def storefront_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
    token_manager: TokenManager = Depends(get_token_manager),
) -> Response:
    """OAuth redirect target: validates state and stores the credential."""
    if error:
        logger.warning(f"Storefront authorization denied: {error} {error_description or ''}")
        return PlainTextResponse(f"Authorization failed: {error}", status_code=400)

    if not code:
        return PlainTextResponse("Missing code", status_code=400)

    if not state:
        logger.warning("Storefront callback without state parameter")
        return PlainTextResponse("Missing state", status_code=400)

    try:
        await token_manager.complete_authorization(state, code)
    except AuthorizationStateError:
        return PlainTextResponse("Invalid or expired authorization state", status_code=400)
    except ConfigurationError as e:
        logger.error(f"Cannot complete storefront authorization: {e}")
        return PlainTextResponse(str(e), status_code=500)
    except AuthExchangeError as e:
        logger.error(f"Storefront token exchange failed: {e}")
        capture_exception(e, context={"status_code": e.status_code})
        return PlainTextResponse("Could not connect the store. Check the service logs.", status_code=502)

    return PlainTextResponse("Store connected. Order tracking over WhatsApp is now active.", status_code=200)
