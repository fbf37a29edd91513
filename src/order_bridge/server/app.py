"""FastAPI application setup and configuration."""

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from order_bridge.config.settings import settings
from order_bridge.core.logger import setup_logger
from order_bridge.core.monitoring import init_monitoring
from order_bridge.db import get_engine, get_session_factory, init_db

logger = setup_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="WhatsApp Order Bridge",
        version="1.0.0",
        description="Answers WhatsApp order-status questions from the storefront API",
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from order_bridge.server import routes

    # Include routers
    app.include_router(routes.router)

    # Resource initialization on startup
    @app.on_event("startup")
    async def startup_resources():
        """Initialize monitoring, database and the outbound HTTP client."""
        init_monitoring(settings.glitchtip_dsn, settings.environment)

        if settings.allow_unsigned_webhooks:
            logger.warning("ALLOW_UNSIGNED_WEBHOOKS is enabled - webhook signatures are not enforced")
        elif not settings.whatsapp_app_secret:
            logger.warning("WHATSAPP_APP_SECRET is not set - all webhook deliveries will be rejected")

        try:
            logger.info(f"Initializing database: {settings.database_url}")
            engine = get_engine(settings.database_url)
            await init_db(engine)

            app.state.engine = engine
            app.state.session_factory = get_session_factory(engine)

            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise

        app.state.http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    # Graceful shutdown handler
    @app.on_event("shutdown")
    async def shutdown_handler():
        """
        Gracefully shut down all resources.

        Closes the shared HTTP client, then the database connections. Webhook
        deliveries are processed inside the request, so there are no
        background tasks to wait for.
        """
        logger.info("Starting graceful shutdown...")

        http_client = getattr(app.state, "http_client", None)
        if http_client is not None:
            try:
                await http_client.aclose()
            except Exception as e:
                logger.error(f"Error closing HTTP client: {e}")

        engine = getattr(app.state, "engine", None)
        if engine is not None:
            logger.info("Closing database connections...")
            try:
                await engine.dispose()
                logger.info("Database connections closed successfully")
            except Exception as e:
                logger.error(f"Error closing database connections: {e}")

        logger.info("Graceful shutdown completed successfully")

    return app
