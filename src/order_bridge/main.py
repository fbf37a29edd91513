"""WhatsApp Order Bridge - Main Entry Point."""

import os

from order_bridge.config.settings import settings
from order_bridge.server.app import create_app

# Create FastAPI application
app = create_app()


def run() -> None:
    """Run the service under uvicorn."""
    import uvicorn

    reload = os.getenv("RELOAD", "false").lower() == "true"

    uvicorn.run(
        "order_bridge.main:app",
        host=settings.host,
        port=settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=30,
        timeout_keep_alive=5,
        access_log=False,  # Structured logging handles request logs
    )


if __name__ == "__main__":
    run()
