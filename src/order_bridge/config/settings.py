"""Configuration management using Pydantic Settings.

Loads configuration from environment variables with .env file support.
"""

from typing import Literal, Optional

from pydantic_settings import BaseSettings

from order_bridge.config.constants import TOKEN_REFRESH_MARGIN_SECONDS


class Settings(BaseSettings):
    """Application configuration."""

    # WhatsApp Cloud API Configuration
    whatsapp_token: Optional[str] = None
    whatsapp_phone_number_id: Optional[str] = None
    whatsapp_verify_token: Optional[str] = None
    whatsapp_app_secret: Optional[str] = None
    graph_api_version: str = "v22.0"
    graph_api_base_url: str = "https://graph.facebook.com"

    # Accept deliveries without a verifiable signature (development only)
    allow_unsigned_webhooks: bool = False

    # Storefront (IdeaSoft) OAuth + Admin API Configuration
    storefront_provider: str = "ideasoft"
    storefront_base_url: Optional[str] = None
    storefront_api_prefix: str = "/admin-api"
    storefront_auth_url: Optional[str] = None
    storefront_token_url: Optional[str] = None
    storefront_client_id: Optional[str] = None
    storefront_client_secret: Optional[str] = None
    storefront_redirect_uri: Optional[str] = None
    storefront_scopes: Optional[str] = None

    # Order number contract (one shape per deployment)
    order_number_format: Literal["numeric", "alphanumeric"] = "alphanumeric"
    order_number_length: int = 13

    # Dialogue Configuration
    locale: Literal["en", "tr"] = "en"
    public_base_url: str = "http://localhost:8000"
    conversation_timeout_hours: int = 24

    # Token lifecycle
    token_refresh_margin_seconds: int = TOKEN_REFRESH_MARGIN_SECONDS
    refresh_failure_threshold: int = 3
    pending_authorization_ttl_seconds: int = 600

    # Order lookup fallbacks
    order_list_max_pages: int = 10
    order_list_page_size: int = 50

    # Outbound HTTP
    http_timeout_seconds: float = 15.0

    # Database Configuration
    database_url: str = "sqlite+aiosqlite:///./order_bridge.db"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    environment: str = "development"

    # GlitchTip Error Monitoring
    glitchtip_dsn: Optional[str] = None

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @property
    def storefront_api_root(self) -> str:
        """Base URL of the storefront admin API, without trailing slash."""
        base = (self.storefront_base_url or "").rstrip("/")
        prefix = self.storefront_api_prefix.strip("/")
        return f"{base}/{prefix}" if prefix else base

    @property
    def storefront_connect_url(self) -> str:
        """Public URL that starts the storefront OAuth flow."""
        return f"{self.public_base_url.rstrip('/')}/storefront/connect"


# Create a global settings instance
settings = Settings()
