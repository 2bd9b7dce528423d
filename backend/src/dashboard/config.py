"""Dashboard client configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DashboardSettings(BaseSettings):
    """
    Settings for the dashboard client, loaded from environment variables.

    Auth0 and URL settings share their VITE_ names with the API settings so one
    .env file configures both sides.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_url: str = Field(default="http://localhost:8000", validation_alias="VITE_API_URL")
    frontend_url: str = Field(
        default="http://localhost:3000",
        validation_alias="VITE_FRONTEND_URL",
    )

    auth0_domain: str = Field(default="", validation_alias="VITE_AUTH0_DOMAIN")
    auth0_audience: str = Field(default="", validation_alias="VITE_AUTH0_AUDIENCE")
    auth0_client_id: str = Field(default="", validation_alias="VITE_AUTH0_CLIENT_ID")

    request_timeout: float = Field(default=30.0, validation_alias="DASHBOARD_API_TIMEOUT")
    # Seconds to wait before reopening a dropped change stream
    stream_reconnect_delay: float = Field(
        default=2.0,
        validation_alias="DASHBOARD_STREAM_RECONNECT_DELAY",
    )

    @property
    def entry_url(self) -> str:
        """Where signed-out users are sent."""
        return f"{self.frontend_url.rstrip('/')}/"

    @property
    def dashboard_url(self) -> str:
        """Where the identity provider returns users after sign-in."""
        return f"{self.frontend_url.rstrip('/')}/dashboard"


@lru_cache
def get_dashboard_settings() -> DashboardSettings:
    """Get cached dashboard settings instance."""
    return DashboardSettings()
