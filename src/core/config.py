"""Environment-driven settings for the Linket API."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Linket API settings, read from the environment or a .env file.

    Only the Supabase connection settings are required.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="linket-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    max_request_body_size: int = Field(
        default=2 * 1024 * 1024,
        description="Maximum accepted request body in bytes (vCard photos are sent as data URLs)",
    )
    max_lead_body_size: int = Field(
        default=64 * 1024,
        description="Maximum body of an unauthenticated lead submission in bytes",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(..., description="Supabase signing key JWK (JSON string) for JWT token verification")
    avatar_bucket: str = Field(default="avatars", description="Storage bucket holding profile avatars")

    # Public site
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Public site URL used for tap redirects and email links",
    )

    public_profile_path_prefix: str = Field(
        default="",
        description="Path segment between the site URL and a handle (empty serves pages at /{handle})",
    )

    # Handles and lead form keys
    handle_max_length: int = Field(default=32, description="Maximum length of an account handle")
    lead_key_max_length: int = Field(default=40, description="Maximum length of a lead form field key")

    # Public lead submissions (applied when a form enables spam protection)
    rate_limit_lead_requests: int = Field(default=5, description="Lead submissions allowed per client per window")
    rate_limit_window_seconds: int = Field(default=60, description="Rate limit window in seconds")

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key for lead notification emails")
    email_from_address: str = Field(
        default="Linket <noreply@linket.app>",
        description="From address for lead notification emails",
    )

    # Client autosave
    autosave_debounce_ms: int = Field(default=900, description="Default debounce before an autosave fires")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    def public_profile_url(self, handle: str) -> str:
        """Build the public page URL for a handle."""
        parts = [self.frontend_url.rstrip("/"), self.public_profile_path_prefix.strip("/"), handle]
        return "/".join(part for part in parts if part)

    @property
    def notifications_enabled(self) -> bool:
        """Check if lead notification emails can be sent."""
        return bool(self.resend_api_key)


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings. Tests call ``get_settings.cache_clear()`` to reload."""
    return Settings()
