"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration.

    Values are read from environment variables (or a `.env` file).
    """

    # Supabase
    supabase_url: str
    supabase_service_key: str
    supabase_http_max_connections: int = 100
    supabase_http_max_keepalive_connections: int = 50
    supabase_postgrest_timeout_seconds: int = 30

    # App
    app_name: str = "E-Ballot API"
    app_version: str = "1.0.0"
    environment: str = "development"
    log_level: str = "INFO"
    client_url: str = "http://localhost:3000"
    enable_scheduler: bool = True
    timezone: str = "UTC"
    host: str = "0.0.0.0"
    port: int = 5000
    # Comma-separated proxy addresses trusted for X-Forwarded-* headers.
    forwarded_allow_ips: str = "127.0.0.1"

    # Sessions
    session_secret: str = "change-me"
    session_cookie_name: str = "eballot.sid"
    session_cookie_secure: bool = True
    session_cookie_samesite: str = "none"
    session_ttl_seconds: int = 24 * 60 * 60
    session_touch_after_seconds: int = 15 * 60
    oauth_state_ttl_seconds: int = 10 * 60

    # OAuth providers
    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = "http://localhost:5000/auth/google/callback"
    linkedin_client_id: str = ""
    linkedin_client_secret: str = ""
    linkedin_callback_url: str = "http://localhost:5000/auth/linkedin/callback"
    oauth_http_timeout_seconds: int = 15

    # Outbound mail
    email_host: str = "smtp.gmail.com"
    email_port: int = 587
    email_user: str = ""
    email_password: str = ""
    email_timeout_seconds: int = 10
    expose_reset_links: bool = False
    password_reset_ttl_seconds: int = 60 * 60

    # Performance tuning
    slow_request_log_threshold_ms: int = 0
    slow_query_log_threshold_ms: int = 0

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment == "production"

    @property
    def origins_list(self) -> list[str]:
        """Parse comma-separated CLIENT_URL into a list of allowed origins."""
        return [o.strip().rstrip("/") for o in self.client_url.split(",") if o.strip()]

    @property
    def frontend_url(self) -> str:
        """Return the first configured origin, used as the redirect base."""
        origins = self.origins_list
        return origins[0] if origins else "http://localhost:3000"

    @property
    def mail_configured(self) -> bool:
        """Return True when SMTP credentials are present."""
        return bool(self.email_user and self.email_password)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()  # type: ignore[call-arg]
