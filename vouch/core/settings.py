"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

BEARER_PREFIX = "Bearer "

TOKEN_TTL_MS_DEFAULT = 86_400_000
CONFIRMATION_TOKEN_TTL_MINUTES_DEFAULT = 15
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="AUTH_DB_")

    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "vouch"
    password: str = "vouch"
    database: str = "vouch"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT

    @property
    def async_url(self) -> str:
        """Build async PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class AuthSettings(BaseSettings):
    """Token, signing key and KMS settings."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    signing_algorithm: str = "HMAC-SHA256"
    signing_key_id: str = "jwt-signing-key"
    token_ttl_ms: int = TOKEN_TTL_MS_DEFAULT
    confirmation_token_ttl_minutes: int = CONFIRMATION_TOKEN_TTL_MINUTES_DEFAULT

    kms_provider: str = "aws"
    kms_key_id: str = ""
    kms_aad_context: str = ""
    kms_region: str = "us-east-1"
    local_kms_master_key: str = ""

    gateway_url: str = "http://localhost:8080"
    confirmation_path: str = "/auth/confirm"
    notification_exchange: str = "notification-service"
    verification_routing_key: str = "email-verification"
    user_request_queue: str = "user-request"
    user_id_header: str = "X-User-Id"
    user_role_header: str = "X-User-Role"

    cors_origins: str = ""
    log_level: str = "info"

    def get_cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        if not self.cors_origins:
            return []
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
