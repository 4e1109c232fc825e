"""Configuration management using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database settings
    db_server: str = "localhost"
    db_name: str = "collabhub"
    db_user: str = "collabhub"
    db_password: str = ""
    db_port: int = 5432
    db_pool_size: int = 20
    db_max_overflow: int = 40
    sql_echo: bool = False

    # JWT settings (tokens are issued by the auth service, verified here)
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440

    # Server settings
    log_level: str = "INFO"

    # WebSocket settings (DDoS protection)
    ws_max_connections_per_user: int = 50  # Normal user: ~5-10, attack: 100+
    ws_max_message_size: int = 65536  # 64KB max frame size
    ws_receive_timeout: float = 45.0  # Silence before the server pings the connection
    ws_ping_interval: float = 30.0  # Server-initiated keepalive
    ws_token_revalidation_interval: float = 1800.0  # Re-check JWT every 30 minutes
    ws_rate_limit_messages: int = 100  # Max inbound messages per window
    ws_rate_limit_window: float = 10.0  # Window in seconds (100 msg/10s = 10 msg/sec avg)

    # Redis settings (cross-worker broadcast fan-out)
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 50
    redis_socket_timeout: float = 5.0
    redis_retry_on_timeout: bool = True
    redis_enabled: bool = True
    redis_required: bool = False  # Set True for multi-worker deployment

    @property
    def database_url(self) -> str:
        """Build PostgreSQL async connection string."""
        from urllib.parse import quote_plus
        return (
            f"postgresql+asyncpg://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )

    @property
    def sync_database_url(self) -> str:
        """Build PostgreSQL sync connection string for Alembic."""
        from urllib.parse import quote_plus
        return (
            f"postgresql+psycopg2://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )


# Global settings instance
settings = Settings()
