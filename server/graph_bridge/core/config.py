"""Core runtime settings for the local bridge process."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ALLOWED_ORIGINS: str = "*"
    MCP_HOST: str = "127.0.0.1"
    MCP_PORT: int = 3100

    REDIS_URL: str | None = None

    MCP_LOG_LEVEL: str = "INFO"
    MCP_LOG_FILE: str | None = None
    MCP_LOG_MAX_BYTES: int = 10485760
    MCP_LOG_BACKUP_COUNT: int = 5


settings = Settings()
