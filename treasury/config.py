"""Application configuration from environment variables."""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./treasury.db",
        description="SQLAlchemy connection string",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Log file path")

    # API
    api_title: str = Field(default="Circle Treasury API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")

    # Payment transfer stats
    recent_executions_limit: int = Field(
        default=5, description="Executed transfers listed in /payment-transfers/stats"
    )


# Global settings instance
settings = Settings()
