"""
Configuration settings for the LifeSprint backlog engine.
All deployment-specific values are loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "LifeSprint"
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="production", env="ENVIRONMENT")

    # Server
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")

    # Database (PostgreSQL in production, SQLite for local runs and tests)
    database_url: str = Field(default="", env="DATABASE_URL")
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")

    # Connection pool (ignored for SQLite and the test environment)
    db_pool_size: int = Field(default=10, env="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, env="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(default=30, env="DB_POOL_TIMEOUT")
    db_pool_recycle: int = Field(default=3600, env="DB_POOL_RECYCLE")

    # Seconds a SQLite writer waits for the database lock
    sqlite_busy_timeout: float = Field(default=30.0, env="SQLITE_BUSY_TIMEOUT")

    # Owner identity is supplied by the fronting auth layer in this header
    owner_header: str = Field(default="X-Owner-Id", env="OWNER_HEADER")

    # Domain behaviour
    default_container_kind: str = Field(default="annual", env="DEFAULT_CONTAINER_KIND")
    container_create_retries: int = Field(default=3, env="CONTAINER_CREATE_RETRIES")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
