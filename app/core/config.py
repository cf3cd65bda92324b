"""
Application configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file = ".env",
        env_file_encoding = "utf-8",
        populate_by_name = True
    )
    
    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./dogbook.db", alias="DATABASE_URL")
    
    # Application
    app_name: str = Field(default="Dogbook API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Cross-linking
    frontend_url: str = Field(default="http://localhost:8080", alias="FRONTEND_URL")
    backend_url: str = Field(default="http://localhost:3000", alias="BACKEND_URL")

    # Static site rebuild webhook
    frontend_build_hook_url: Optional[str] = Field(default=None, alias="FRONTEND_BUILD_HOOK_URL")

    # Access
    admin_api_key: Optional[str] = Field(default=None, alias="ADMIN_API_KEY")
    admin_name: str = Field(default="admin", alias="ADMIN_NAME")
    magic_cookie_name: str = Field(default="magicToken", alias="MAGIC_COOKIE_NAME")

    # Web Push (VAPID)
    vapid_public_key: Optional[str] = Field(default=None, alias="VAPID_PUBLIC_KEY")
    vapid_private_key: Optional[str] = Field(default=None, alias="VAPID_PRIVATE_KEY")
    vapid_subject: str = Field(default="mailto:admin@dogbook.com", alias="VAPID_SUBJECT")

    # Moderation mode used when the settings row is first created
    default_moderation_mode: str = Field(default="auto_approve", alias="DEFAULT_MODERATION_MODE")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
