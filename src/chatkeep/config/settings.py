"""Settings and configuration management."""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHATKEEP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = Field("chatkeep", description="Application name")
    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("text", description="Log format: 'text' or 'json'")

    # Storage
    storage_path: Path = Field(
        default_factory=lambda: Path.home() / ".chatkeep" / "storage.json",
        description="JSON file backing the key/value storage",
    )
    legacy_storage_key: str = Field(
        "chat-messages", description="Key of the single-conversation document"
    )
    conversations_storage_key: str = Field(
        "chat-conversations-v1", description="Key of the conversations document"
    )

    # Conversation presentation
    welcome_message: str = Field(
        "Hi! How can I help you today?",
        description="Assistant greeting injected into empty conversations",
    )
    new_chat_title: str = Field("New chat", description="Title of fresh conversations")
    migrated_chat_title: str = Field(
        "First chat", description="Fallback title of a migrated legacy conversation"
    )
    untitled_chat_title: str = Field(
        "Untitled chat", description="Shown in lists for conversations without a title"
    )
    title_max_length: int = Field(
        40, ge=1, description="Characters of the first user message used as title"
    )
    max_message_length: int = Field(
        2000, ge=1, description="Longest message accepted from the CLI"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}")
        return level

    @field_validator("log_format", mode="before")
    @classmethod
    def _normalize_log_format(cls, v: str) -> str:
        fmt = str(v).lower()
        if fmt not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return fmt


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
