"""chatkeep - Multi-conversation chat session persistence."""

__version__ = "1.0.0"

from .config import Settings, get_settings
from .chat import (
    ChatMessage,
    Conversation,
    ConversationRepository,
    LegacyStore,
    LocalEngine,
    MigrationBootstrapper,
    SessionController,
    StreamingEngine,
    derive_title,
)
from .storage import FileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "Settings",
    "get_settings",
    "ChatMessage",
    "Conversation",
    "ConversationRepository",
    "LegacyStore",
    "LocalEngine",
    "MigrationBootstrapper",
    "SessionController",
    "StreamingEngine",
    "derive_title",
    "FileStorage",
    "KeyValueStorage",
    "MemoryStorage",
]
