"""Chat module for multi-conversation session management.

Provides conversation persistence, legacy migration, title derivation
and the session controller that keeps the streaming engine's transcript
and the stored conversations consistent.
"""

from .controller import SessionController
from .engine import EngineStatus, LocalEngine, StreamingEngine
from .legacy_store import LegacyStore
from .migration import BootstrapOutcome, BootstrapResult, MigrationBootstrapper
from .models import (
    ChatMessage,
    Conversation,
    ConversationSummary,
    LegacyDocument,
    LegacyStringContent,
    MessageRole,
    RepositoryState,
    TextFragmentContent,
)
from .repository import ConversationRepository
from .titles import derive_title

__all__ = [
    "SessionController",
    "EngineStatus",
    "LocalEngine",
    "StreamingEngine",
    "LegacyStore",
    "BootstrapOutcome",
    "BootstrapResult",
    "MigrationBootstrapper",
    "ChatMessage",
    "Conversation",
    "ConversationSummary",
    "LegacyDocument",
    "LegacyStringContent",
    "MessageRole",
    "RepositoryState",
    "TextFragmentContent",
    "ConversationRepository",
    "derive_title",
]
