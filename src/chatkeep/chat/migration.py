"""One-time reconciliation of the legacy document and the repository."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from . import state as transitions
from .legacy_store import LegacyStore
from .models import Conversation, RepositoryState
from .repository import ConversationRepository
from .titles import derive_title

logger = logging.getLogger(__name__)

MIGRATED_CHAT_TITLE = "First chat"


class BootstrapOutcome(str, Enum):
    """How a session's starting state was obtained."""

    RESTORED = "restored"  # Repository already had conversations
    MIGRATED = "migrated"  # Built from the legacy document
    EMPTY = "empty"  # Nothing stored anywhere


@dataclass
class BootstrapResult:
    """Outcome of a bootstrap run and the conversation left active."""

    outcome: BootstrapOutcome
    active: Conversation | None = None


class MigrationBootstrapper:
    """Decides a session's starting conversation.

    1. Conversations exist: keep the stored active one if it resolves,
       otherwise activate the head.
    2. Only the legacy document has messages: wrap them in a single
       conversation, store it and activate it. The legacy document is
       left as is.
    3. Nothing stored: leave the repository empty.

    Running it again in the same session always lands in step 1 once a
    conversation exists, so it never synthesizes a second one.
    """

    def __init__(
        self,
        repository: ConversationRepository,
        legacy_store: LegacyStore,
        fallback_title: str = MIGRATED_CHAT_TITLE,
    ):
        self.repository = repository
        self.legacy_store = legacy_store
        self.fallback_title = fallback_title

    def run(self) -> BootstrapResult:
        current = self.repository.state
        if not current.conversations:
            current = self.repository.load()

        if current.conversations:
            stored = current.find(current.active_id)
            target = stored or current.conversations[0]
            self.repository.select(target.id)
            logger.info(
                "Restored %d conversations, active=%s",
                len(current.conversations),
                target.id,
            )
            return BootstrapResult(BootstrapOutcome.RESTORED, self.repository.active)

        legacy = self.legacy_store.load()
        if legacy.messages:
            conversation = transitions.new_conversation(
                self.repository.new_id(),
                self.repository.clock(),
                title=derive_title(
                    legacy.messages,
                    self.fallback_title,
                    self.repository.title_max_length,
                ),
                messages=legacy.messages,
                durations=legacy.durations,
            )
            self.repository.replace_state(
                RepositoryState(conversations=[conversation], active_id=conversation.id)
            )
            self.repository.persist()
            logger.info(
                f"Migrated {len(legacy.messages)} legacy messages into conversation {conversation.id}",
                extra={"conversation_id": conversation.id, "operation": "migrate"},
            )
            return BootstrapResult(BootstrapOutcome.MIGRATED, conversation)

        logger.debug("No stored conversations or legacy messages")
        return BootstrapResult(BootstrapOutcome.EMPTY)
