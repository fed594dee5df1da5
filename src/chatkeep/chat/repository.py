"""Conversation repository: CRUD and persistence of the aggregate."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping

from pydantic import ValidationError

from chatkeep.storage import KeyValueStorage, StorageError

from . import state as transitions
from .ids import Clock, IdGenerator, utc_now, uuid_id_generator
from .legacy_store import LegacyStore
from .models import ChatMessage, Conversation, ConversationSummary, RepositoryState
from .titles import DEFAULT_TITLE_LENGTH

logger = logging.getLogger(__name__)

CONVERSATIONS_STORAGE_KEY = "chat-conversations-v1"

# Attempts at drawing an unused id before giving up.
_MAX_ID_ATTEMPTS = 8


class ConversationRepository:
    """Owns the ``{conversations, activeId}`` aggregate.

    The aggregate is written as a single document under one key so the
    list and the active pointer cannot drift apart. ``create``, ``select``
    and ``delete`` persist immediately; ``upsert`` only updates memory and
    the caller persists with ``save``.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        legacy_store: LegacyStore,
        *,
        key: str = CONVERSATIONS_STORAGE_KEY,
        id_generator: IdGenerator = uuid_id_generator,
        clock: Clock = utc_now,
        new_chat_title: str = transitions.NEW_CHAT_TITLE,
        untitled_title: str = "Untitled chat",
        title_max_length: int = DEFAULT_TITLE_LENGTH,
    ):
        """Initialize the repository.

        Args:
            storage: Key/value medium shared with the legacy store
            legacy_store: Cleared when the last conversation is deleted
            key: Storage key of the aggregate document
            id_generator: Source of new conversation ids
            clock: Source of timestamps
            new_chat_title: Title of conversations without a derivable one
            untitled_title: Shown in summaries for an empty title
            title_max_length: Characters kept from the first user message
        """
        self.storage = storage
        self.legacy_store = legacy_store
        self.key = key
        self.id_generator = id_generator
        self.clock = clock
        self.new_chat_title = new_chat_title
        self.untitled_title = untitled_title
        self.title_max_length = title_max_length
        self._state = RepositoryState()

    # -- accessors ---------------------------------------------------------

    @property
    def state(self) -> RepositoryState:
        return self._state

    @property
    def conversations(self) -> list[Conversation]:
        return list(self._state.conversations)

    @property
    def active_id(self) -> str | None:
        return self._state.active_id

    @property
    def active(self) -> Conversation | None:
        return self._state.active

    def get(self, conversation_id: str) -> Conversation | None:
        return self._state.find(conversation_id)

    def summaries(self) -> list[ConversationSummary]:
        """Id and title of every conversation, newest first."""
        return [c.to_summary(self.untitled_title) for c in self._state.conversations]

    def new_id(self) -> str:
        """Draw an id not used by any current conversation."""
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = self.id_generator()
            if self._state.find(candidate) is None:
                return candidate
        raise RuntimeError(
            f"Id generator produced {_MAX_ID_ATTEMPTS} colliding ids in a row"
        )

    def replace_state(self, state: RepositoryState) -> None:
        """Adopt ``state`` as the in-memory aggregate (not persisted)."""
        self._state = transitions.normalize(state)

    # -- persistence -------------------------------------------------------

    def load(self) -> RepositoryState:
        """Load the aggregate from storage and adopt it.

        A missing key, unreadable medium or invalid document yields an
        empty aggregate; the failure is logged, never raised.
        """
        self._state = self._read()
        logger.debug(
            "Loaded %d conversations (active=%s)",
            len(self._state.conversations),
            self._state.active_id,
        )
        return self._state

    def _read(self) -> RepositoryState:
        try:
            raw = self.storage.get(self.key)
        except StorageError as e:
            logger.error(f"Failed to read conversations: {e}")
            return RepositoryState()
        if not raw:
            return RepositoryState()
        try:
            return transitions.normalize(RepositoryState.model_validate_json(raw))
        except ValidationError as e:
            logger.warning(
                "Discarding unreadable conversations document (%d errors)",
                e.error_count(),
                extra={"storage_key": self.key},
            )
            return RepositoryState()

    def save(
        self, conversations: Iterable[Conversation], active_id: str | None
    ) -> bool:
        """Write conversations and active pointer as one document.

        Returns:
            True if written, False if the failure was logged and dropped.
        """
        try:
            document = RepositoryState(
                conversations=list(conversations), active_id=active_id
            ).to_document()
            self.storage.set(self.key, json.dumps(document, ensure_ascii=False))
        except (StorageError, ValueError, TypeError) as e:
            logger.error(
                f"Failed to save conversations: {e}",
                extra={"storage_key": self.key},
            )
            return False
        return True

    def persist(self) -> bool:
        """Write the current in-memory aggregate."""
        return self.save(self._state.conversations, self._state.active_id)

    # -- operations --------------------------------------------------------

    def create(self, title: str | None = None) -> str:
        """Create an empty conversation at the head and return its id."""
        conversation = transitions.new_conversation(
            self.new_id(), self.clock(), title=title or self.new_chat_title
        )
        self._state = transitions.insert_conversation(self._state, conversation)
        logger.info(
            f"Created conversation: {conversation.id}",
            extra={"conversation_id": conversation.id, "operation": "create"},
        )
        self.persist()
        return conversation.id

    def select(self, conversation_id: str | None, *, persist: bool = True) -> bool:
        """Make ``conversation_id`` active.

        An unknown id leaves no conversation active instead of failing.

        Returns:
            True if the id resolved to a conversation.
        """
        previous = self._state.active_id
        self._state = transitions.select_conversation(self._state, conversation_id)
        found = self._state.active_id is not None
        if not found and conversation_id is not None:
            logger.info(
                "Conversation %s not found; no conversation is active",
                conversation_id,
                extra={"conversation_id": conversation_id, "operation": "select"},
            )
        if persist and self._state.active_id != previous:
            self.persist()
        return found

    def delete(self, conversation_id: str) -> bool:
        """Delete a conversation.

        Deleting the active conversation promotes the new head. Deleting
        the last conversation also clears the legacy document so a later
        migration cannot bring its content back.

        Returns:
            True if a conversation was removed.
        """
        if self._state.find(conversation_id) is None:
            return False
        self._state = transitions.remove_conversation(self._state, conversation_id)
        logger.info(
            f"Deleted conversation: {conversation_id}",
            extra={"conversation_id": conversation_id, "operation": "delete"},
        )
        if not self._state.conversations:
            self.legacy_store.clear()
        self.persist()
        return True

    def upsert(
        self,
        conversation_id: str,
        messages: Iterable[ChatMessage],
        durations: Mapping[str, float],
    ) -> Conversation:
        """Replace a conversation's content or insert it at the head.

        Not persisted; call ``save`` or ``persist`` afterwards.
        """
        self._state = transitions.upsert_conversation(
            self._state,
            conversation_id,
            messages,
            durations,
            self.clock(),
            new_title=self.new_chat_title,
            title_max_length=self.title_max_length,
        )
        return self._state.find(conversation_id)
