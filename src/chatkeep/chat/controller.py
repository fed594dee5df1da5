"""Session controller tying the engine transcript to persisted conversations."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from .engine import EngineStatus, LocalEngine, StreamingEngine
from .ids import Clock, IdGenerator, timestamp_ms, utc_now, uuid_id_generator
from .legacy_store import LegacyStore
from .migration import BootstrapResult, MigrationBootstrapper
from .models import ChatMessage, Conversation, ConversationSummary, MessageRole
from .repository import ConversationRepository

if TYPE_CHECKING:
    from chatkeep.config import Settings
    from chatkeep.storage import KeyValueStorage

logger = logging.getLogger(__name__)

DEFAULT_WELCOME_MESSAGE = "Hi! How can I help you today?"


class SessionController:
    """Keeps one active conversation in step with the streaming engine.

    Every transcript change the engine reports, and every recorded
    duration, is written through in order: repository upsert, repository
    save, legacy document save. Each time the visible transcript is
    switched (initialize, new, select, delete) the welcome rule runs once:
    an empty transcript receives a single greeting from the assistant.
    """

    def __init__(
        self,
        engine: StreamingEngine,
        repository: ConversationRepository,
        legacy_store: LegacyStore,
        *,
        bootstrapper: MigrationBootstrapper | None = None,
        welcome_message: str = DEFAULT_WELCOME_MESSAGE,
        clock: Clock = utc_now,
    ):
        self.engine = engine
        self.repository = repository
        self.legacy_store = legacy_store
        self.bootstrapper = bootstrapper or MigrationBootstrapper(
            repository, legacy_store
        )
        self.welcome_message = welcome_message
        self.clock = clock
        self._durations: dict[str, float] = {}
        self._initialized = False
        self._switching = False
        self._bootstrap: BootstrapResult | None = None
        self._unsubscribe = engine.subscribe(self._on_transcript_change)

    @classmethod
    def from_settings(
        cls,
        storage: KeyValueStorage,
        settings: Settings,
        *,
        engine: StreamingEngine | None = None,
        id_generator: IdGenerator = uuid_id_generator,
        clock: Clock = utc_now,
    ) -> SessionController:
        """Wire stores, repository and engine from application settings."""
        legacy_store = LegacyStore(storage, key=settings.legacy_storage_key)
        repository = ConversationRepository(
            storage,
            legacy_store,
            key=settings.conversations_storage_key,
            id_generator=id_generator,
            clock=clock,
            new_chat_title=settings.new_chat_title,
            untitled_title=settings.untitled_chat_title,
            title_max_length=settings.title_max_length,
        )
        bootstrapper = MigrationBootstrapper(
            repository, legacy_store, fallback_title=settings.migrated_chat_title
        )
        return cls(
            engine or LocalEngine(id_generator=id_generator),
            repository,
            legacy_store,
            bootstrapper=bootstrapper,
            welcome_message=settings.welcome_message,
            clock=clock,
        )

    # -- presentation-facing state -----------------------------------------

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def bootstrap_result(self) -> BootstrapResult | None:
        """Outcome of the first ``initialize`` call."""
        return self._bootstrap

    @property
    def active_id(self) -> str | None:
        return self.repository.active_id

    @property
    def messages(self) -> list[ChatMessage]:
        return self.engine.messages

    @property
    def durations(self) -> dict[str, float]:
        return dict(self._durations)

    @property
    def status(self) -> EngineStatus:
        return self.engine.status

    @property
    def can_send(self) -> bool:
        return self.engine.status in (EngineStatus.READY, EngineStatus.ERROR)

    @property
    def can_stop(self) -> bool:
        return self.engine.status in (EngineStatus.SUBMITTED, EngineStatus.STREAMING)

    def summaries(self) -> list[ConversationSummary]:
        return self.repository.summaries()

    # -- lifecycle ---------------------------------------------------------

    def initialize(self) -> BootstrapResult:
        """Bootstrap stored state and show the active conversation.

        Safe to call repeatedly. Later calls only reload the transcript
        when bootstrapping moved the active pointer.
        """
        previous = self.repository.active_id
        result = self.bootstrapper.run()
        if self._initialized:
            if self.repository.active_id != previous:
                self._show(result.active)
                self._welcome_if_empty()
            return result
        self._bootstrap = result
        if result.active is not None:
            self._show(result.active)
        self._initialized = True
        logger.info(
            "Session initialized (%s, active=%s)",
            result.outcome.value,
            self.repository.active_id,
        )
        self._welcome_if_empty()
        return result

    def close(self) -> None:
        """Stop listening to the engine."""
        self._unsubscribe()

    # -- operations --------------------------------------------------------

    def new_conversation(self) -> str:
        """Create, activate and show an empty conversation."""
        conversation_id = self.repository.create()
        self.repository.select(conversation_id)
        self._show(None)
        self.legacy_store.clear()
        self._welcome_if_empty()
        return conversation_id

    def clear_chat(self) -> str:
        """Start over in a fresh conversation, keeping the old one listed."""
        return self.new_conversation()

    def select_conversation(self, conversation_id: str) -> bool:
        """Show ``conversation_id``; an unknown id clears the transcript.

        Returns:
            True if the conversation exists.
        """
        found = self.repository.select(conversation_id)
        self._show(self.repository.active if found else None)
        self._welcome_if_empty()
        return found

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and show whichever one is active afterwards.

        Returns:
            True if a conversation was removed.
        """
        previous = self.repository.active_id
        deleted = self.repository.delete(conversation_id)
        if not deleted:
            return False
        active_id = self.repository.active_id
        if active_id != previous or active_id is None:
            self._show(self.repository.active)
            self._welcome_if_empty()
        return True

    def record_duration(self, message_id: str, ms: float) -> None:
        """Record generation time for an assistant message."""
        self._durations = {**self._durations, message_id: ms}
        if self._initialized:
            self._sync()

    def send(self, text: str) -> None:
        self.engine.send(text)

    def stop(self) -> None:
        self.engine.stop()

    # -- internals ---------------------------------------------------------

    @contextmanager
    def _switching_transcript(self) -> Iterator[None]:
        self._switching = True
        try:
            yield
        finally:
            self._switching = False

    def _show(self, conversation: Conversation | None) -> None:
        # Loading stored content is not a change to persist.
        with self._switching_transcript():
            if conversation is None:
                self._durations = {}
                self.engine.set_messages([])
            else:
                self._durations = dict(conversation.durations)
                self.engine.set_messages(conversation.messages)

    def _on_transcript_change(self, messages: list[ChatMessage]) -> None:
        if not self._initialized or self._switching:
            return
        self._sync()

    def _sync(self) -> None:
        messages = self.engine.messages
        durations = dict(self._durations)
        conversation_id = self.repository.active_id
        created = False
        if conversation_id is None:
            # Nothing active yet: start persisting once the user has spoken.
            if not any(m.role == MessageRole.USER for m in messages):
                return
            conversation_id = self.repository.new_id()
            created = True

        self.repository.upsert(conversation_id, messages, durations)
        if created:
            self.repository.select(conversation_id, persist=False)
            logger.info(
                f"Started conversation {conversation_id} from unsaved transcript",
                extra={"conversation_id": conversation_id, "operation": "upsert"},
            )
        self.repository.save(self.repository.conversations, self.repository.active_id)
        self.legacy_store.save(messages, durations)

    def _welcome_if_empty(self) -> None:
        if self.engine.messages:
            return
        welcome = ChatMessage.from_text(
            f"welcome-{timestamp_ms(self.clock())}",
            MessageRole.ASSISTANT,
            self.welcome_message,
        )
        self._durations = {}
        self.engine.set_messages([welcome])
