"""Boundary to the message-streaming engine."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import Enum
from typing import Callable

from .ids import IdGenerator, uuid_id_generator
from .models import ChatMessage, MessageRole

logger = logging.getLogger(__name__)

TranscriptListener = Callable[[list[ChatMessage]], None]


class EngineStatus(str, Enum):
    """Generation status reported by a streaming engine."""

    READY = "ready"
    SUBMITTED = "submitted"
    STREAMING = "streaming"
    ERROR = "error"


class StreamingEngine(ABC):
    """Abstract producer of a reactive chat transcript.

    The engine owns generation. Listeners registered with ``subscribe``
    are called synchronously after every transcript change, with the
    new transcript already visible through ``messages``.
    """

    def __init__(self) -> None:
        self._listeners: list[TranscriptListener] = []

    @property
    @abstractmethod
    def messages(self) -> list[ChatMessage]:
        """Current transcript (a copy)."""
        pass

    @property
    @abstractmethod
    def status(self) -> EngineStatus:
        """Current generation status."""
        pass

    @abstractmethod
    def set_messages(self, messages: Iterable[ChatMessage]) -> None:
        """Replace the whole transcript."""
        pass

    @abstractmethod
    def send(self, text: str) -> None:
        """Submit a user message for generation."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop an in-flight generation."""
        pass

    def subscribe(self, listener: TranscriptListener) -> Callable[[], None]:
        """Register a transcript listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.messages
        for listener in list(self._listeners):
            listener(snapshot)


class LocalEngine(StreamingEngine):
    """In-process engine without a generation backend.

    ``send`` appends the user message and moves to ``SUBMITTED``; a
    producer then feeds the reply through ``push`` and closes the turn
    with ``finish`` or ``fail``.
    """

    def __init__(
        self,
        messages: Iterable[ChatMessage] = (),
        id_generator: IdGenerator = uuid_id_generator,
    ):
        super().__init__()
        self._messages: list[ChatMessage] = list(messages)
        self._status = EngineStatus.READY
        self.id_generator = id_generator
        self.error: str | None = None

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    @property
    def status(self) -> EngineStatus:
        return self._status

    def set_messages(self, messages: Iterable[ChatMessage]) -> None:
        self._messages = list(messages)
        self._notify()

    def send(self, text: str) -> None:
        message = ChatMessage.from_text(self.id_generator(), MessageRole.USER, text)
        self._messages.append(message)
        self._status = EngineStatus.SUBMITTED
        self.error = None
        self._notify()

    def push(self, message: ChatMessage) -> None:
        """Append ``message`` or replace the message with the same id."""
        for index, existing in enumerate(self._messages):
            if existing.id == message.id:
                self._messages[index] = message
                break
        else:
            self._messages.append(message)
        if message.role == MessageRole.ASSISTANT:
            self._status = EngineStatus.STREAMING
        self._notify()

    def finish(self) -> None:
        self._status = EngineStatus.READY

    def fail(self, error: str) -> None:
        self.error = error
        self._status = EngineStatus.ERROR

    def stop(self) -> None:
        if self._status in (EngineStatus.SUBMITTED, EngineStatus.STREAMING):
            logger.info("Generation stopped")
            self._status = EngineStatus.READY
