"""Shared fixtures for chatkeep tests."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from chatkeep.chat import (
    ChatMessage,
    ConversationRepository,
    LegacyStore,
    LocalEngine,
    MessageRole,
    SessionController,
)
from chatkeep.storage import MemoryStorage

START = datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class SequentialIds:
    """Id generator yielding ``<prefix>-1``, ``<prefix>-2``, ..."""

    def __init__(self, prefix: str = "conv"):
        self.prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


def user_message(id: str, text: str) -> ChatMessage:
    return ChatMessage.from_text(id, MessageRole.USER, text)


def assistant_message(id: str, text: str) -> ChatMessage:
    return ChatMessage.from_text(id, MessageRole.ASSISTANT, text)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def legacy_store(storage):
    return LegacyStore(storage)


@pytest.fixture
def repository(storage, legacy_store, clock):
    return ConversationRepository(
        storage, legacy_store, id_generator=SequentialIds(), clock=clock
    )


@pytest.fixture
def engine():
    return LocalEngine(id_generator=SequentialIds("msg"))


@pytest.fixture
def controller(engine, repository, legacy_store, clock):
    return SessionController(
        engine,
        repository,
        legacy_store,
        welcome_message="Welcome!",
        clock=clock,
    )
