"""Pure state transitions over the conversation aggregate.

Every function takes a ``RepositoryState`` and returns a new one; none
of them touch storage. After any transition ``active_id`` is either None
or the id of a conversation in ``conversations``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from .models import ChatMessage, Conversation, RepositoryState
from .titles import DEFAULT_TITLE_LENGTH, derive_title

NEW_CHAT_TITLE = "New chat"


def new_conversation(
    conversation_id: str,
    now: datetime,
    title: str = NEW_CHAT_TITLE,
    messages: Iterable[ChatMessage] = (),
    durations: Mapping[str, float] | None = None,
) -> Conversation:
    """Build a conversation whose timestamps both equal ``now``."""
    return Conversation(
        id=conversation_id,
        title=title,
        messages=list(messages),
        durations=dict(durations or {}),
        created_at=now,
        updated_at=now,
    )


def normalize(state: RepositoryState) -> RepositoryState:
    """Drop an active pointer that does not resolve."""
    if state.active_id is not None and state.find(state.active_id) is None:
        return state.model_copy(update={"active_id": None})
    return state


def insert_conversation(
    state: RepositoryState, conversation: Conversation
) -> RepositoryState:
    """Insert ``conversation`` at the head; the active pointer is unchanged."""
    if state.find(conversation.id) is not None:
        raise ValueError(f"Conversation {conversation.id!r} already exists")
    return state.model_copy(
        update={"conversations": [conversation, *state.conversations]}
    )


def select_conversation(
    state: RepositoryState, conversation_id: str | None
) -> RepositoryState:
    """Point at ``conversation_id``, or at nothing if it is unknown."""
    active_id = conversation_id if state.find(conversation_id) else None
    return state.model_copy(update={"active_id": active_id})


def remove_conversation(
    state: RepositoryState, conversation_id: str
) -> RepositoryState:
    """Remove a conversation, promoting the new head if it was active."""
    remaining = [c for c in state.conversations if c.id != conversation_id]
    active_id = state.active_id
    if active_id == conversation_id:
        active_id = remaining[0].id if remaining else None
    return normalize(
        state.model_copy(update={"conversations": remaining, "active_id": active_id})
    )


def upsert_conversation(
    state: RepositoryState,
    conversation_id: str,
    messages: Iterable[ChatMessage],
    durations: Mapping[str, float],
    now: datetime,
    *,
    new_title: str = NEW_CHAT_TITLE,
    title_max_length: int = DEFAULT_TITLE_LENGTH,
) -> RepositoryState:
    """Replace a conversation's content, or insert it at the head.

    The title is re-derived from the transcript, falling back to the
    existing title (or ``new_title`` for an insert). ``created_at`` is
    preserved and ``updated_at`` never moves backwards.
    """
    messages = list(messages)
    durations = dict(durations)
    existing = state.find(conversation_id)
    if existing is None:
        conversation = new_conversation(
            conversation_id,
            now,
            title=derive_title(messages, new_title, title_max_length),
            messages=messages,
            durations=durations,
        )
        return insert_conversation(state, conversation)

    updated = existing.model_copy(
        update={
            "title": derive_title(messages, existing.title or new_title, title_max_length),
            "messages": messages,
            "durations": durations,
            "updated_at": max(now, existing.updated_at),
        }
    )
    return state.model_copy(
        update={
            "conversations": [
                updated if c.id == conversation_id else c for c in state.conversations
            ]
        }
    )
