"""Chat data models."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)


class MessageRole(str, Enum):
    """Message author role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class TextFragmentContent(BaseModel):
    """Content given as an ordered list of typed fragments.

    ``text`` holds the first ``"text"`` fragment with a string payload,
    or the message's flat string when no such fragment exists.
    """

    kind: Literal["fragments"] = "fragments"
    parts: list[Any] = Field(default_factory=list)
    text: str | None = None


class LegacyStringContent(BaseModel):
    """Content given as one flat string (pre-fragment message format)."""

    kind: Literal["legacy"] = "legacy"
    text: str


MessageContent = Union[TextFragmentContent, LegacyStringContent]

# Keys that older clients used for a flat string payload, in lookup order.
_FLAT_TEXT_KEYS = ("content", "text")


def resolve_content(payload: Mapping[str, Any]) -> MessageContent | None:
    """Resolve the raw content keys of a message into a content variant.

    Returns None when the payload carries neither fragments nor a flat
    string.
    """
    flat = next(
        (payload[k] for k in _FLAT_TEXT_KEYS if isinstance(payload.get(k), str)),
        None,
    )
    parts = payload.get("parts")
    if isinstance(parts, list):
        text = next(
            (
                p["text"]
                for p in parts
                if isinstance(p, Mapping)
                and p.get("type") == "text"
                and isinstance(p.get("text"), str)
            ),
            None,
        )
        return TextFragmentContent(parts=parts, text=text if text is not None else flat)
    if flat is not None:
        return LegacyStringContent(text=flat)
    return None


class ChatMessage(BaseModel):
    """A chat message.

    Only ``id`` and ``role`` are declared; every other key (``parts``,
    ``content``, engine metadata) is kept as-is so a message survives
    storage and migration unchanged. The content variant is resolved once
    at validation and exposed through ``body``.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    role: MessageRole

    _body: MessageContent | None = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        self._body = resolve_content(self.model_extra or {})

    @property
    def body(self) -> MessageContent | None:
        """Resolved content variant, or None if the message has no text."""
        return self._body

    @property
    def text_content(self) -> str | None:
        """Display text of the message, if any."""
        return self._body.text if self._body is not None else None

    @classmethod
    def from_text(cls, id: str, role: MessageRole, text: str) -> ChatMessage:
        """Build a fragment-form message holding a single text fragment."""
        return cls(id=id, role=role, parts=[{"type": "text", "text": text}])


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _drop_invalid(items: Any, model: type[BaseModel], label: str) -> Any:
    """Validate list entries one by one, skipping those that fail.

    One bad entry must not cost the rest of a stored document. Anything
    other than a list is passed through for normal validation.
    """
    if not isinstance(items, list):
        return items
    kept = []
    for index, item in enumerate(items):
        try:
            kept.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "Dropping invalid %s at index %d (%d errors)",
                label,
                index,
                e.error_count(),
            )
    return kept


class Conversation(BaseModel):
    """A titled, timestamped transcript with its duration metadata."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = "New chat"
    messages: list[ChatMessage] = Field(default_factory=list)
    durations: dict[str, int | float] = Field(default_factory=dict)
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("messages", mode="before")
    @classmethod
    def _skip_invalid_messages(cls, value: Any) -> Any:
        return _drop_invalid(value, ChatMessage, "message")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalize_timezone(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _clamp_updated_at(self) -> Conversation:
        # Clients with a skewed clock may have stored updatedAt < createdAt.
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at
        return self

    def to_summary(self, untitled: str = "Untitled chat") -> ConversationSummary:
        """Summary for list views; content is withheld."""
        return ConversationSummary(id=self.id, title=self.title or untitled)


class ConversationSummary(BaseModel):
    """Conversation id and title as shown in a conversation list."""

    id: str
    title: str


def _none_to_default(data: Any, defaults: dict[str, Any]) -> Any:
    # Stored documents may carry explicit nulls; treat them as missing.
    if isinstance(data, dict):
        data = dict(data)
        for key, factory in defaults.items():
            if data.get(key) is None:
                data[key] = factory()
    return data


class RepositoryState(BaseModel):
    """The multi-conversation aggregate: ordered conversations plus active pointer."""

    model_config = ConfigDict(populate_by_name=True)

    conversations: list[Conversation] = Field(default_factory=list)
    active_id: str | None = Field(default=None, alias="activeId")

    @model_validator(mode="before")
    @classmethod
    def _fill_nulls(cls, data: Any) -> Any:
        return _none_to_default(data, {"conversations": list})

    @field_validator("conversations", mode="before")
    @classmethod
    def _skip_invalid_conversations(cls, value: Any) -> Any:
        return _drop_invalid(value, Conversation, "conversation")

    def find(self, conversation_id: str | None) -> Conversation | None:
        """Return the conversation with ``conversation_id``, if present."""
        if conversation_id is None:
            return None
        return next((c for c in self.conversations if c.id == conversation_id), None)

    @property
    def active(self) -> Conversation | None:
        return self.find(self.active_id)

    def to_document(self) -> dict[str, Any]:
        """JSON-ready document; ``activeId`` is omitted when absent."""
        data = self.model_dump(mode="json", by_alias=True)
        if data.get("activeId") is None:
            data.pop("activeId", None)
        return data


class LegacyDocument(BaseModel):
    """Single-conversation document written by pre-multi-conversation clients."""

    messages: list[ChatMessage] = Field(default_factory=list)
    durations: dict[str, int | float] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _fill_nulls(cls, data: Any) -> Any:
        return _none_to_default(data, {"messages": list, "durations": dict})

    @field_validator("messages", mode="before")
    @classmethod
    def _skip_invalid_messages(cls, value: Any) -> Any:
        return _drop_invalid(value, ChatMessage, "message")
