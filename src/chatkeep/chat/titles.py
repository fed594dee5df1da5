"""Title derivation from a conversation transcript."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .models import ChatMessage, MessageContent, MessageRole, resolve_content

logger = logging.getLogger(__name__)

DEFAULT_TITLE_LENGTH = 40


def _role_and_body(item: Any) -> tuple[Any, MessageContent | None]:
    if isinstance(item, ChatMessage):
        return item.role, item.body
    if isinstance(item, Mapping):
        return item.get("role"), resolve_content(item)
    return None, None


def derive_title(
    messages: Iterable[ChatMessage | Mapping[str, Any]] | None,
    fallback: str,
    max_length: int = DEFAULT_TITLE_LENGTH,
) -> str:
    """Derive a display title from the first user message.

    Accepts validated ``ChatMessage`` objects or raw message mappings.
    Anything that does not yield a string is treated as "no title" and
    ``fallback`` is returned unchanged.

    Args:
        messages: Transcript in order
        fallback: Title to use when none can be extracted
        max_length: Number of leading characters kept

    Returns:
        The first ``max_length`` characters of the first user message's text,
        or ``fallback``.
    """
    if messages is None:
        return fallback
    try:
        for item in messages:
            role, body = _role_and_body(item)
            if role != MessageRole.USER:
                continue
            if body is None or body.text is None:
                return fallback
            return body.text[:max_length]
    except TypeError as e:
        logger.debug("Cannot derive title from %r: %s", type(messages).__name__, e)
    return fallback
