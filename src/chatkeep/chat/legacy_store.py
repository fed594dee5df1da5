"""Legacy single-conversation document store."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from pydantic import ValidationError

from chatkeep.storage import KeyValueStorage, StorageError

from .models import ChatMessage, LegacyDocument

logger = logging.getLogger(__name__)

LEGACY_STORAGE_KEY = "chat-messages"


class LegacyStore:
    """Reads and writes the ``{messages, durations}`` document.

    Kept so clients that predate multiple conversations still see the
    active transcript. Neither method raises: failures are logged and
    reads degrade to an empty document.
    """

    def __init__(self, storage: KeyValueStorage, key: str = LEGACY_STORAGE_KEY):
        self.storage = storage
        self.key = key

    def load(self) -> LegacyDocument:
        """Load the legacy document, or an empty one if missing or corrupt."""
        try:
            raw = self.storage.get(self.key)
        except StorageError as e:
            logger.error(f"Failed to read legacy chat document: {e}")
            return LegacyDocument()
        if not raw:
            return LegacyDocument()
        try:
            return LegacyDocument.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "Discarding unreadable legacy chat document (%d errors)",
                e.error_count(),
                extra={"storage_key": self.key},
            )
            return LegacyDocument()

    def save(
        self,
        messages: Iterable[ChatMessage],
        durations: Mapping[str, float],
    ) -> bool:
        """Write the legacy document.

        Returns:
            True if the write succeeded, False if it was logged and dropped.
        """
        try:
            payload = LegacyDocument(
                messages=list(messages), durations=dict(durations)
            ).model_dump_json()
            self.storage.set(self.key, payload)
        except (StorageError, ValueError, TypeError) as e:
            logger.error(
                f"Failed to save legacy chat document: {e}",
                extra={"storage_key": self.key},
            )
            return False
        return True

    def clear(self) -> bool:
        """Overwrite the legacy document with an empty transcript."""
        return self.save([], {})
