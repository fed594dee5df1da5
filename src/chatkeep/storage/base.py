"""Base classes for the key/value storage capability."""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class StorageQuotaExceeded(StorageError):
    """Raised when a write would exceed the medium's capacity."""

    pass


class KeyValueStorage(ABC):
    """Abstract string key/value medium shared by the chat stores.

    Mirrors the browser ``localStorage`` contract: values are strings,
    a missing key reads as ``None``, and each ``set`` replaces the whole
    value for that key.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under ``key``.

        Args:
            key: Storage key

        Returns:
            Stored string, or None if the key is missing

        Raises:
            StorageError: If the medium cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        Args:
            key: Storage key
            value: String payload

        Raises:
            StorageError: If the medium cannot be written
        """
        pass

    def keys(self) -> list[str]:
        """List stored keys. Backends override when they can enumerate."""
        return []
