"""In-memory storage backend."""

from __future__ import annotations

from .base import KeyValueStorage, StorageQuotaExceeded


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage for tests and ephemeral sessions.

    An optional ``quota_bytes`` limit reproduces the quota errors a
    browser raises, measured over the UTF-8 size of all keys and values.
    """

    def __init__(self, quota_bytes: int | None = None):
        self._data: dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            projected = self._usage(exclude=key) + _size(key) + _size(value)
            if projected > self.quota_bytes:
                raise StorageQuotaExceeded(
                    f"Writing {key!r} needs {projected} bytes, quota is {self.quota_bytes}"
                )
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)

    def _usage(self, exclude: str | None = None) -> int:
        return sum(
            _size(k) + _size(v) for k, v in self._data.items() if k != exclude
        )


def _size(text: str) -> int:
    return len(text.encode("utf-8"))
