"""Key/value storage capability.

Provides the string key/value medium the chat stores persist into,
with in-memory and JSON file backends.
"""

from .base import KeyValueStorage, StorageError, StorageQuotaExceeded
from .file import FileStorage
from .memory import MemoryStorage

__all__ = [
    "KeyValueStorage",
    "StorageError",
    "StorageQuotaExceeded",
    "FileStorage",
    "MemoryStorage",
]
