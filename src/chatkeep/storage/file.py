"""JSON file storage backend."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from .base import KeyValueStorage, StorageError

logger = logging.getLogger(__name__)


class FileStorage(KeyValueStorage):
    """Persist all keys of one origin in a single JSON object on disk.

    Every ``set`` rewrites the file through a temporary sibling and
    ``os.replace`` so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str | Path):
        """Initialize file storage.

        Args:
            path: Location of the JSON file (created on first write)
        """
        self.path = Path(path).expanduser()

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageError(f"Value for {key!r} in {self.path} is not a string")
        return value

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def keys(self) -> list[str]:
        return list(self._read())

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, data: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e
        logger.debug("Wrote %d keys to %s", len(data), self.path)
