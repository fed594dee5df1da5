"""Identifier and clock capabilities injected into the chat components."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


def uuid_id_generator() -> str:
    """Random conversation id."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def timestamp_ms(moment: datetime) -> int:
    """Milliseconds since the epoch for ``moment``."""
    return int(moment.timestamp() * 1000)


def timestamp_id_generator(clock: Clock = utc_now, prefix: str = "conv") -> IdGenerator:
    """Build a generator producing ``<prefix>-<epoch ms>`` ids.

    Meant for environments without a usable random source. Two calls in
    the same millisecond collide; the repository regenerates on collision.
    """

    def generate() -> str:
        return f"{prefix}-{timestamp_ms(clock())}"

    return generate
