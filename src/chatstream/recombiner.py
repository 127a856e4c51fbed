"""Recombination of payloads split across several frames."""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MAX_PENDING_FRAMES = 5


def is_well_formed(text: str) -> bool:
    """Return True when *text* parses as one complete JSON object or array.

    Bare scalars are rejected: a fragment such as ``"Hel"`` or ``42`` is
    never a payload on its own.
    """
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False
    return isinstance(value, (dict, list))


def should_combine(frame: str) -> bool:
    """A frame that does not parse on its own must be buffered."""
    return not is_well_formed(frame)


@dataclass
class RecombineBuffer:
    """Ordered buffer of the most recent unparseable fragments.

    Oldest fragments are evicted once ``limit`` is exceeded, so a stream
    that never becomes parseable cannot grow memory without bound.
    """

    limit: int = MAX_PENDING_FRAMES
    pending: deque[str] = field(default_factory=deque)

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be at least 1")
        self.pending = deque(self.pending, maxlen=self.limit)

    def __len__(self) -> int:
        return len(self.pending)

    def recombine(self, frame: str) -> tuple[str, bool]:
        """Append *frame* and try to parse the concatenated buffer.

        Returns ``(combined_text, complete)``.  On success the buffer is
        cleared; on failure it is left intact for the next frame.

        Once the buffer is full and still does not parse, the oldest
        fragments are given up on: the longest trailing run of fragments
        that parses is returned instead.
        """
        if len(self.pending) == self.limit:
            logger.debug(
                f"Recombine buffer full, dropping oldest fragment: {self.pending[0][:80]!r}"
            )
        self.pending.append(frame)
        combined = "".join(self.pending)
        if is_well_formed(combined):
            self.pending.clear()
            return combined, True
        if len(self.pending) == self.limit:
            fragments = list(self.pending)
            for start in range(1, len(fragments)):
                tail = "".join(fragments[start:])
                if is_well_formed(tail):
                    logger.debug(f"Dropped {start} unrecoverable fragment(s)")
                    self.pending.clear()
                    return tail, True
        return combined, False

    def clear(self) -> None:
        self.pending.clear()
