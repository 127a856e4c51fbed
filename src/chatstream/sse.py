"""Frame splitting for line-oriented streaming responses.

Handles both Server-Sent Events (``data: {...}``) and newline-delimited
JSON.  Lines carrying an ``event:`` marker are metadata and dropped.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterator

DONE_SENTINEL = "[DONE]"
DATA_PREFIX = "data:"
EVENT_MARKER = "event:"


def split_frames(text: str) -> Iterator[str]:
    """Yield the non-empty, trimmed payload frames contained in *text*.

    A single physical line may pack several ``data:`` segments; each one
    becomes its own frame.  The sentinel is yielded like any other frame.
    """
    for line in text.split("\n"):
        if EVENT_MARKER in line:
            continue
        line = line.strip()
        if not line:
            continue
        for segment in line.split(DATA_PREFIX):
            segment = segment.strip()
            if segment:
                yield segment


class BlockDecoder:
    """Incremental decoder for raw byte blocks.

    Multi-byte characters cut across two blocks are held back until the
    rest of the character arrives.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")

    def decode(self, block: bytes) -> str:
        return self._decoder.decode(block)

    def flush(self) -> str:
        return self._decoder.decode(b"", final=True)
