"""Streaming primitives shared by every provider.

Adapters turn frames into :class:`NormalizedDelta` objects.  The
:class:`ToolCallAssembler` reassembles the first tool call of a
response whose arguments arrive in fragments across multiple deltas.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from chatstream.errors import ToolArgumentsError

logger = logging.getLogger(__name__)


@dataclass
class ToolCallFragment:
    """A fragment of a tool call from a single delta.

    ``arguments`` is kept as the provider sent it: a text fragment for
    delta-style streams, or a complete object for whole-object streams.
    """

    position_index: int = 0
    id: str | None = None
    name: str | None = None
    arguments: str | dict | None = None

    @property
    def argument_text(self) -> str:
        if self.arguments is None:
            return ""
        if isinstance(self.arguments, str):
            return self.arguments
        return json.dumps(self.arguments)


@dataclass
class NormalizedDelta:
    """Provider-independent increment of a streaming response."""

    content: str | None = None
    tool_call_fragments: list[ToolCallFragment] = field(default_factory=list)
    is_end: bool = False
    input_tokens: int | None = None
    output_tokens: int | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.content is None
            and not self.tool_call_fragments
            and self.input_tokens is None
            and self.output_tokens is None
        )


@dataclass
class Tool:
    """An identified tool invocation.  ``args`` is always a dict."""

    id: str = ""
    name: str = ""
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class ReadResult:
    """Terminal outcome of consuming one stream."""

    content: str = ""
    tool: Tool | None = None
    input_tokens: int = 0
    output_tokens: int = 0


def deep_merge(target: dict, source: dict) -> dict:
    """Recursively merge *source* into *target*; *source* wins on conflicts."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class ToolCallAssembler:
    """Tracks at most one in-progress tool call per stream.

    Argument text is accumulated per position index and only parsed by
    :meth:`finalize`, once the stream is over.
    """

    def __init__(self) -> None:
        self.tool: Tool | None = None
        self._buffers: dict[int, str] = {}

    @property
    def active(self) -> bool:
        return self.tool is not None

    @property
    def buffers(self) -> list[str]:
        """Argument buffers in position order."""
        return [self._buffers[i] for i in sorted(self._buffers)]

    def start(self, tool: Tool) -> Tool:
        """Begin tracking *tool*.  Ignored when a tool is already active."""
        if self.tool is None:
            if not isinstance(tool.args, dict):
                tool.args = {}
            self.tool = tool
            logger.debug(f"Tool call detected: {tool.name} ({tool.id})")
        return self.tool

    def feed(self, position_index: int, argument_text: str) -> None:
        if position_index not in self._buffers:
            self._buffers[position_index] = ""
        self._buffers[position_index] += argument_text

    def finalize(self) -> Tool | None:
        """Parse every non-empty buffer and merge the results into ``args``.

        Later positions override overlapping keys of earlier ones.

        Raises:
            ToolArgumentsError: If a buffer is not a JSON object.
        """
        if self.tool is None:
            return None
        parsed = []
        for position in sorted(self._buffers):
            text = self._buffers[position]
            if not text:
                continue
            try:
                value = json.loads(text)
            except json.JSONDecodeError as e:
                raise ToolArgumentsError(position, text, str(e)) from e
            if not isinstance(value, dict):
                raise ToolArgumentsError(
                    position, text, f"got {type(value).__name__}"
                )
            parsed.append(value)
        if parsed:
            merged: dict[str, Any] = {}
            for value in parsed:
                deep_merge(merged, value)
            self.tool.args = merged
        elif not self.tool.args:
            logger.debug(f"Tool {self.tool.name} finalized without arguments")
        return self.tool
