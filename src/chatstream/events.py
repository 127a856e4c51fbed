"""Events emitted while a stream is being read."""

from __future__ import annotations

from dataclasses import dataclass

from chatstream.streaming import ReadResult


@dataclass
class ReadEvent:
    """Base for all read events."""


@dataclass
class ContentEvent(ReadEvent):
    """A content increment, emitted while no tool call is active."""

    content: str = ""


@dataclass
class ToolDetectedEvent(ReadEvent):
    """The first tool call of the response was identified."""

    name: str = ""


@dataclass
class ErrorEvent(ReadEvent):
    """Reading failed irrecoverably.  Emitted at most once."""

    error: BaseException | None = None


@dataclass
class DoneEvent(ReadEvent):
    """Final event, always the last one yielded."""

    result: ReadResult | None = None
