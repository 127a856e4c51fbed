"""Exceptions raised by chatstream.

Parsing problems inside a stream are absorbed by the reader; these
types surface only where a caller can act on them.
"""


class ChatStreamError(Exception):
    """Base class for all chatstream errors."""


class ToolArgumentsError(ChatStreamError, ValueError):
    """Accumulated tool-call arguments are not a valid JSON object.

    Args:
        position: The positional buffer that failed to parse.
        text: The raw accumulated argument text.
    """

    def __init__(self, position: int, text: str, reason: str = ""):
        self.position = position
        self.text = text
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"tool arguments at position {position} are not a JSON object{detail}"
        )


class UnknownProviderError(ChatStreamError, KeyError):
    """No adapter is registered under the requested provider name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown provider"


class InvalidToolError(ChatStreamError, ValueError):
    """A tool handed to message construction is malformed."""
