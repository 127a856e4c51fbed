from chatstream.adapters import (
    GenericAdapter,
    OllamaAdapter,
    OpenAIDeltaAdapter,
    ProviderAdapter,
    get_adapter,
)
from chatstream.config import ReaderSettings, configure_logging
from chatstream.errors import (
    ChatStreamError,
    InvalidToolError,
    ToolArgumentsError,
    UnknownProviderError,
)
from chatstream.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    ReadEvent,
    ToolDetectedEvent,
)
from chatstream.instrumentation import instrument, uninstrument
from chatstream.message import make_tool_messages
from chatstream.reader import ReadState, StreamReader, block_source, read_stream
from chatstream.streaming import (
    NormalizedDelta,
    ReadResult,
    Tool,
    ToolCallAssembler,
    ToolCallFragment,
)

__all__ = [
    "ChatStreamError",
    "ContentEvent",
    "DoneEvent",
    "ErrorEvent",
    "GenericAdapter",
    "InvalidToolError",
    "NormalizedDelta",
    "OllamaAdapter",
    "OpenAIDeltaAdapter",
    "ProviderAdapter",
    "ReadEvent",
    "ReadResult",
    "ReadState",
    "ReaderSettings",
    "StreamReader",
    "Tool",
    "ToolArgumentsError",
    "ToolCallAssembler",
    "ToolCallFragment",
    "ToolDetectedEvent",
    "UnknownProviderError",
    "block_source",
    "configure_logging",
    "get_adapter",
    "instrument",
    "make_tool_messages",
    "read_stream",
    "uninstrument",
]
