import copy
import inspect
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from chatstream.adapters import ProviderAdapter, get_adapter
from chatstream.config import ReaderSettings
from chatstream.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    ReadEvent,
    ToolDetectedEvent,
)
from chatstream.instrumentation import (
    read_span,
    record_error,
    record_tool,
    record_usage,
)
from chatstream.recombiner import RecombineBuffer
from chatstream.sse import BlockDecoder, split_frames
from chatstream.streaming import NormalizedDelta, ReadResult, ToolCallAssembler

logger = logging.getLogger(__name__)

Callback = Callable[[Any], Any] | None


@dataclass
class ReadState:
    """Working set of a single read.  Never shared between reads."""

    recombiner: RecombineBuffer = field(default_factory=RecombineBuffer)
    assembler: ToolCallAssembler = field(default_factory=ToolCallAssembler)
    content: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    frame_index: int = 0
    failed: bool = False

    def to_result(self) -> ReadResult:
        tool = self.assembler.tool
        return ReadResult(
            content=self.content,
            tool=copy.deepcopy(tool) if tool is not None else None,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )


async def block_source(
    read_next_block: Callable[[], Awaitable[tuple[bytes | None, bool]]],
) -> AsyncIterator[bytes]:
    """Adapt a ``read() -> (block, done)`` coroutine into an async iterator."""
    while True:
        block, done = await read_next_block()
        if done:
            return
        if block:
            yield block


async def _invoke(callback: Callback, *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class StreamReader:
    """Reads a streaming chat response into a :class:`ReadResult`.

    The reader holds only configuration; every call to :meth:`read` or
    :meth:`iter` works on its own :class:`ReadState`, so one reader can
    serve concurrent reads.

    ``read()`` drains ``iter()`` and dispatches callbacks.  ``iter()`` is
    the pull-style entry point.

    Args:
        adapter: A provider adapter, or a provider name for ``get_adapter``.
            Defaults to ``settings.provider``.
        settings: Reader settings.  Defaults to ``ReaderSettings()``.
    """

    def __init__(
        self,
        adapter: ProviderAdapter | str | None = None,
        settings: ReaderSettings | None = None,
    ):
        self.settings = settings or ReaderSettings()
        if adapter is None:
            adapter = self.settings.provider
        if isinstance(adapter, str):
            adapter = get_adapter(adapter)
        self.adapter = adapter

    def new_state(self) -> ReadState:
        return ReadState(
            recombiner=RecombineBuffer(limit=self.settings.max_pending_frames)
        )

    async def read(
        self,
        source: AsyncIterable[bytes],
        on_progress: Callback = None,
        on_tool_calls: Callback = None,
        on_error: Callback = None,
    ) -> ReadResult:
        """Consume *source* and return the result.  Never raises.

        Callbacks may be plain functions or coroutine functions and are
        invoked in frame-arrival order.
        """
        state = self.new_state()
        events = self._events(source, state)
        result: ReadResult | None = None
        try:
            async for event in events:
                if isinstance(event, ContentEvent):
                    await _invoke(on_progress, event.content)
                elif isinstance(event, ToolDetectedEvent):
                    await _invoke(on_tool_calls, event.name)
                elif isinstance(event, ErrorEvent):
                    await _invoke(on_error, event.error)
                elif isinstance(event, DoneEvent):
                    result = event.result
        except Exception as e:
            logger.error(f"Read callback raised: {e}")
            await events.aclose()
            if not state.failed:
                state.failed = True
                try:
                    await _invoke(on_error, e)
                except Exception as handler_error:
                    logger.error(f"Error callback raised: {handler_error}")
        if result is None:
            result = state.to_result()
        return result

    def iter(self, source: AsyncIterable[bytes]) -> AsyncIterator[ReadEvent]:
        """Yield read events; the last one is always a :class:`DoneEvent`."""
        return self._events(source, self.new_state())

    # ------------------------------------------------------------------
    # Read loop
    # ------------------------------------------------------------------

    async def _events(
        self, source: AsyncIterable[bytes], state: ReadState,
    ) -> AsyncIterator[ReadEvent]:
        async with read_span(self.adapter.name) as span:
            try:
                async for event in self._consume(source, state):
                    if isinstance(event, ToolDetectedEvent):
                        record_tool(span, event.name)
                    yield event
                if state.assembler.active:
                    state.assembler.finalize()
            except Exception as e:
                logger.error(f"Stream reading error: {e}")
                state.failed = True
                record_error(span, e)
                yield ErrorEvent(error=e)
            result = state.to_result()
            record_usage(span, result.input_tokens, result.output_tokens)
            yield DoneEvent(result=result)

    async def _consume(
        self, source: AsyncIterable[bytes], state: ReadState,
    ) -> AsyncIterator[ReadEvent]:
        decoder = BlockDecoder(self.settings.encoding)
        async for block in source:
            for frame in split_frames(decoder.decode(block)):
                if frame == self.settings.sentinel:
                    logger.debug("End-of-stream sentinel received")
                    return
                for event in self.process_frame(frame, state):
                    yield event
        for frame in split_frames(decoder.flush()):
            if frame == self.settings.sentinel:
                return
            for event in self.process_frame(frame, state):
                yield event

    def process_frame(self, frame: str, state: ReadState) -> list[ReadEvent]:
        """Run one frame through recombination, adaptation and routing."""
        state.frame_index += 1
        # Pending fragments claim every following frame, even one that
        # parses on its own: it may be an inner piece of the payload.
        if len(state.recombiner) or not self.adapter.treats_frame_as_message(frame):
            frame, complete = state.recombiner.recombine(frame)
            if not complete:
                return []
        delta = self.adapter.parse_frame(frame)
        if delta.is_empty:
            return []
        events = self._route(delta, state)
        self._update_token_counts(delta, state)
        return events

    def _route(self, delta: NormalizedDelta, state: ReadState) -> list[ReadEvent]:
        events: list[ReadEvent] = []
        assembler = state.assembler
        started = False
        if not assembler.active:
            tool = self.adapter.parse_tool_fragment(delta)
            if tool is not None:
                assembler.start(tool)
                started = True
                events.append(ToolDetectedEvent(name=tool.name))
        if assembler.active:
            # Complete arguments are only taken from the frame that
            # identified the tool; later frames describe other calls.
            if started or not self.adapter.whole_arguments:
                argument = self.adapter.parse_tool_argument_fragment(delta)
                if argument is not None:
                    assembler.feed(*argument)
        elif delta.content is not None:
            state.content += delta.content
            if delta.content:
                events.append(ContentEvent(content=delta.content))
        return events

    @staticmethod
    def _update_token_counts(delta: NormalizedDelta, state: ReadState) -> None:
        # Input usage is reported cumulatively, output usage incrementally.
        if delta.output_tokens:
            state.output_tokens += delta.output_tokens
        if delta.input_tokens:
            state.input_tokens = delta.input_tokens


async def read_stream(
    source: AsyncIterable[bytes],
    provider: str = "openai",
    on_progress: Callback = None,
    on_tool_calls: Callback = None,
    on_error: Callback = None,
) -> ReadResult:
    """Shortcut for ``StreamReader(provider).read(...)``."""
    return await StreamReader(provider).read(
        source,
        on_progress=on_progress,
        on_tool_calls=on_tool_calls,
        on_error=on_error,
    )
