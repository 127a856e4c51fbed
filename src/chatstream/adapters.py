"""Provider adapters.

An adapter maps one complete frame into a :class:`NormalizedDelta` and
knows how its provider encodes tool calls.  Each adapter is a standalone
class satisfying :class:`ProviderAdapter`; pick one with
:func:`get_adapter`.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Protocol, runtime_checkable

from openai.types.chat.chat_completion_chunk import ChoiceDelta
from pydantic import BaseModel, ValidationError

from chatstream.errors import UnknownProviderError
from chatstream.recombiner import is_well_formed
from chatstream.streaming import NormalizedDelta, Tool, ToolCallFragment

logger = logging.getLogger(__name__)


@runtime_checkable
class ProviderAdapter(Protocol):
    """The four operations every provider variant implements.

    ``whole_arguments`` is True when every tool call carries its complete
    arguments rather than text fragments to be concatenated.
    """

    name: str
    whole_arguments: bool

    def parse_frame(self, text: str) -> NormalizedDelta:
        """Parse a complete frame.  Never raises."""
        ...

    def parse_tool_fragment(self, delta: NormalizedDelta) -> Tool | None:
        """Identify the first tool call carried by *delta*, if any."""
        ...

    def parse_tool_argument_fragment(
        self, delta: NormalizedDelta
    ) -> tuple[int, str] | None:
        """Return ``(position_index, argument_text)`` for the first tool call."""
        ...

    def treats_frame_as_message(self, text: str) -> bool:
        """True when *text* can be adapted without recombination."""
        ...


def _decode_arguments(arguments: Any) -> dict:
    """Best-effort conversion of a tool argument payload into a dict."""
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError:
            return {}
    return arguments if isinstance(arguments, dict) else {}


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


# ---------------------------------------------------------------------------
# OpenAI-style delta frames
# ---------------------------------------------------------------------------

class OpenAIDeltaAdapter:
    """``{"choices": [{"delta": {...}}]}`` frames, ended by ``[DONE]``."""

    name = "openai"
    whole_arguments = False

    def parse_frame(self, text: str) -> NormalizedDelta:
        try:
            data = json.loads(text)
            choices = data.get("choices") or []
            delta = ChoiceDelta.model_validate(
                (choices[0].get("delta") or {}) if choices else {}
            )
        except (json.JSONDecodeError, ValidationError, AttributeError, TypeError) as e:
            logger.debug(f"Unreadable delta frame ({e}): {text[:120]!r}")
            return NormalizedDelta(content="", is_end=False)

        fragments = [
            ToolCallFragment(
                position_index=tc.index or 0,
                id=tc.id,
                name=tc.function.name if tc.function else None,
                arguments=tc.function.arguments if tc.function else None,
            )
            for tc in delta.tool_calls or []
        ]
        input_tokens = output_tokens = None
        usage = data.get("usage")
        if isinstance(usage, dict):
            input_tokens = _as_int(usage.get("prompt_tokens"))
            output_tokens = _as_int(usage.get("completion_tokens"))
        return NormalizedDelta(
            content=delta.content,
            tool_call_fragments=fragments,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    def parse_tool_fragment(self, delta: NormalizedDelta) -> Tool | None:
        if not delta.tool_call_fragments:
            return None
        first = delta.tool_call_fragments[0]
        if not first.name:
            return None
        return Tool(
            id=first.id or "",
            name=first.name,
            args=_decode_arguments(first.arguments),
        )

    def parse_tool_argument_fragment(
        self, delta: NormalizedDelta
    ) -> tuple[int, str] | None:
        if delta.is_end or not delta.tool_call_fragments:
            return None
        first = delta.tool_call_fragments[0]
        return first.position_index, first.argument_text

    def treats_frame_as_message(self, text: str) -> bool:
        return is_well_formed(text)


# ---------------------------------------------------------------------------
# Ollama-style whole-object frames
# ---------------------------------------------------------------------------

class OllamaFunction(BaseModel):
    name: str = ""
    arguments: dict | str | None = None


class OllamaToolCall(BaseModel):
    function: OllamaFunction


class OllamaMessage(BaseModel):
    role: str | None = None
    content: str | None = None
    tool_calls: list[OllamaToolCall] | None = None
    function: OllamaFunction | None = None


class OllamaChunk(BaseModel):
    message: OllamaMessage | None = None
    done: bool = False
    prompt_eval_count: int | None = None
    eval_count: int | None = None


class OllamaAdapter:
    """Newline-delimited ``/api/chat`` objects, ended by ``"done": true``."""

    name = "ollama"
    whole_arguments = True

    def parse_frame(self, text: str) -> NormalizedDelta:
        try:
            chunk = OllamaChunk.model_validate_json(text)
        except ValidationError as e:
            logger.debug(f"Unreadable Ollama frame ({e.error_count()} errors): {text[:120]!r}")
            return NormalizedDelta(content="", is_end=False)

        message = chunk.message or OllamaMessage()
        delta = NormalizedDelta(
            content=message.content or "",
            tool_call_fragments=self._fragments(message),
            is_end=chunk.done,
        )
        if chunk.done:
            delta.input_tokens = chunk.prompt_eval_count
            delta.output_tokens = chunk.eval_count
        return delta

    @staticmethod
    def _fragments(message: OllamaMessage) -> list[ToolCallFragment]:
        # Ollama sends no call ids.
        stamp = int(time.time() * 1000)
        if message.tool_calls:
            return [
                ToolCallFragment(
                    position_index=0,
                    id=f"{stamp}-{i}",
                    name=call.function.name,
                    arguments=_parse_if_json(call.function.arguments),
                )
                for i, call in enumerate(message.tool_calls)
            ]
        if message.function is not None:
            return [ToolCallFragment(
                position_index=0,
                id=str(stamp),
                name=message.function.name,
                arguments=message.function.arguments,
            )]
        return []

    def parse_tool_fragment(self, delta: NormalizedDelta) -> Tool | None:
        if not delta.tool_call_fragments:
            return None
        first = delta.tool_call_fragments[0]
        return Tool(
            id=first.id or "",
            name=first.name or "",
            args=_decode_arguments(first.arguments),
        )

    def parse_tool_argument_fragment(
        self, delta: NormalizedDelta
    ) -> tuple[int, str] | None:
        if not delta.tool_call_fragments:
            return None
        return 0, delta.tool_call_fragments[0].argument_text

    def treats_frame_as_message(self, text: str) -> bool:
        return is_well_formed(text)


def _parse_if_json(arguments: dict | str | None) -> dict | str | None:
    """Decode string arguments when they are JSON, else keep the original."""
    if isinstance(arguments, str):
        try:
            decoded = json.loads(arguments)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, dict):
            return decoded
        logger.debug(f"Keeping non-object tool arguments as text: {arguments[:120]!r}")
    return arguments


# ---------------------------------------------------------------------------
# Generic frames: JSON messages or plain text
# ---------------------------------------------------------------------------

class GenericAdapter:
    """Frames that are either a flat JSON message or raw text.

    A JSON frame may carry ``content``, ``toolCalls`` (or ``tool_calls``),
    ``inputTokens``, ``outputTokens`` and ``isEnd``.  Anything else is
    plain text content.
    """

    name = "generic"
    whole_arguments = False

    def parse_frame(self, text: str) -> NormalizedDelta:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict):
            # Rough estimate, about four characters per token.
            return NormalizedDelta(content=text, output_tokens=len(text) // 4)

        calls = data.get("toolCalls") or data.get("tool_calls") or []
        fragments = []
        for call in calls if isinstance(calls, list) else []:
            if not isinstance(call, dict):
                continue
            function = call.get("function") or {}
            fragments.append(ToolCallFragment(
                position_index=0,
                id=call.get("id"),
                name=function.get("name"),
                arguments=function.get("arguments"),
            ))
        content = data.get("content")
        return NormalizedDelta(
            content=content if isinstance(content, str) else None,
            tool_call_fragments=fragments,
            is_end=bool(data.get("isEnd", False)),
            input_tokens=_as_int(data.get("inputTokens")),
            output_tokens=_as_int(data.get("outputTokens")),
        )

    def parse_tool_fragment(self, delta: NormalizedDelta) -> Tool | None:
        if not delta.tool_call_fragments:
            return None
        first = delta.tool_call_fragments[0]
        return Tool(
            id=first.id or "",
            name=first.name or "",
            args=_decode_arguments(first.arguments),
        )

    def parse_tool_argument_fragment(
        self, delta: NormalizedDelta
    ) -> tuple[int, str] | None:
        if not delta.tool_call_fragments:
            return None
        return 0, delta.tool_call_fragments[0].argument_text

    def treats_frame_as_message(self, text: str) -> bool:
        return True


ADAPTERS: dict[str, type] = {
    "openai": OpenAIDeltaAdapter,
    "openai-compatible": OpenAIDeltaAdapter,
    "openrouter": OpenAIDeltaAdapter,
    "deepseek": OpenAIDeltaAdapter,
    "lmstudio": OpenAIDeltaAdapter,
    "ollama": OllamaAdapter,
    "generic": GenericAdapter,
}


def get_adapter(provider: str) -> ProviderAdapter:
    """Return a fresh adapter for *provider* (case-insensitive)."""
    try:
        adapter_cls = ADAPTERS[provider.strip().lower()]
    except KeyError:
        known = ", ".join(sorted(ADAPTERS))
        raise UnknownProviderError(
            f"No stream adapter for provider '{provider}'. Known: {known}"
        ) from None
    return adapter_cls()
