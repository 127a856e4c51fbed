"""Wire-format builders and byte sources shared by the tests."""

import json


# ---------------------------------------------------------------------------
# Wire-format builders
# ---------------------------------------------------------------------------

def openai_chunk(
    content: str | None = None,
    tool_calls: list[dict] | None = None,
    usage: dict | None = None,
) -> dict:
    """Build a chat.completion.chunk payload with a single choice."""
    delta: dict = {}
    if content is not None:
        delta["content"] = content
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    chunk: dict = {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }
    if usage is not None:
        chunk["usage"] = usage
    return chunk


def openai_tool_call(
    index: int = 0,
    arguments: str = "",
    call_id: str | None = None,
    name: str | None = None,
) -> dict:
    function: dict = {"arguments": arguments}
    if name is not None:
        function["name"] = name
    call: dict = {"index": index, "function": function}
    if call_id is not None:
        call["id"] = call_id
        call["type"] = "function"
    return call


def sse(payload: dict | str) -> str:
    """Encode one SSE event."""
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {data}\n\n"


def ollama_chunk(
    content: str = "",
    done: bool = False,
    tool_calls: list[dict] | None = None,
    prompt_eval_count: int | None = None,
    eval_count: int | None = None,
) -> dict:
    message: dict = {"role": "assistant", "content": content}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    chunk: dict = {"model": "llama3.1", "message": message, "done": done}
    if prompt_eval_count is not None:
        chunk["prompt_eval_count"] = prompt_eval_count
    if eval_count is not None:
        chunk["eval_count"] = eval_count
    return chunk


def ndjson(payload: dict) -> str:
    return json.dumps(payload) + "\n"


# ---------------------------------------------------------------------------
# Byte sources
# ---------------------------------------------------------------------------

async def byte_source(*blocks: str | bytes):
    """Async iterator yielding each block as bytes."""
    for block in blocks:
        yield block.encode("utf-8") if isinstance(block, str) else block


class BrokenStreamError(ConnectionError):
    pass


async def failing_source(*blocks: str, error: Exception | None = None):
    """Yield *blocks*, then fail the next pull like an aborted connection."""
    for block in blocks:
        yield block.encode("utf-8")
    raise error or BrokenStreamError("connection reset by peer")


