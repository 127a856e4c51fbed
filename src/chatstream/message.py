import copy
import json
import logging
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_serializer

from chatstream.errors import InvalidToolError
from chatstream.streaming import Tool

logger = logging.getLogger(__name__)

ToolMessageStyle = Literal["openai", "ollama"]


class MessageRole(Enum):
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"
    TOOL = "tool"


class Message(BaseModel):
    role: MessageRole
    content: str

    @field_serializer('role')
    def serialize_role(self, role: MessageRole, _info) -> str:
        return role.value


class ToolCallRequestMessage(Message):
    """Assistant turn that requested a tool call.

    OpenAI-style endpoints expect ``arguments`` as a JSON string, Ollama
    expects the object itself.
    """

    tool_calls: list[Tool]
    style: ToolMessageStyle = Field(default="openai", exclude=True)

    @field_serializer("tool_calls")
    def serialize_tool_calls(self, tool_calls: list[Tool]) -> list[dict]:
        return [
            {
                "id": t.id,
                "type": "function",
                "function": {
                    "name": t.name,
                    "arguments": (
                        json.dumps(t.args) if self.style == "openai" else t.args
                    ),
                },
            }
            for t in tool_calls
        ]


class ToolCallResultMessage(Message):
    tool_call_id: str
    name: str = ""


def validate_tool(tool: Any) -> Tool:
    """Reject tools that must not be executed or sent back to a provider."""
    if not isinstance(tool, Tool):
        raise InvalidToolError("Tool must be a valid object")
    if not isinstance(tool.args, dict):
        logger.error(f"Invalid args format: {tool.args!r}")
        raise InvalidToolError("Tool args must be an object")
    return copy.deepcopy(tool)


def make_tool_messages(
    tool: Tool,
    result: Any,
    style: ToolMessageStyle = "openai",
) -> list[Message]:
    """Build the assistant tool-call message and the tool-result message.

    Raises:
        InvalidToolError: If *tool* is not a :class:`Tool` with dict args.
    """
    tool = validate_tool(tool)
    content = result if isinstance(result, str) else json.dumps(result)
    return [
        ToolCallRequestMessage(
            role=MessageRole.ASSISTANT,
            content="",
            tool_calls=[tool],
            style=style,
        ),
        ToolCallResultMessage(
            role=MessageRole.TOOL,
            content=content,
            tool_call_id=tool.id,
            name=tool.name,
        ),
    ]
