"""Unit tests for the provider adapters."""

import json

import pytest

from chatstream.adapters import (
    GenericAdapter,
    OllamaAdapter,
    OpenAIDeltaAdapter,
    ProviderAdapter,
    get_adapter,
)
from chatstream.errors import UnknownProviderError
from tests.helpers import ollama_chunk, openai_chunk, openai_tool_call


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

class TestGetAdapter:
    @pytest.mark.parametrize("name, cls", [
        ("openai", OpenAIDeltaAdapter),
        ("OpenRouter", OpenAIDeltaAdapter),
        ("deepseek", OpenAIDeltaAdapter),
        ("ollama", OllamaAdapter),
        ("generic", GenericAdapter),
    ])
    def test_known_providers(self, name, cls):
        adapter = get_adapter(name)
        assert isinstance(adapter, cls)
        assert isinstance(adapter, ProviderAdapter)

    def test_unknown_provider(self):
        with pytest.raises(UnknownProviderError, match="Known: "):
            get_adapter("carrier-pigeon")

    @pytest.mark.parametrize("name, whole", [
        ("openai", False),
        ("ollama", True),
        ("generic", False),
    ])
    def test_argument_style(self, name, whole):
        assert get_adapter(name).whole_arguments is whole

    def test_returns_fresh_instances(self):
        assert get_adapter("openai") is not get_adapter("openai")


# ---------------------------------------------------------------------------
# OpenAI delta frames
# ---------------------------------------------------------------------------

class TestOpenAIDeltaAdapter:
    adapter = OpenAIDeltaAdapter()

    def test_content_delta(self):
        delta = self.adapter.parse_frame(json.dumps(openai_chunk("Hi")))
        assert delta.content == "Hi"
        assert delta.tool_call_fragments == []
        assert delta.is_end is False

    def test_role_only_delta_is_empty(self):
        frame = json.dumps({"choices": [{"delta": {"role": "assistant"}}]})
        assert self.adapter.parse_frame(frame).is_empty

    def test_unparseable_frame_fails_closed(self):
        delta = self.adapter.parse_frame("{not json")
        assert delta.content == ""
        assert delta.is_end is False

    def test_unexpected_shape_fails_closed(self):
        delta = self.adapter.parse_frame('{"choices": ["oops"]}')
        assert delta.content == ""

    def test_usage_frame(self):
        frame = json.dumps({
            "choices": [],
            "usage": {"prompt_tokens": 12, "completion_tokens": 7, "total_tokens": 19},
        })
        delta = self.adapter.parse_frame(frame)
        assert delta.content is None
        assert (delta.input_tokens, delta.output_tokens) == (12, 7)
        assert not delta.is_empty

    def test_tool_identification(self):
        frame = json.dumps(openai_chunk(tool_calls=[
            openai_tool_call(call_id="call_1", name="get_weather"),
        ]))
        delta = self.adapter.parse_frame(frame)
        tool = self.adapter.parse_tool_fragment(delta)
        assert tool.id == "call_1"
        assert tool.name == "get_weather"
        assert tool.args == {}

    def test_tool_identification_decodes_complete_arguments(self):
        frame = json.dumps(openai_chunk(tool_calls=[
            openai_tool_call(call_id="c", name="f", arguments='{"q": "x"}'),
        ]))
        tool = self.adapter.parse_tool_fragment(self.adapter.parse_frame(frame))
        assert tool.args == {"q": "x"}

    def test_continuation_fragment_does_not_identify(self):
        frame = json.dumps(openai_chunk(tool_calls=[
            openai_tool_call(arguments='{"city"'),
        ]))
        delta = self.adapter.parse_frame(frame)
        assert self.adapter.parse_tool_fragment(delta) is None
        assert self.adapter.parse_tool_argument_fragment(delta) == (0, '{"city"')

    def test_argument_fragment_uses_wire_index(self):
        frame = json.dumps(openai_chunk(tool_calls=[
            openai_tool_call(index=2, arguments='{"b": 1}'),
        ]))
        delta = self.adapter.parse_frame(frame)
        assert self.adapter.parse_tool_argument_fragment(delta) == (2, '{"b": 1}')

    def test_only_first_tool_call_is_considered(self):
        frame = json.dumps(openai_chunk(tool_calls=[
            openai_tool_call(index=0, call_id="a", name="first", arguments="{}"),
            openai_tool_call(index=1, call_id="b", name="second", arguments="{}"),
        ]))
        delta = self.adapter.parse_frame(frame)
        assert len(delta.tool_call_fragments) == 2
        assert self.adapter.parse_tool_fragment(delta).name == "first"

    def test_no_argument_fragment_without_tool_calls(self):
        delta = self.adapter.parse_frame(json.dumps(openai_chunk("x")))
        assert self.adapter.parse_tool_argument_fragment(delta) is None

    def test_treats_frame_as_message(self):
        assert self.adapter.treats_frame_as_message('{"choices": []}')
        assert not self.adapter.treats_frame_as_message('{"choices": [')


# ---------------------------------------------------------------------------
# Ollama whole-object frames
# ---------------------------------------------------------------------------

class TestOllamaAdapter:
    adapter = OllamaAdapter()

    def test_content_frame(self):
        delta = self.adapter.parse_frame(json.dumps(ollama_chunk("Hel")))
        assert delta.content == "Hel"
        assert delta.is_end is False
        assert delta.input_tokens is None
        assert delta.output_tokens is None

    def test_done_frame_carries_usage(self):
        frame = json.dumps(ollama_chunk(
            "", done=True, prompt_eval_count=26, eval_count=290,
        ))
        delta = self.adapter.parse_frame(frame)
        assert delta.is_end is True
        assert delta.content == ""
        assert (delta.input_tokens, delta.output_tokens) == (26, 290)

    def test_unparseable_frame_fails_closed(self):
        delta = self.adapter.parse_frame('{"message": ')
        assert delta.content == ""
        assert delta.is_end is False

    def test_tool_calls_with_object_arguments(self):
        frame = json.dumps(ollama_chunk(done=True, tool_calls=[
            {"function": {"name": "get_weather", "arguments": {"city": "Paris"}}},
        ]))
        delta = self.adapter.parse_frame(frame)
        tool = self.adapter.parse_tool_fragment(delta)
        assert tool.name == "get_weather"
        assert tool.args == {"city": "Paris"}
        assert tool.id.endswith("-0")
        position, text = self.adapter.parse_tool_argument_fragment(delta)
        assert position == 0
        assert json.loads(text) == {"city": "Paris"}

    def test_string_arguments_are_decoded(self):
        frame = json.dumps(ollama_chunk(done=True, tool_calls=[
            {"function": {"name": "f", "arguments": '{"n": 3}'}},
        ]))
        delta = self.adapter.parse_frame(frame)
        assert delta.tool_call_fragments[0].arguments == {"n": 3}
        assert self.adapter.parse_tool_fragment(delta).args == {"n": 3}

    def test_undecodable_string_arguments_are_kept(self):
        frame = json.dumps(ollama_chunk(done=True, tool_calls=[
            {"function": {"name": "f", "arguments": "city=Paris"}},
        ]))
        delta = self.adapter.parse_frame(frame)
        assert delta.tool_call_fragments[0].arguments == "city=Paris"
        assert self.adapter.parse_tool_fragment(delta).args == {}
        assert self.adapter.parse_tool_argument_fragment(delta) == (0, "city=Paris")

    def test_legacy_function_reference(self):
        frame = json.dumps({
            "message": {"content": "", "function": {"name": "lookup", "arguments": {"id": 7}}},
            "done": True,
        })
        delta = self.adapter.parse_frame(frame)
        tool = self.adapter.parse_tool_fragment(delta)
        assert tool.name == "lookup"
        assert tool.args == {"id": 7}
        assert "-" not in tool.id

    def test_no_tool_calls(self):
        delta = self.adapter.parse_frame(json.dumps(ollama_chunk("x")))
        assert self.adapter.parse_tool_fragment(delta) is None
        assert self.adapter.parse_tool_argument_fragment(delta) is None


# ---------------------------------------------------------------------------
# Generic frames
# ---------------------------------------------------------------------------

class TestGenericAdapter:
    adapter = GenericAdapter()

    def test_plain_text_frame(self):
        delta = self.adapter.parse_frame("Once upon a time")
        assert delta.content == "Once upon a time"
        assert delta.output_tokens == 4

    def test_json_message_frame(self):
        frame = json.dumps({"content": "hi", "inputTokens": 5, "outputTokens": 1})
        delta = self.adapter.parse_frame(frame)
        assert delta.content == "hi"
        assert (delta.input_tokens, delta.output_tokens) == (5, 1)

    def test_tool_calls(self):
        frame = json.dumps({"toolCalls": [
            {"id": "t1", "function": {"name": "f", "arguments": '{"a": 1}'}},
        ]})
        delta = self.adapter.parse_frame(frame)
        tool = self.adapter.parse_tool_fragment(delta)
        assert (tool.id, tool.name, tool.args) == ("t1", "f", {"a": 1})
        assert self.adapter.parse_tool_argument_fragment(delta) == (0, '{"a": 1}')

    def test_every_frame_is_a_message(self):
        assert self.adapter.treats_frame_as_message('{"content": ')
