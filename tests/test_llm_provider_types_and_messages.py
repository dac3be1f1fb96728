"""Tests for argument decoding helpers and message rendering."""

import pytest

from summer_agent.providers.llm_provider_types_and_messages import (
    ConversationMessage,
    ToolCall,
    coerce_token_count,
    decode_tool_call_arguments,
    loads_strict_json,
    normalize_tool_call_arguments,
)


@pytest.mark.parametrize("text", ["NaN", "[Infinity]", '{"a": -Infinity}', '{"a": 1e999}', '{"a": -1e400}'])
def test_loads_strict_json_rejects_non_finite_numbers(text):
    with pytest.raises(ValueError):
        loads_strict_json(text)


def test_loads_strict_json_keeps_ordinary_numbers():
    assert loads_strict_json('{"a": 1.5, "b": 1e308, "c": 7}') == {"a": 1.5, "b": 1e308, "c": 7}


def test_decode_tool_call_arguments():
    assert decode_tool_call_arguments('{"x": 1}') == {"x": 1}
    assert decode_tool_call_arguments("  ") == {}
    assert decode_tool_call_arguments(None) == {}
    assert decode_tool_call_arguments("[1]") is None
    assert decode_tool_call_arguments('{"x": NaN}') is None
    assert decode_tool_call_arguments(5) is None


def test_normalize_tool_call_arguments_forms():
    assert normalize_tool_call_arguments('{"x": 1}') == ('{"x": 1}', {"x": 1})
    assert normalize_tool_call_arguments({"x": 1}) == ('{"x": 1}', {"x": 1})
    assert normalize_tool_call_arguments(None) == ("", {})
    assert normalize_tool_call_arguments([1, 2]) == ("[1, 2]", None)


def test_coerce_token_count():
    assert coerce_token_count(12) == 12
    assert coerce_token_count(True) == 0
    assert coerce_token_count("12") == 0
    assert coerce_token_count(None) == 0


def test_assistant_message_renders_tool_calls():
    call = ToolCall(id="c1", name="echo", arguments={"text": "a"}, raw_arguments='{"text": "a"}')
    payload = ConversationMessage(role="assistant", content="", tool_calls=[call]).to_dict()
    assert payload["tool_calls"][0]["function"] == {"name": "echo", "arguments": '{"text": "a"}'}
    assert "tool_call_id" not in payload
