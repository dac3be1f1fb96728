"""Tests for the structured-then-tagged resolver."""

from summer_agent.providers.tool_call_protocol_resolver import (
    resolve_tool_calls,
    strip_consumed_spans,
)


def test_prose_only_reply_has_no_calls():
    result = resolve_tool_calls("  The answer is 42.  ")
    assert result.tool_calls == []
    assert result.has_tool_calls is False
    assert result.visible_content == "The answer is 42."
    assert result.protocol == "none"


def test_none_and_empty_reply():
    assert resolve_tool_calls("").visible_content == ""
    assert resolve_tool_calls(None).tool_calls == []


def test_structured_wins_over_tagged():
    text = (
        '<append_file>{"path": "x", "content": "y"}</append_file>\n'
        '{"tool_calls":[{"id":"s1","function":{"name":"write_file","arguments":"{}"}}]}'
    )
    result = resolve_tool_calls(text)
    assert result.protocol == "structured"
    assert [c.id for c in result.tool_calls] == ["s1"]
    assert result.visible_content.startswith("<append_file>")


def test_structured_envelope_with_zero_calls_still_wins():
    text = '<a>{"x": 1}</a> {"tool_calls": []}'
    result = resolve_tool_calls(text)
    assert result.protocol == "structured"
    assert result.tool_calls == []
    assert result.visible_content == '<a>{"x": 1}</a>'


def test_tagged_fallback_when_no_envelope():
    result = resolve_tool_calls('Looking it up.\n<web_search>{"query": "go"}</web_search>')
    assert result.protocol == "tagged"
    assert result.tool_calls[0].name == "web_search"
    assert result.visible_content == "Looking it up."


def test_visible_content_has_no_remaining_calls():
    text = 'Step one <a>{"x": 1}</a> step two <b>{"y": 2}</b> end'
    first = resolve_tool_calls(text)
    second = resolve_tool_calls(first.visible_content)
    assert second.tool_calls == []
    assert second.visible_content == first.visible_content


def test_strip_consumed_spans():
    assert strip_consumed_spans("  abcXYZdef ", [(5, 8)]) == "abcdef"
    assert strip_consumed_spans("abc", []) == "abc"
