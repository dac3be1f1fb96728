"""Tests for the OpenAI-compatible HTTP provider (requests is faked)."""

import json

import pytest
import requests

from summer_agent.errors import LLMProviderError
from summer_agent.providers import openai_compatible_chat_provider
from summer_agent.providers.llm_provider_types_and_messages import (
    ConversationMessage,
    ToolDefinition,
)
from summer_agent.providers.openai_compatible_chat_provider import (
    OpenAICompatibleChatProvider,
    normalize_native_tool_calls,
)


class _FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        return self._body


def _provider(**kwargs):
    return OpenAICompatibleChatProvider(
        api_url="https://llm.example/v1/chat/completions",
        api_key="k",
        model_id="test-model",
        retry_backoff_seconds=0,
        **kwargs,
    )


@pytest.fixture
def fake_post(monkeypatch):
    sent = []

    def install(*responses):
        queue = list(responses)

        def _post(url, headers=None, json=None, timeout=None):
            sent.append(json)
            item = queue.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        monkeypatch.setattr(openai_compatible_chat_provider.requests, "post", _post)
        return sent

    return install


def test_plain_completion(fake_post):
    sent = fake_post(_FakeResponse(body={
        "choices": [{"message": {"content": " hi "}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4},
    }))
    response = _provider().chat([ConversationMessage(role="user", content="hello")], [], "")

    assert response.content == "hi"
    assert response.tool_calls == []
    assert response.usage.total_tokens == 4
    assert sent[0]["model"] == "test-model"
    assert "tools" not in sent[0]


def test_native_tool_calls_are_normalized(fake_post):
    sent = fake_post(_FakeResponse(body={
        "choices": [{
            "message": {
                "content": None,
                "tool_calls": [{
                    "id": "call_9",
                    "type": "function",
                    "function": {"name": "echo", "arguments": '{"text": "x"}'},
                }],
            },
            "finish_reason": "tool_calls",
        }],
    }))
    tool = ToolDefinition(name="echo", description="Echo", parameters={"type": "object"})
    response = _provider().chat([ConversationMessage(role="user", content="go")], [tool], "other-model")

    assert response.finish_reason == "tool_calls"
    assert response.tool_calls[0].id == "call_9"
    assert response.tool_calls[0].arguments == {"text": "x"}
    assert sent[0]["model"] == "other-model"
    assert sent[0]["tool_choice"] == "auto"
    assert sent[0]["tools"][0]["function"]["name"] == "echo"


def test_retries_then_succeeds(fake_post):
    sent = fake_post(
        requests.ConnectionError("reset"),
        _FakeResponse(status_code=429),
        _FakeResponse(body={"choices": [{"message": {"content": "ok"}}]}),
    )
    response = _provider(max_retries=3).chat([ConversationMessage(role="user", content="x")], [], "")
    assert response.content == "ok"
    assert len(sent) == 3


def test_retries_exhausted_raises(fake_post):
    fake_post(_FakeResponse(status_code=500), _FakeResponse(status_code=500))
    with pytest.raises(LLMProviderError) as info:
        _provider(max_retries=2).chat([ConversationMessage(role="user", content="x")], [], "")
    assert info.value.status_code == 500
    assert info.value.provider == "openai_compatible"


def test_no_choices_raises():
    with pytest.raises(LLMProviderError, match="no choices"):
        _provider().parse_response_body({"error": "bad"})


def test_normalize_skips_nameless_and_keeps_bad_arguments():
    calls = normalize_native_tool_calls([
        {"function": {"arguments": "{}"}},
        {"function": {"name": "f", "arguments": "{oops"}},
    ])
    assert len(calls) == 1
    assert calls[0].id == "call_2"
    assert calls[0].arguments is None
    assert calls[0].raw_arguments == "{oops"


def test_from_config_requires_fields():
    assert OpenAICompatibleChatProvider.from_config({"api_url": "u"}) is None
    provider = OpenAICompatibleChatProvider.from_config(
        {"api_url": "u", "api_key": "k", "model_id": "m", "max_retries": 5}
    )
    assert provider.get_default_model() == "m"
    assert provider.max_retries == 5


def test_object_arguments_are_reencoded():
    (call,) = normalize_native_tool_calls([
        {"id": "c1", "function": {"name": "echo", "arguments": {"text": "é"}}},
    ])
    assert call.arguments == {"text": "é"}
    assert call.raw_arguments == json.dumps({"text": "é"}, ensure_ascii=False)
    assert call.to_dict()["function"]["arguments"] == call.raw_arguments


def test_normalize_ignores_malformed_entries():
    assert normalize_native_tool_calls({"function": {"name": "f"}}) == []
    calls = normalize_native_tool_calls([
        "echo",
        {"function": "echo"},
        {"function": {"name": "f", "arguments": '{"n": NaN}'}},
        {"function": {"name": "g"}},
    ])
    assert [c.name for c in calls] == ["f", "g"]
    assert calls[0].arguments is None
    assert calls[1].arguments == {}
    assert calls[1].id == "call_4"


@pytest.mark.parametrize("body, message", [
    ([], "not a JSON object"),
    ("oops", "not a JSON object"),
    ({"choices": "x"}, "no choices"),
    ({"choices": ["x"]}, "choice is not a JSON object"),
    ({"choices": [{"message": "hi"}]}, "message is not a JSON object"),
])
def test_malformed_body_raises_provider_error(body, message):
    with pytest.raises(LLMProviderError, match=message):
        _provider().parse_response_body(body)


def test_non_string_content_and_odd_usage_are_tolerated():
    response = _provider().parse_response_body({
        "choices": [{"message": {"content": ["part"]}, "finish_reason": None}],
        "usage": {"prompt_tokens": "3", "completion_tokens": True, "total_tokens": 4},
    })
    assert response.content == ""
    assert response.finish_reason == "stop"
    assert response.usage.prompt_tokens == 0
    assert response.usage.completion_tokens == 0
    assert response.usage.total_tokens == 4


def test_non_object_json_from_endpoint_raises(fake_post):
    fake_post(_FakeResponse(body=["not", "an", "object"]))
    with pytest.raises(LLMProviderError, match="not a JSON object"):
        _provider(max_retries=1).chat([ConversationMessage(role="user", content="x")], [], "")
