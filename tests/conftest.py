"""Shared fakes for tool loop and tool tests."""

from typing import Any, Dict, List, Optional

import pytest

from summer_agent.errors import LLMProviderError
from summer_agent.providers.llm_provider_types_and_messages import (
    ConversationMessage,
    LLMProvider,
    LLMResponse,
    ToolDefinition,
)
from summer_agent.tools.tool_base_and_registry import (
    ToolBase,
    ToolExecutionContext,
    ToolOutcome,
    ToolRegistry,
)


class ScriptedProvider(LLMProvider):
    """Returns queued replies in order and records every request it saw."""

    def __init__(self, replies: List[Any]) -> None:
        self._replies = list(replies)
        self.requests: List[List[ConversationMessage]] = []
        self.models: List[str] = []
        self.options: List[Optional[Dict[str, Any]]] = []

    def chat(
        self,
        messages: List[ConversationMessage],
        tools: List[ToolDefinition],
        model: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> LLMResponse:
        self.requests.append(list(messages))
        self.models.append(model)
        self.options.append(options)
        if not self._replies:
            raise LLMProviderError("script exhausted", provider="scripted")
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, LLMResponse):
            return reply
        return LLMResponse(content=reply)

    def get_default_model(self) -> str:
        return "scripted-model"


class RecordingTool(ToolBase):
    """Echo tool that remembers the order it was called in."""

    parameters_schema = {
        "type": "object",
        "properties": {"text": {"type": "string"}},
        "required": ["text"],
    }

    def __init__(self, name: str, calls: List[str], fail: bool = False) -> None:
        self.name = name
        self.description = f"Records calls to {name}"
        self._calls = calls
        self._fail = fail

    def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> ToolOutcome:
        self._calls.append(f"{self.name}:{args['text']}")
        if self._fail:
            raise RuntimeError("boom")
        return ToolOutcome.ok(f"{self.name} got {args['text']}")


@pytest.fixture
def call_log() -> List[str]:
    return []


@pytest.fixture
def registry(call_log) -> ToolRegistry:
    reg = ToolRegistry()
    reg.register_tool(RecordingTool("echo", call_log))
    reg.register_tool(RecordingTool("shout", call_log))
    reg.register_tool(RecordingTool("explode", call_log, fail=True))
    return reg


@pytest.fixture
def make_provider():
    return ScriptedProvider
