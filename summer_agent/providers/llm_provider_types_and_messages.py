"""Provider data model: messages, tool definitions, tool calls and responses.

Why: The loop, the providers and the extractors all exchange the same small
set of records.  Keeping them in one module (with no behaviour beyond
rendering to the OpenAI wire shape) lets every provider normalise its own
format into these types before anything reaches the loop.
"""

import json
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_TOOL = "tool"

FINISH_REASON_STOP = "stop"
FINISH_REASON_TOOL_CALLS = "tool_calls"


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------

@dataclass
class ToolCall:
    """One tool invocation requested by the model.

    ``arguments`` is the decoded form of ``raw_arguments`` and is ``None``
    when the raw text could not be decoded into a JSON object.
    """

    id: str
    name: str
    arguments: Optional[Dict[str, Any]]
    raw_arguments: str
    type: str = "function"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.name, "arguments": self.raw_arguments},
        }


def _reject_non_json_constant(token: str) -> Any:
    raise ValueError(f"{token} is not a JSON value")


def _parse_finite_float(token: str) -> float:
    value = float(token)
    if not math.isfinite(value):
        raise ValueError(f"number {token} is out of range")
    return value


def loads_strict_json(text: str) -> Any:
    """``json.loads`` restricted to RFC 8259 JSON.

    Python's decoder accepts ``NaN``, ``Infinity`` and ``-Infinity`` and turns
    out-of-range literals such as ``1e999`` into ``inf``; all of these raise
    ``ValueError`` here.
    """
    return json.loads(text, parse_constant=_reject_non_json_constant, parse_float=_parse_finite_float)


def decode_tool_call_arguments(raw_arguments: Any) -> Optional[Dict[str, Any]]:
    """Decode a JSON-encoded arguments string, returning None on failure.

    A blank string means "no arguments" and decodes to an empty dict.
    """
    if raw_arguments is None:
        return {}
    if not isinstance(raw_arguments, str):
        return None
    if not raw_arguments.strip():
        return {}
    try:
        decoded = loads_strict_json(raw_arguments)
    except ValueError:
        return None
    if not isinstance(decoded, dict):
        return None
    return decoded


def normalize_tool_call_arguments(raw: Any) -> Tuple[str, Optional[Dict[str, Any]]]:
    """Return ``(raw_arguments, arguments)`` for a wire ``arguments`` value.

    The wire shape is a JSON-encoded string, but some backends send the
    object itself; that form is re-encoded so ``raw_arguments`` is always text.
    """
    if isinstance(raw, dict):
        return json.dumps(raw, ensure_ascii=False), raw
    if raw is None:
        return "", {}
    raw_arguments = raw if isinstance(raw, str) else json.dumps(raw, ensure_ascii=False)
    return raw_arguments, decode_tool_call_arguments(raw_arguments)


@dataclass
class ExtractionResult:
    """Tool calls found in a reply plus the text the model "said" around them."""

    tool_calls: List[ToolCall] = field(default_factory=list)
    visible_content: str = ""
    protocol: str = "none"

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass
class ExtractorMatch:
    """What one extraction strategy consumed from a reply.

    ``consumed_spans`` are half-open ``(start, end)`` index pairs in the
    original text, in left-to-right order.
    """

    tool_calls: List[ToolCall]
    consumed_spans: List[Tuple[int, int]]


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

@dataclass
class ConversationMessage:
    role: str
    content: str
    tool_call_id: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Render the message in the OpenAI chat-completions shape."""
        payload: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_call_id:
            payload["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            payload["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        return payload


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_openai_dict(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

@dataclass
class UsageInfo:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


def coerce_token_count(value: Any) -> int:
    """Usage counters from backends are trusted only when they are plain ints."""
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


@dataclass
class LLMResponse:
    """One model reply.

    ``tool_calls`` is filled only by providers that already produce
    structured calls (natively or by resolving them from text themselves).
    """

    content: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: str = FINISH_REASON_STOP
    usage: Optional[UsageInfo] = None


# ---------------------------------------------------------------------------
# Provider interface
# ---------------------------------------------------------------------------

class LLMProvider(ABC):
    """Model exchange collaborator.

    Implementations own their retry policy and timeouts; a failure that
    survives them is raised as ``LLMProviderError``.
    """

    @abstractmethod
    def chat(
        self,
        messages: List[ConversationMessage],
        tools: List[ToolDefinition],
        model: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> LLMResponse:
        ...

    @abstractmethod
    def get_default_model(self) -> str:
        ...
