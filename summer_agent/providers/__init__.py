"""Providers package: model exchange, provider data model and tool-call parsing.

Key components:
  - find_matching_close: string-aware brace matcher
  - extract_structured / extract_tagged: the two tool-call conventions
  - resolve_tool_calls: structured first, tagged as fallback
  - OpenAICompatibleChatProvider / ClaudeCliProvider: model backends
"""

from summer_agent.providers.brace_matched_json_span_finder import find_matching_close
from summer_agent.providers.llm_provider_types_and_messages import (
    ConversationMessage,
    ExtractionResult,
    LLMProvider,
    LLMResponse,
    ToolCall,
    ToolDefinition,
    UsageInfo,
)
from summer_agent.providers.structured_tool_call_envelope_extractor import extract_structured
from summer_agent.providers.tagged_inline_tool_call_extractor import (
    extract_tagged,
    extract_tagged_tool_calls,
    strip_tagged_tool_calls,
)
from summer_agent.providers.tool_call_protocol_resolver import resolve_tool_calls

__all__ = [
    "ConversationMessage",
    "ExtractionResult",
    "LLMProvider",
    "LLMResponse",
    "ToolCall",
    "ToolDefinition",
    "UsageInfo",
    "extract_structured",
    "extract_tagged",
    "extract_tagged_tool_calls",
    "find_matching_close",
    "resolve_tool_calls",
    "strip_tagged_tool_calls",
]
