"""Structured envelope extractor: ``{"tool_calls": [...]}`` anywhere in a reply.

Why: Models instructed to answer with the OpenAI tool-call shape often wrap
the envelope in an explanatory sentence or a code fence.  The extractor finds
the first envelope marker, brace-matches the object that starts there and
decodes it, without ever failing the turn on a truncated or hallucinated
envelope.

Wire shape (arguments are double-encoded)::

    {"tool_calls":[{"id":"call_1","type":"function",
                    "function":{"name":"f","arguments":"{\\"x\\":1}"}}]}
"""

import logging
from typing import Any, List, Optional

from summer_agent.providers.brace_matched_json_span_finder import find_matching_close
from summer_agent.providers.llm_provider_types_and_messages import (
    ExtractorMatch,
    ToolCall,
    loads_strict_json,
    normalize_tool_call_arguments,
)

logger = logging.getLogger(__name__)

TOOL_CALLS_ENVELOPE_MARKER = '{"tool_calls"'


def extract_structured(text: str) -> Optional[ExtractorMatch]:
    """Extract tool calls from the first structured envelope in ``text``.

    Returns ``None`` when there is no marker, or when the object opened by
    the marker is never closed.  Once an envelope span is found the match
    stands even if the envelope decodes to zero calls.
    """
    if not text:
        return None
    start = text.find(TOOL_CALLS_ENVELOPE_MARKER)
    if start == -1:
        return None

    end = find_matching_close(text, start)
    if end == start:
        logger.debug("Unterminated tool_calls envelope at offset %d, ignoring", start)
        return None

    return ExtractorMatch(
        tool_calls=_decode_envelope(text[start:end]),
        consumed_spans=[(start, end)],
    )


def _decode_envelope(envelope_json: str) -> List[ToolCall]:
    try:
        envelope = loads_strict_json(envelope_json)
    except ValueError as exc:
        logger.debug("tool_calls envelope is not valid JSON: %s", exc)
        return []

    entries = envelope.get("tool_calls") if isinstance(envelope, dict) else None
    if not isinstance(entries, list):
        logger.debug("tool_calls envelope has no list under 'tool_calls'")
        return []

    calls: List[ToolCall] = []
    for position, entry in enumerate(entries, 1):
        call = _decode_envelope_entry(entry, position)
        if call is not None:
            calls.append(call)
    return calls


def _decode_envelope_entry(entry: Any, position: int) -> Optional[ToolCall]:
    if not isinstance(entry, dict):
        logger.debug("Skipping tool_calls entry %d: not an object", position)
        return None
    function = entry.get("function")
    if not isinstance(function, dict):
        logger.debug("Skipping tool_calls entry %d: no function descriptor", position)
        return None
    name = function.get("name")
    if not isinstance(name, str) or not name:
        logger.debug("Skipping tool_calls entry %d: no function name", position)
        return None

    raw_arguments, arguments = normalize_tool_call_arguments(function.get("arguments"))
    if arguments is None:
        logger.debug("Arguments for %s did not decode: %s", name, raw_arguments[:200])

    call_id = entry.get("id")
    if not isinstance(call_id, str) or not call_id:
        call_id = f"call_{position}"

    call_type = entry.get("type")
    return ToolCall(
        id=call_id,
        name=name,
        arguments=arguments,
        raw_arguments=raw_arguments,
        type=call_type if isinstance(call_type, str) and call_type else "function",
    )
