"""Tagged inline extractor: ``<tool_name>{...}</tool_name>`` spans in a reply.

Why: Some models ignore the structured envelope and write calls as
pseudo-XML, naming the tool in the tag and putting a JSON object inside::

    I'll update that.
    <append_file>{"path": "/tmp/a.txt", "content": "hello"}</append_file>

The closing tag is optional.  The scanner only looks for ``<`` between
matched spans, so angle brackets inside a consumed JSON object's strings
never start a new candidate, and anything that does not fully match the
convention is left in the prose untouched.
"""

import logging
import string
from typing import List, Optional, Tuple

from summer_agent.providers.brace_matched_json_span_finder import find_matching_close
from summer_agent.providers.llm_provider_types_and_messages import (
    ExtractorMatch,
    ToolCall,
    loads_strict_json,
)

logger = logging.getLogger(__name__)

_TAG_NAME_START_CHARS = frozenset(string.ascii_letters + "_")
_TAG_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")
_WHITESPACE_CHARS = frozenset(" \n\r\t")

TAGGED_CALL_ID_PREFIX = "call_tag_"


def _skip_whitespace(text: str, index: int) -> int:
    while index < len(text) and text[index] in _WHITESPACE_CHARS:
        index += 1
    return index


def _match_tagged_call_at(text: str, start: int, sequence: int) -> Optional[Tuple[int, ToolCall]]:
    """Try to match one tagged call whose ``<`` is at ``start``.

    Returns ``(span_end, call)`` or ``None`` when the candidate is rejected.
    """
    name_start = start + 1
    if name_start >= len(text) or text[name_start] not in _TAG_NAME_START_CHARS:
        return None

    name_end = name_start
    while name_end < len(text) and text[name_end] in _TAG_NAME_CHARS:
        name_end += 1
    if name_end >= len(text) or text[name_end] != ">":
        return None
    name = text[name_start:name_end]

    json_start = _skip_whitespace(text, name_end + 1)
    if json_start >= len(text) or text[json_start] != "{":
        return None

    json_end = find_matching_close(text, json_start)
    if json_end == json_start:
        return None

    raw_arguments = text[json_start:json_end]
    try:
        arguments = loads_strict_json(raw_arguments)
    except ValueError:
        logger.debug("Rejecting <%s> candidate at %d: body is not valid JSON", name, start)
        return None
    if not isinstance(arguments, dict):
        return None

    span_end = json_end
    after_json = _skip_whitespace(text, json_end)
    closing_tag = f"</{name}>"
    if text.startswith(closing_tag, after_json):
        span_end = after_json + len(closing_tag)

    call = ToolCall(
        id=f"{TAGGED_CALL_ID_PREFIX}{sequence}",
        name=name,
        arguments=arguments,
        raw_arguments=raw_arguments,
    )
    return span_end, call


def extract_tagged(text: str) -> Optional[ExtractorMatch]:
    """Collect every tagged call in ``text``, left to right.

    Returns ``None`` when no span matched.
    """
    if not text:
        return None

    calls: List[ToolCall] = []
    spans: List[Tuple[int, int]] = []
    index = 0
    while index < len(text):
        start = text.find("<", index)
        if start == -1:
            break
        matched = _match_tagged_call_at(text, start, len(calls) + 1)
        if matched is None:
            index = start + 1
            continue
        span_end, call = matched
        calls.append(call)
        spans.append((start, span_end))
        index = span_end

    if not calls:
        return None
    return ExtractorMatch(tool_calls=calls, consumed_spans=spans)


def extract_tagged_tool_calls(text: str) -> List[ToolCall]:
    """Return only the tagged calls found in ``text``."""
    match = extract_tagged(text)
    return match.tool_calls if match else []


def strip_tagged_tool_calls(text: str) -> str:
    """Remove tagged call spans from ``text`` and trim the remainder."""
    from summer_agent.providers.tool_call_protocol_resolver import strip_consumed_spans

    match = extract_tagged(text)
    if match is None:
        return text.strip()
    return strip_consumed_spans(text, match.consumed_spans)
