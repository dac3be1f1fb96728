"""Tool-call resolver: priority-ordered fallback across extraction strategies.

Why: The system prompt offers the model two conventions.  The structured
envelope is tried first; only when no envelope is present does the tagged
form get a chance.  Strategies are a plain ordered tuple so another format
can be appended without touching the existing two.

Policy: once an envelope is located, the structured result wins outright,
even if it decodes to zero calls and tagged spans are also present.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from summer_agent.providers.llm_provider_types_and_messages import (
    ExtractionResult,
    ExtractorMatch,
)
from summer_agent.providers.structured_tool_call_envelope_extractor import extract_structured
from summer_agent.providers.tagged_inline_tool_call_extractor import extract_tagged

logger = logging.getLogger(__name__)

ExtractionStrategy = Tuple[str, Callable[[str], Optional[ExtractorMatch]]]

TOOL_CALL_EXTRACTION_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    ("structured", extract_structured),
    ("tagged", extract_tagged),
)


def strip_consumed_spans(text: str, spans: Sequence[Tuple[int, int]]) -> str:
    """Concatenate the text outside ``spans`` (in order) and trim it."""
    parts: List[str] = []
    last = 0
    for start, end in spans:
        if start > last:
            parts.append(text[last:start])
        last = max(last, end)
    if last < len(text):
        parts.append(text[last:])
    return "".join(parts).strip()


def resolve_tool_calls(
    text: str,
    strategies: Sequence[ExtractionStrategy] = TOOL_CALL_EXTRACTION_STRATEGIES,
) -> ExtractionResult:
    """Resolve the ordered tool calls in a model reply and its visible content.

    Never raises on malformed input: a reply with no recognisable call yields
    zero calls and the trimmed reply as visible content.
    """
    text = text or ""
    for protocol, extract in strategies:
        match = extract(text)
        if match is None:
            continue
        logger.debug(
            "Resolved %d tool call(s) via %s protocol", len(match.tool_calls), protocol,
        )
        return ExtractionResult(
            tool_calls=list(match.tool_calls),
            visible_content=strip_consumed_spans(text, match.consumed_spans),
            protocol=protocol,
        )
    return ExtractionResult(tool_calls=[], visible_content=text.strip(), protocol="none")
