"""Tool instruction prompt: the "Available Tools" section shown to the model.

Why: Parsing is only deterministic if the model is told exactly which two
conventions are recognised.  The section is generated from the tool
definitions so the documentation never drifts from the registered tools.
"""

import json
from typing import List, Sequence

from summer_agent.providers.llm_provider_types_and_messages import ToolDefinition

_ENVELOPE_EXAMPLE = (
    '{"tool_calls":[{"id":"call_xxx","type":"function",'
    '"function":{"name":"tool_name","arguments":"{...}"}}]}'
)

_TAGGED_EXAMPLE = '<tool_name>{"param": "value"}</tool_name>'


def build_tool_definition_block(definition: ToolDefinition) -> str:
    lines = [f"#### {definition.name}"]
    if definition.description:
        lines.append(f"Description: {definition.description}")
    if definition.parameters:
        params_json = json.dumps(definition.parameters, ensure_ascii=False)
        lines.append(f"Parameters:\n```json\n{params_json}\n```")
    return "\n".join(lines) + "\n"


def build_tool_instruction_prompt(definitions: Sequence[ToolDefinition]) -> str:
    """Render the tool-use instructions for ``definitions``.

    Returns an empty string when there are no tools.
    """
    if not definitions:
        return ""

    parts: List[str] = [
        "## Available Tools\n",
        "When you need to use a tool, respond with ONLY a JSON object:\n",
        f"```json\n{_ENVELOPE_EXAMPLE}\n```\n",
        "CRITICAL: The 'arguments' field MUST be a JSON-encoded STRING.\n",
        f"Alternatively, write one tag per call: {_TAGGED_EXAMPLE}\n",
        "When you have the final answer, reply with plain text and no tool calls.\n",
        "### Tool Definitions:\n",
    ]
    for definition in definitions:
        parts.append(build_tool_definition_block(definition))
    return "\n".join(parts)
