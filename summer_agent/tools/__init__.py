"""Tools package: tool abstraction, registry and the tool loop.

Key components:
  - ToolBase / ToolRegistry / ToolOutcome: tool abstraction and lookup
  - run_tool_loop: model/tool round trips until a final answer
  - concrete tools: file writers, markdown delivery, web and research search
"""

from summer_agent.tools.tool_base_and_registry import (
    ToolBase,
    ToolExecutionContext,
    ToolOutcome,
    ToolRegistry,
)
from summer_agent.tools.tool_loop_controller import (
    ToolLoopConfig,
    ToolLoopResult,
    run_tool_loop,
)

__all__ = [
    "ToolBase",
    "ToolExecutionContext",
    "ToolLoopConfig",
    "ToolLoopResult",
    "ToolOutcome",
    "ToolRegistry",
    "run_tool_loop",
]
