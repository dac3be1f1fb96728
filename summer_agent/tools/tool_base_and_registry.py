"""Tool base class, tool outcome and registry for the tool loop.

Why: Each tool is a self-contained class with its own name, description,
parameter schema and execution logic, and the loop only ever talks to the
registry.  The registry is constructed explicitly by the caller and injected
into each run, so concurrent runs may use different tool sets; during a run
it is only read.
"""

import logging
import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from summer_agent.errors import ToolRegistrationError
from summer_agent.providers.llm_provider_types_and_messages import ToolDefinition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outcome and execution context
# ---------------------------------------------------------------------------

@dataclass
class ToolOutcome:
    """Result of one tool execution.

    ``for_model`` goes back into the conversation; ``for_observer`` is what a
    human (or a log) should see.  ``silent`` outcomes have nothing to show the
    user beyond what the tool already delivered itself.
    """

    for_model: str
    for_observer: str = ""
    is_error: bool = False
    silent: bool = False

    @classmethod
    def ok(cls, text: str) -> "ToolOutcome":
        return cls(for_model=text, for_observer=text)

    @classmethod
    def error(cls, text: str) -> "ToolOutcome":
        return cls(for_model=f"Error: {text}", for_observer=text, is_error=True)

    @classmethod
    def silent_result(cls, text: str) -> "ToolOutcome":
        return cls(for_model=text, silent=True)


@dataclass(frozen=True)
class ToolExecutionContext:
    """Per-run data a tool may need: where to deliver output, and cancellation."""

    channel: str = ""
    chat_id: str = ""
    cancel_event: Optional[threading.Event] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not isinstance(value, float) or math.isfinite(value)


def _is_integral_number(value: Any) -> bool:
    if not _is_finite_number(value):
        return False
    return not isinstance(value, float) or value.is_integer()


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class ToolBase(ABC):
    """Abstract base class for all tools the loop can execute."""

    name: str = ""
    description: str = ""
    parameters_schema: Dict[str, Any] = {}

    def validate_parameters(self, params: Dict[str, Any]) -> List[str]:
        """Validate parameters against the declared schema.

        Returns a list of error strings (empty if valid) so the model gets a
        precise message it can correct on the next iteration.
        """
        errors: List[str] = []
        schema = self.parameters_schema
        if not schema:
            return errors

        for key in schema.get("required", []):
            if key not in params:
                errors.append(f"missing required parameter: {key}")

        properties = schema.get("properties", {})
        for key, value in params.items():
            if key not in properties:
                continue
            expected_type = properties[key].get("type", "")
            if expected_type == "string" and not isinstance(value, str):
                errors.append(f"parameter '{key}' must be a string, got {type(value).__name__}")
            elif expected_type == "number" and not _is_finite_number(value):
                errors.append(f"parameter '{key}' must be a number, got {type(value).__name__}")
            elif expected_type == "integer" and not _is_integral_number(value):
                errors.append(f"parameter '{key}' must be an integer, got {value!r}")
            elif expected_type == "boolean" and not isinstance(value, bool):
                errors.append(f"parameter '{key}' must be a boolean, got {type(value).__name__}")

        return errors

    @abstractmethod
    def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> ToolOutcome:
        """Execute the tool.

        Expected failures are returned as ``ToolOutcome.error``; anything
        raised is converted to an error outcome by the registry.
        """
        ...

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=dict(self.parameters_schema),
        )


# ---------------------------------------------------------------------------
# Tool registry
# ---------------------------------------------------------------------------

class ToolRegistry:
    """Lookup table of tools, keyed by name, in registration order."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolBase] = {}

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def register_tool(self, tool: ToolBase) -> None:
        """Register a tool instance by its name."""
        if not tool.name:
            raise ToolRegistrationError(f"Tool {type(tool).__name__} has no name")
        if tool.name in self._tools:
            raise ToolRegistrationError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        logger.debug("Registered tool: %s", tool.name)

    def get_tool(self, name: str) -> Optional[ToolBase]:
        return self._tools.get(name)

    def get_all_registered_tool_names(self) -> List[str]:
        return list(self._tools.keys())

    def get_tool_definitions(self) -> List[ToolDefinition]:
        return [tool.to_definition() for tool in self._tools.values()]

    def execute_tool_by_name(
        self,
        name: str,
        args: Optional[Dict[str, Any]],
        context: Optional[ToolExecutionContext] = None,
    ) -> ToolOutcome:
        """Validate parameters and execute a tool by name.

        Unknown names, undecodable arguments, validation failures and raised
        exceptions all come back as error outcomes; nothing propagates.
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Model requested unknown tool: %s", name)
            available = ", ".join(self._tools) or "none"
            return ToolOutcome.error(f"tool '{name}' not found (available tools: {available})")

        if args is None:
            return ToolOutcome.error(
                f"arguments for tool '{name}' are not a valid JSON object; "
                f"resend the call with JSON-encoded arguments"
            )

        try:
            validation_errors = tool.validate_parameters(args)
            if validation_errors:
                return ToolOutcome.error(f"invalid parameters for {name}: {'; '.join(validation_errors)}")
            return tool.execute(args, context or ToolExecutionContext())
        except Exception as exc:
            logger.warning("Tool execution error: %s(%s): %s", name, args, exc)
            return ToolOutcome.error(f"tool {name} failed: {exc}")
