"""Exception hierarchy for SummerAgent.

Malformed tool-call syntax in model output is never an exception: the
extractors treat it as absent.  Only conditions the caller must react to are
raised: provider failures, loop configuration mistakes, iteration exhaustion,
cancellation, bad registrations and bad configuration files.
"""

from typing import Any, List, Optional


class SummerAgentError(Exception):
    """Base class for all SummerAgent errors."""


class ConfigurationError(SummerAgentError):
    """Raised when config.yaml is missing, unreadable or incomplete."""


class LLMProviderError(SummerAgentError):
    """Transport or backend failure while exchanging messages with a model."""

    def __init__(self, message: str, provider: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ToolRegistrationError(SummerAgentError):
    """Raised when a tool without a name, or a duplicate name, is registered."""


class ToolLoopError(SummerAgentError):
    """Base class for terminal, non-success outcomes of a tool loop run."""


class ToolLoopConfigurationError(ToolLoopError):
    """The loop was configured with values it cannot run with."""


class ToolLoopIterationsExhaustedError(ToolLoopError):
    """The iteration bound was reached before the model produced a final answer."""

    def __init__(
        self,
        iterations_used: int,
        last_content: str = "",
        messages: Optional[List[Any]] = None,
    ):
        super().__init__(
            f"tool loop reached max iterations ({iterations_used}) without a final answer"
        )
        self.iterations_used = iterations_used
        self.last_content = last_content
        self.messages = messages or []


class ToolLoopCancelledError(ToolLoopError):
    """The run was cancelled at a blocking boundary."""

    def __init__(self, iterations_used: int, stage: str = ""):
        super().__init__(f"tool loop cancelled before {stage or 'next step'} (iteration {iterations_used})")
        self.iterations_used = iterations_used
        self.stage = stage
