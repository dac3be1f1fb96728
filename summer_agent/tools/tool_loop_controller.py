"""Tool loop controller: call the model, run the tools it asks for, repeat.

Why: A single run alternates between one model exchange and the tool calls
resolved from its reply, appending every step to the conversation, until the
model answers without calling a tool.  The controller is a synchronous state
machine: it owns the conversation for the duration of a run, executes tool
calls strictly in resolver order, and ends in exactly one of three ways:

  1. done: the model replied with no tool calls (``ToolLoopResult``)
  2. iteration-exhausted: ``ToolLoopIterationsExhaustedError``
  3. fatal provider error: the provider's exception, propagated unchanged

Cancellation (``ToolLoopCancelledError``) is checked before every model
exchange and every tool invocation.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from summer_agent.errors import (
    ToolLoopCancelledError,
    ToolLoopConfigurationError,
    ToolLoopIterationsExhaustedError,
)
from summer_agent.providers.llm_provider_types_and_messages import (
    ROLE_ASSISTANT,
    ROLE_SYSTEM,
    ROLE_TOOL,
    ConversationMessage,
    ExtractionResult,
    LLMProvider,
    ToolCall,
)
from summer_agent.providers.tool_call_protocol_resolver import resolve_tool_calls
from summer_agent.tools.tool_base_and_registry import (
    ToolExecutionContext,
    ToolOutcome,
    ToolRegistry,
)
from summer_agent.tools.tool_instruction_prompt_builder import build_tool_instruction_prompt

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 8


@dataclass
class ToolLoopConfig:
    provider: LLMProvider
    tools: ToolRegistry
    model: str = ""
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    options: Dict[str, Any] = field(default_factory=dict)
    include_tool_instructions: bool = False
    trace_logger: Optional[Any] = None


@dataclass
class ToolLoopResult:
    content: str
    iterations: int
    messages: List[ConversationMessage] = field(default_factory=list)


def _resolve_response_tool_calls(response_content: str, native_calls: List[ToolCall]) -> ExtractionResult:
    """Prefer calls the provider already structured; otherwise parse the text."""
    if native_calls:
        return ExtractionResult(
            tool_calls=list(native_calls),
            visible_content=(response_content or "").strip(),
            protocol="native",
        )
    return resolve_tool_calls(response_content)


def _build_initial_conversation(
    config: ToolLoopConfig,
    messages: List[ConversationMessage],
) -> List[ConversationMessage]:
    conversation: List[ConversationMessage] = []
    if config.include_tool_instructions and len(config.tools):
        instructions = build_tool_instruction_prompt(config.tools.get_tool_definitions())
        conversation.append(ConversationMessage(role=ROLE_SYSTEM, content=instructions))
    conversation.extend(messages)
    return conversation


def _check_cancelled(cancel_event: Optional[threading.Event], iteration: int, stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.info("Tool loop cancelled at iter %d before %s", iteration, stage)
        raise ToolLoopCancelledError(iteration, stage)


def _record_iteration_trace(trace_logger: Optional[Any], iteration: int, details: Dict[str, Any]) -> None:
    if trace_logger and hasattr(trace_logger, "record_tool_loop_iteration_trace"):
        trace_logger.record_tool_loop_iteration_trace(iteration=iteration, details=details)


def _execute_tool_call(
    registry: ToolRegistry,
    call: ToolCall,
    context: ToolExecutionContext,
    trace_logger: Optional[Any],
) -> ToolOutcome:
    start = time.time()
    outcome = registry.execute_tool_by_name(call.name, call.arguments, context)
    elapsed_ms = int((time.time() - start) * 1000)

    if outcome.is_error:
        logger.warning("Tool %s (%s) returned error: %s", call.name, call.id, outcome.for_model[:200])
    else:
        logger.info(
            "Tool %s (%s) ok: result_len=%d exec_ms=%d",
            call.name, call.id, len(outcome.for_model), elapsed_ms,
        )
    if outcome.for_observer and not outcome.silent:
        logger.info("Tool %s (%s) observer: %s", call.name, call.id, outcome.for_observer[:500])
    if trace_logger and hasattr(trace_logger, "record_tool_execution"):
        trace_logger.record_tool_execution(
            tool_name=call.name,
            tool_call_id=call.id,
            arguments=call.arguments if call.arguments is not None else call.raw_arguments,
            for_model=outcome.for_model,
            is_error=outcome.is_error,
            elapsed_ms=elapsed_ms,
            for_observer=outcome.for_observer,
            silent=outcome.silent,
        )
    return outcome


def run_tool_loop(
    config: ToolLoopConfig,
    messages: List[ConversationMessage],
    channel: str = "",
    chat_id: str = "",
    cancel_event: Optional[threading.Event] = None,
) -> ToolLoopResult:
    """Run one tool-use conversation to completion.

    Args:
        config: Provider, registry, model and iteration bound for this run.
        messages: Prior turns; copied, never mutated.
        channel: Destination channel passed to tools that deliver output.
        chat_id: Destination chat passed to tools that deliver output.
        cancel_event: When set, the run stops at the next blocking boundary.

    Returns:
        ``ToolLoopResult`` with the final answer and the iterations used.

    Raises:
        ToolLoopConfigurationError: ``max_iterations`` is below 1.
        ToolLoopIterationsExhaustedError: no final answer within the bound.
        ToolLoopCancelledError: ``cancel_event`` was set.
        LLMProviderError: the model exchange failed.
    """
    if config.max_iterations < 1:
        raise ToolLoopConfigurationError(
            f"max_iterations must be >= 1, got {config.max_iterations}"
        )

    provider = config.provider
    registry = config.tools
    model = config.model or provider.get_default_model()
    definitions = registry.get_tool_definitions()
    trace_logger = config.trace_logger
    context = ToolExecutionContext(channel=channel, chat_id=chat_id, cancel_event=cancel_event)

    conversation = _build_initial_conversation(config, list(messages))
    last_content = ""
    iteration = 0

    while iteration < config.max_iterations:
        iteration += 1
        _check_cancelled(cancel_event, iteration, "model exchange")

        logger.info(
            "Tool loop iter %d/%d: model=%s messages=%d",
            iteration, config.max_iterations, model, len(conversation),
        )
        response = provider.chat(conversation, definitions, model, dict(config.options))

        extraction = _resolve_response_tool_calls(response.content, response.tool_calls)
        last_content = extraction.visible_content

        if not extraction.has_tool_calls:
            logger.info("Tool loop done after %d iteration(s)", iteration)
            _record_iteration_trace(trace_logger, iteration, {
                "status": "final_answer",
                "protocol": extraction.protocol,
                "tool_call_count": 0,
                "content_length": len(extraction.visible_content),
            })
            return ToolLoopResult(
                content=extraction.visible_content,
                iterations=iteration,
                messages=conversation,
            )

        conversation.append(ConversationMessage(
            role=ROLE_ASSISTANT,
            content=extraction.visible_content,
            tool_calls=list(extraction.tool_calls),
        ))

        outcomes: List[Dict[str, Any]] = []
        for call in extraction.tool_calls:
            _check_cancelled(cancel_event, iteration, f"tool {call.name}")
            outcome = _execute_tool_call(registry, call, context, trace_logger)
            conversation.append(ConversationMessage(
                role=ROLE_TOOL,
                content=outcome.for_model,
                tool_call_id=call.id,
            ))
            outcomes.append({"tool": call.name, "id": call.id, "is_error": outcome.is_error})

        _record_iteration_trace(trace_logger, iteration, {
            "status": "tools_executed",
            "protocol": extraction.protocol,
            "tool_call_count": len(extraction.tool_calls),
            "outcomes": outcomes,
        })

    logger.warning("Tool loop exhausted %d iteration(s) without a final answer", iteration)
    raise ToolLoopIterationsExhaustedError(
        iterations_used=iteration,
        last_content=last_content,
        messages=conversation,
    )
