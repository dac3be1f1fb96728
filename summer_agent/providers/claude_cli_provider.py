"""Claude CLI provider: runs the ``claude`` command line tool as a subprocess.

Why: The CLI has no native tool-calling surface.  Tool definitions go into
the system prompt, the conversation is flattened into a single prompt on
stdin, and tool calls are resolved from the reply text with the same
resolver the loop uses, so the loop receives ready-made ``ToolCall`` records.

Expected stdout is the CLI's ``--output-format json`` object::

    {"type": "result", "is_error": false, "result": "...",
     "usage": {"input_tokens": 10, "output_tokens": 5, ...}}
"""

import json
import logging
import subprocess
import time
from typing import Any, Dict, List, Optional

from summer_agent.errors import LLMProviderError
from summer_agent.providers.llm_provider_types_and_messages import (
    FINISH_REASON_STOP,
    FINISH_REASON_TOOL_CALLS,
    ROLE_ASSISTANT,
    ROLE_SYSTEM,
    ROLE_TOOL,
    ROLE_USER,
    ConversationMessage,
    LLMProvider,
    LLMResponse,
    ToolDefinition,
    UsageInfo,
    coerce_token_count,
)
from summer_agent.providers.tool_call_protocol_resolver import resolve_tool_calls
from summer_agent.tools.tool_instruction_prompt_builder import build_tool_instruction_prompt

logger = logging.getLogger(__name__)

CLI_DEFAULT_MODEL = "claude-code"


class ClaudeCliProvider(LLMProvider):
    """LLM provider backed by ``claude -p --output-format json``."""

    provider_name = "claude_cli"

    def __init__(
        self,
        workspace: str = "",
        command: str = "claude",
        timeout: Optional[float] = None,
        trace_logger: Optional[Any] = None,
    ):
        self.command = command
        self.workspace = workspace
        self.timeout = timeout
        self.trace_logger = trace_logger

    def get_default_model(self) -> str:
        return CLI_DEFAULT_MODEL

    # -- prompt construction ----------------------------------------------

    def build_command_args(self, system_prompt: str, model: str) -> List[str]:
        args = [self.command, "-p", "--output-format", "json",
                "--dangerously-skip-permissions", "--no-chrome"]
        if system_prompt:
            args.extend(["--system-prompt", system_prompt])
        if model and model != CLI_DEFAULT_MODEL:
            args.extend(["--model", model])
        args.append("-")  # read prompt from stdin
        return args

    @staticmethod
    def messages_to_prompt(messages: List[ConversationMessage]) -> str:
        """Flatten non-system messages into ``User:`` / ``Assistant:`` lines."""
        parts: List[str] = []
        for msg in messages:
            if msg.role == ROLE_USER:
                parts.append(f"User: {msg.content}")
            elif msg.role == ROLE_ASSISTANT:
                parts.append(f"Assistant: {msg.content}")
            elif msg.role == ROLE_TOOL:
                parts.append(f"[Tool Result for {msg.tool_call_id}]: {msg.content}")

        if len(parts) == 1 and parts[0].startswith("User: "):
            return parts[0][len("User: "):]
        return "\n".join(parts)

    @staticmethod
    def build_system_prompt(messages: List[ConversationMessage], tools: List[ToolDefinition]) -> str:
        """Combine system messages with the tool instruction section."""
        parts = [msg.content for msg in messages if msg.role == ROLE_SYSTEM]
        if tools:
            parts.append(build_tool_instruction_prompt(tools))
        return "\n\n".join(parts)

    # -- core -------------------------------------------------------------

    def chat(
        self,
        messages: List[ConversationMessage],
        tools: List[ToolDefinition],
        model: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> LLMResponse:
        system_prompt = self.build_system_prompt(messages, tools)
        prompt = self.messages_to_prompt(messages)
        args = self.build_command_args(system_prompt, model)

        start_time = time.time()
        logger.info("Claude CLI call: model=%s prompt_len=%d tools=%d",
                    model or CLI_DEFAULT_MODEL, len(prompt), len(tools))
        try:
            completed = subprocess.run(
                args,
                input=prompt,
                capture_output=True,
                text=True,
                cwd=self.workspace or None,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            self._record_trace(model, prompt, None, start_time, "error", str(exc))
            raise LLMProviderError(f"claude cli error: {exc}", provider=self.provider_name) from exc

        if completed.returncode != 0:
            detail = completed.stderr.strip() or f"exit status {completed.returncode}"
            self._record_trace(model, prompt, None, start_time, "error", detail)
            raise LLMProviderError(f"claude cli error: {detail}", provider=self.provider_name)

        response = self.parse_cli_output(completed.stdout)
        self._record_trace(model, prompt, completed.stdout, start_time, "success")
        return response

    def parse_cli_output(self, output: str) -> LLMResponse:
        try:
            body = json.loads(output)
        except (json.JSONDecodeError, ValueError) as exc:
            raise LLMProviderError(
                f"failed to parse claude cli response: {exc}", provider=self.provider_name,
            ) from exc
        if not isinstance(body, dict):
            raise LLMProviderError("claude cli response is not a JSON object", provider=self.provider_name)

        result_text = body.get("result")
        if not isinstance(result_text, str):
            result_text = ""
        if body.get("is_error"):
            raise LLMProviderError(f"claude cli returned error: {result_text}", provider=self.provider_name)

        extraction = resolve_tool_calls(result_text)
        if extraction.has_tool_calls:
            content, finish_reason = extraction.visible_content, FINISH_REASON_TOOL_CALLS
        else:
            content, finish_reason = result_text.strip(), FINISH_REASON_STOP

        return LLMResponse(
            content=content,
            tool_calls=extraction.tool_calls,
            finish_reason=finish_reason,
            usage=self._parse_usage(body.get("usage")),
        )

    @staticmethod
    def _parse_usage(raw_usage: Any) -> Optional[UsageInfo]:
        if not isinstance(raw_usage, dict):
            return None
        input_tokens = coerce_token_count(raw_usage.get("input_tokens"))
        output_tokens = coerce_token_count(raw_usage.get("output_tokens"))
        if input_tokens <= 0 and output_tokens <= 0:
            return None
        prompt_tokens = (
            input_tokens
            + coerce_token_count(raw_usage.get("cache_creation_input_tokens"))
            + coerce_token_count(raw_usage.get("cache_read_input_tokens"))
        )
        return UsageInfo(
            prompt_tokens=prompt_tokens,
            completion_tokens=output_tokens,
            total_tokens=prompt_tokens + output_tokens,
        )

    def _record_trace(
        self,
        model: str,
        prompt: str,
        output: Optional[str],
        start_time: float,
        status: str,
        error: str = "",
    ) -> None:
        if self.trace_logger and hasattr(self.trace_logger, "record_llm_api_call"):
            self.trace_logger.record_llm_api_call(
                provider=self.provider_name,
                model=model or CLI_DEFAULT_MODEL,
                request_payload={"prompt": prompt},
                response_payload=output,
                elapsed_ms=int((time.time() - start_time) * 1000),
                status=status,
                error=error,
            )
