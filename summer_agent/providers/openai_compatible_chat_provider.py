"""OpenAI-compatible chat provider over plain HTTP.

Talks to any ``/v1/chat/completions`` endpoint.  Native ``tool_calls`` in the
reply are normalised into ``ToolCall`` records; replies without them are left
for the loop to resolve from text.  Transport errors and rate limits are
retried here with linear backoff, and whatever survives the retries is
raised as ``LLMProviderError``.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from summer_agent.errors import LLMProviderError
from summer_agent.providers.llm_provider_types_and_messages import (
    FINISH_REASON_STOP,
    FINISH_REASON_TOOL_CALLS,
    ConversationMessage,
    LLMProvider,
    LLMResponse,
    ToolCall,
    ToolDefinition,
    UsageInfo,
    coerce_token_count,
    normalize_tool_call_arguments,
)

logger = logging.getLogger(__name__)

_RATE_LIMIT_STATUS_CODES = (429, 449)


def normalize_native_tool_calls(raw_calls: Any) -> List[ToolCall]:
    """Convert OpenAI ``message.tool_calls`` entries into ToolCall records.

    Entries that are not objects or carry no function name are skipped.
    """
    calls: List[ToolCall] = []
    if not isinstance(raw_calls, list):
        return calls
    for position, raw in enumerate(raw_calls, 1):
        if not isinstance(raw, dict):
            continue
        function = raw.get("function")
        if not isinstance(function, dict):
            continue
        name = function.get("name")
        if not isinstance(name, str) or not name:
            continue
        raw_arguments, arguments = normalize_tool_call_arguments(function.get("arguments"))
        call_id = raw.get("id")
        call_type = raw.get("type")
        calls.append(ToolCall(
            id=call_id if isinstance(call_id, str) and call_id else f"call_{position}",
            name=name,
            arguments=arguments,
            raw_arguments=raw_arguments,
            type=call_type if isinstance(call_type, str) and call_type else "function",
        ))
    return calls


class OpenAICompatibleChatProvider(LLMProvider):
    """LLM provider for any OpenAI-compatible chat-completions endpoint."""

    provider_name = "openai_compatible"

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model_id: str,
        max_retries: int = 3,
        timeout: int = 60,
        temperature: float = 0.0,
        max_tokens: int = 2048,
        retry_backoff_seconds: float = 5.0,
        trace_logger: Optional[Any] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.model_id = model_id
        self.max_retries = max(1, max_retries)
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.retry_backoff_seconds = retry_backoff_seconds
        self.trace_logger = trace_logger

    # -- factory helpers ---------------------------------------------------

    @classmethod
    def from_config(cls, base_model_cfg: dict, trace_logger: Optional[Any] = None) -> Optional["OpenAICompatibleChatProvider"]:
        """Create a provider from the ``base_model`` section of config.yaml.

        Returns ``None`` if required fields are missing.
        """
        api_url = base_model_cfg.get("api_url")
        api_key = base_model_cfg.get("api_key")
        model_id = base_model_cfg.get("model_id")
        if not api_url or not api_key or not model_id:
            return None
        return cls(
            api_url=api_url,
            api_key=api_key,
            model_id=model_id,
            max_retries=int(base_model_cfg.get("max_retries", 3)),
            timeout=int(base_model_cfg.get("timeout", 60)),
            temperature=float(base_model_cfg.get("temperature", 0.0)),
            max_tokens=int(base_model_cfg.get("max_tokens", 2048)),
            trace_logger=trace_logger,
        )

    def get_default_model(self) -> str:
        return self.model_id

    # -- core -------------------------------------------------------------

    def build_payload(
        self,
        messages: List[ConversationMessage],
        tools: List[ToolDefinition],
        model: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        options = options or {}
        payload: Dict[str, Any] = {
            "model": model or self.model_id,
            "messages": [m.to_dict() for m in messages],
            "temperature": options.get("temperature", self.temperature),
            "max_tokens": options.get("max_tokens", self.max_tokens),
        }
        if tools:
            payload["tools"] = [t.to_openai_dict() for t in tools]
            payload["tool_choice"] = "auto"
        return payload

    def chat(
        self,
        messages: List[ConversationMessage],
        tools: List[ToolDefinition],
        model: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> LLMResponse:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = self.build_payload(messages, tools, model, options)
        last_error = ""
        last_status: Optional[int] = None

        for attempt in range(self.max_retries):
            start_time = time.time()
            logger.info(
                "LLM call: model=%s messages=%d tools=%d attempt=%d",
                payload["model"], len(messages), len(tools), attempt + 1,
            )
            try:
                resp = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
                last_status = resp.status_code
                if resp.status_code in _RATE_LIMIT_STATUS_CODES:
                    last_error = f"rate limited (HTTP {resp.status_code})"
                    logger.warning("LLM rate-limited (attempt %d)", attempt + 1)
                    self._sleep_before_retry(attempt)
                    continue
                resp.raise_for_status()
                body = resp.json()
            except (requests.RequestException, ValueError) as exc:
                last_error = str(exc)
                logger.error("LLM error (attempt %d): %s", attempt + 1, exc)
                self._record_trace(payload, None, start_time, "error", last_error)
                self._sleep_before_retry(attempt)
                continue

            self._record_trace(payload, body, start_time, "success")
            return self.parse_response_body(body)

        raise LLMProviderError(
            f"LLM request failed after {self.max_retries} attempt(s): {last_error}",
            provider=self.provider_name,
            status_code=last_status,
        )

    def parse_response_body(self, body: Any) -> LLMResponse:
        """Turn a chat-completions body into an LLMResponse.

        Raises ``LLMProviderError`` when the body does not have the
        ``{"choices": [{"message": {...}}]}`` shape.
        """
        if not isinstance(body, dict):
            raise LLMProviderError(
                f"LLM response is not a JSON object: {str(body)[:400]}",
                provider=self.provider_name,
            )
        choices = body.get("choices") or []
        if not isinstance(choices, list) or not choices:
            raise LLMProviderError(
                f"LLM response has no choices: {str(body)[:400]}",
                provider=self.provider_name,
            )
        choice = choices[0]
        if not isinstance(choice, dict):
            raise LLMProviderError(
                f"LLM response choice is not a JSON object: {str(choice)[:400]}",
                provider=self.provider_name,
            )
        message = choice.get("message") or {}
        if not isinstance(message, dict):
            raise LLMProviderError(
                f"LLM response message is not a JSON object: {str(message)[:400]}",
                provider=self.provider_name,
            )
        tool_calls = normalize_native_tool_calls(message.get("tool_calls"))

        usage = None
        raw_usage = body.get("usage")
        if isinstance(raw_usage, dict):
            usage = UsageInfo(
                prompt_tokens=coerce_token_count(raw_usage.get("prompt_tokens")),
                completion_tokens=coerce_token_count(raw_usage.get("completion_tokens")),
                total_tokens=coerce_token_count(raw_usage.get("total_tokens")),
            )

        finish_reason = choice.get("finish_reason")
        if not isinstance(finish_reason, str) or not finish_reason:
            finish_reason = FINISH_REASON_TOOL_CALLS if tool_calls else FINISH_REASON_STOP
        content = message.get("content")
        return LLMResponse(
            content=content.strip() if isinstance(content, str) else "",
            tool_calls=tool_calls,
            finish_reason=finish_reason,
            usage=usage,
        )

    def _sleep_before_retry(self, attempt: int) -> None:
        if attempt < self.max_retries - 1:
            time.sleep(self.retry_backoff_seconds * (attempt + 1))

    def _record_trace(
        self,
        payload: Dict[str, Any],
        body: Optional[Dict[str, Any]],
        start_time: float,
        status: str,
        error: str = "",
    ) -> None:
        if self.trace_logger and hasattr(self.trace_logger, "record_llm_api_call"):
            self.trace_logger.record_llm_api_call(
                provider=self.provider_name,
                model=payload.get("model", ""),
                request_payload=payload,
                response_payload=body,
                elapsed_ms=int((time.time() - start_time) * 1000),
                status=status,
                error=error,
            )
