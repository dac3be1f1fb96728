"""Agent runtime builder: load config.yaml and wire provider, tools and bus.

Why: Scripts, tests and future chat adapters all need the same wiring.  This
module builds it once from configuration, without any transport concerns.

Usage::

    from summer_agent.agent_runtime_builder import build_agent_runtime, answer_single_prompt
    runtime = build_agent_runtime()
    result  = answer_single_prompt(runtime, "Summarise the latest papers on ...")
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from summer_agent.bus.outbound_message_bus import MessageBus
from summer_agent.errors import ConfigurationError
from summer_agent.providers.claude_cli_provider import ClaudeCliProvider
from summer_agent.providers.llm_provider_types_and_messages import (
    ROLE_USER,
    ConversationMessage,
    LLMProvider,
)
from summer_agent.providers.openai_compatible_chat_provider import OpenAICompatibleChatProvider
from summer_agent.search.duckduckgo_web_search_client import DuckDuckGoWebSearchClient
from summer_agent.tools.filesystem_tools import AppendFileTool, WriteFileTool
from summer_agent.tools.markdown_file_tool import MarkdownFileTool
from summer_agent.tools.research_search_tools import (
    ArxivSearchTool,
    CrossrefSearchTool,
    DuckDuckGoInstantAnswerTool,
)
from summer_agent.tools.tool_base_and_registry import ToolRegistry
from summer_agent.tools.tool_loop_controller import (
    DEFAULT_MAX_ITERATIONS,
    ToolLoopConfig,
    ToolLoopResult,
    run_tool_loop,
)
from summer_agent.tools.web_search_tools import WebSearchTool
from summer_agent.utils.per_run_tool_loop_trace_logger import PerRunToolLoopTraceLogger

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR / "configs" / "config.yaml"
API_KEY_ENV_VAR = "SUMMER_AGENT_API_KEY"

ALL_TOOL_NAMES = (
    "write_file",
    "append_file",
    "markdown_file",
    "web_search",
    "arxiv_search",
    "crossref_search",
    "ddg_instant_answer",
)


class AgentRuntime:
    """Holds all wired components needed to run the tool loop."""

    def __init__(self, provider: LLMProvider, registry: ToolRegistry, message_bus: MessageBus,
                 config: Dict[str, Any], trace_logger: Optional[PerRunToolLoopTraceLogger] = None):
        self.provider = provider
        self.registry = registry
        self.message_bus = message_bus
        self.config = config
        self.trace_logger = trace_logger

    def build_loop_config(self) -> ToolLoopConfig:
        loop_cfg = self.config.get("tool_loop", {}) or {}
        include_instructions = bool(loop_cfg.get("include_tool_instructions", True))
        if isinstance(self.provider, ClaudeCliProvider):
            # The CLI provider already puts the instructions in --system-prompt.
            include_instructions = False
        return ToolLoopConfig(
            provider=self.provider,
            tools=self.registry,
            model=(self.config.get("base_model", {}) or {}).get("model_id", ""),
            max_iterations=int(loop_cfg.get("max_iterations", DEFAULT_MAX_ITERATIONS)),
            include_tool_instructions=include_instructions,
            trace_logger=self.trace_logger,
        )


def load_agent_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load config.yaml, applying the API key environment override."""
    file_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not file_path.is_absolute():
        file_path = BASE_DIR / file_path
    try:
        with open(file_path, "r", encoding="utf-8") as fh:
            config = yaml.safe_load(fh) or {}
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {file_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {file_path}: {exc}") from exc
    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {file_path} must contain a mapping")

    env_key = os.environ.get(API_KEY_ENV_VAR)
    if env_key:
        config.setdefault("base_model", {})["api_key"] = env_key
    return config


def build_provider(config: Dict[str, Any], trace_logger: Optional[Any] = None) -> LLMProvider:
    base_model = config.get("base_model", {}) or {}
    provider_name = base_model.get("provider", "openai_compatible")
    if provider_name == "claude_cli":
        workspace = (config.get("workspace", {}) or {}).get("path", "")
        return ClaudeCliProvider(
            workspace=str(_resolve_dir(workspace)) if workspace else "",
            command=base_model.get("command", "claude"),
            timeout=base_model.get("timeout"),
            trace_logger=trace_logger,
        )
    if provider_name == "openai_compatible":
        provider = OpenAICompatibleChatProvider.from_config(base_model, trace_logger=trace_logger)
        if provider is None:
            raise ConfigurationError(
                "Cannot create LLM provider: check api_url, api_key and model_id in base_model"
            )
        return provider
    raise ConfigurationError(f"Unknown base_model.provider: {provider_name}")


def build_tool_registry(
    config: Dict[str, Any],
    message_bus: MessageBus,
    trace_logger: Optional[Any] = None,
) -> ToolRegistry:
    """Register the tools listed under ``tools.enabled`` (all tools by default)."""
    workspace_cfg = config.get("workspace", {}) or {}
    workspace = _resolve_dir(workspace_cfg.get("path", "workspace"))
    restrict = bool(workspace_cfg.get("restrict_to_workspace", True))
    enabled: List[str] = list((config.get("tools", {}) or {}).get("enabled") or ALL_TOOL_NAMES)

    factories = {
        "write_file": lambda: WriteFileTool(workspace, restrict),
        "append_file": lambda: AppendFileTool(workspace, restrict),
        "markdown_file": lambda: MarkdownFileTool(workspace, restrict, message_bus),
        "web_search": lambda: WebSearchTool(_build_search_client(trace_logger)),
        "arxiv_search": ArxivSearchTool,
        "crossref_search": CrossrefSearchTool,
        "ddg_instant_answer": DuckDuckGoInstantAnswerTool,
    }

    registry = ToolRegistry()
    for name in enabled:
        factory = factories.get(name)
        if factory is None:
            raise ConfigurationError(f"Unknown tool in tools.enabled: {name}")
        registry.register_tool(factory())
    logger.info("Tool registry ready: %s", registry.get_all_registered_tool_names())
    return registry


def build_agent_runtime(
    config_path: Optional[str] = None,
    provider: Optional[LLMProvider] = None,
    message_bus: Optional[MessageBus] = None,
    config: Optional[Dict[str, Any]] = None,
) -> AgentRuntime:
    """Factory: load config, create the provider, registry, bus and trace logger.

    Pass ``provider`` or ``config`` to override for tests.
    """
    if config is None:
        config = load_agent_config(config_path)

    trace_logger = None
    trace_dir = (config.get("logging", {}) or {}).get("trace_dir")
    if trace_dir:
        trace_logger = PerRunToolLoopTraceLogger.create_for_new_run(_resolve_dir(trace_dir))

    if provider is None:
        provider = build_provider(config, trace_logger)
    if message_bus is None:
        message_bus = MessageBus()
    registry = build_tool_registry(config, message_bus, trace_logger)
    return AgentRuntime(provider, registry, message_bus, config, trace_logger)


def answer_single_prompt(
    runtime: AgentRuntime,
    prompt: str,
    channel: str = "",
    chat_id: str = "",
    cancel_event: Optional[threading.Event] = None,
) -> ToolLoopResult:
    """Run one user prompt through the tool loop."""
    logger.info("Prompt: %s", prompt[:100])
    if runtime.trace_logger is not None and (channel or chat_id):
        runtime.trace_logger.set_session_context(f"{channel}:{chat_id}")
    return run_tool_loop(
        runtime.build_loop_config(),
        [ConversationMessage(role=ROLE_USER, content=prompt)],
        channel=channel,
        chat_id=chat_id,
        cancel_event=cancel_event,
    )


# ── Internal helpers ────────────────────────────────────────────────────

def _resolve_dir(path) -> Path:
    dir_path = Path(path).expanduser()
    if not dir_path.is_absolute():
        dir_path = BASE_DIR / dir_path
    return dir_path


def _build_search_client(trace_logger: Optional[Any]) -> DuckDuckGoWebSearchClient:
    return DuckDuckGoWebSearchClient(trace_logger=trace_logger)
