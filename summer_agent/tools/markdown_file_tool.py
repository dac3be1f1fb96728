"""Markdown report tool: write a .md file and send it to the current chat."""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from summer_agent.bus.outbound_message_bus import MessageBus, OutboundMessage
from summer_agent.tools.filesystem_tools import resolve_workspace_path
from summer_agent.tools.tool_base_and_registry import ToolBase, ToolExecutionContext, ToolOutcome

logger = logging.getLogger(__name__)

DEFAULT_CAPTION = "Here is your markdown file."


class MarkdownFileTool(ToolBase):
    """Create a markdown file and optionally publish it to the active chat."""

    name = "markdown_file"
    description = (
        "Create a markdown (.md) file and optionally send it to the current chat "
        "(Telegram supported)"
    )
    parameters_schema = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path to markdown file (defaults to reports/summary-<timestamp>.md)",
            },
            "content": {
                "type": "string",
                "description": "Markdown content to write",
            },
            "send": {
                "type": "boolean",
                "description": "Whether to send the file to current chat after writing (default: true)",
            },
            "caption": {
                "type": "string",
                "description": "Optional caption when sending the file",
            },
        },
        "required": ["content"],
    }

    def __init__(
        self,
        workspace: Union[str, Path],
        restrict: bool = True,
        message_bus: Optional[MessageBus] = None,
    ) -> None:
        self._workspace = Path(workspace)
        self._restrict = restrict
        self._message_bus = message_bus

    def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> ToolOutcome:
        content = args.get("content")
        if not isinstance(content, str):
            return ToolOutcome.error("content is required")

        path = args.get("path") or str(Path("reports") / f"summary-{int(time.time())}.md")
        if not path.lower().endswith(".md"):
            path += ".md"

        try:
            target = resolve_workspace_path(path, self._workspace, self._restrict)
        except ValueError as exc:
            return ToolOutcome.error(str(exc))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            return ToolOutcome.error(f"failed to write markdown file: {exc}")

        send = args.get("send", True)
        if not send:
            return ToolOutcome.silent_result(f"Markdown file created: {target}")

        if self._message_bus is None:
            return ToolOutcome.error("message bus is not configured for sending files")
        if not context.channel or not context.chat_id:
            return ToolOutcome.error("no active channel/chat context to send file")

        self._message_bus.publish_outbound(OutboundMessage(
            channel=context.channel,
            chat_id=context.chat_id,
            content=args.get("caption") or DEFAULT_CAPTION,
            file_path=str(target),
            file_name=target.name,
        ))
        return ToolOutcome.silent_result(f"Markdown file created and sent: {target}")
