"""Workspace file tools: write_file and append_file.

Relative paths are resolved against the workspace directory.  When the
workspace is restricted, any path that resolves outside it (absolute paths,
``..`` segments, symlinks) is refused.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Union

from summer_agent.tools.tool_base_and_registry import ToolBase, ToolExecutionContext, ToolOutcome

logger = logging.getLogger(__name__)


def resolve_workspace_path(path: str, workspace: Union[str, Path], restrict: bool) -> Path:
    """Resolve ``path`` against ``workspace``.

    Raises ValueError for an empty path, or for a path outside the workspace
    when ``restrict`` is set.
    """
    if not path or not path.strip():
        raise ValueError("path is required")
    workspace_dir = Path(workspace).expanduser().resolve()
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = workspace_dir / candidate
    resolved = candidate.resolve()

    if restrict and resolved != workspace_dir and workspace_dir not in resolved.parents:
        raise ValueError(f"access denied: {path} is outside the workspace")
    return resolved


class _WorkspaceFileTool(ToolBase):
    parameters_schema = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "File path (relative paths are inside the workspace)",
            },
            "content": {
                "type": "string",
                "description": "Text to write",
            },
        },
        "required": ["path", "content"],
    }

    def __init__(self, workspace: Union[str, Path], restrict: bool = True) -> None:
        self._workspace = Path(workspace)
        self._restrict = restrict

    def _write(self, args: Dict[str, Any], mode: str) -> ToolOutcome:
        try:
            target = resolve_workspace_path(args["path"], self._workspace, self._restrict)
        except ValueError as exc:
            return ToolOutcome.error(str(exc))

        content = args["content"]
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, mode, encoding="utf-8") as fh:
                fh.write(content)
        except OSError as exc:
            return ToolOutcome.error(f"failed to write {target}: {exc}")

        logger.info("%s: path=%s chars=%d", self.name, target, len(content))
        return ToolOutcome.silent_result(f"{'Appended' if mode == 'a' else 'Wrote'} {len(content)} chars to {target}")


class WriteFileTool(_WorkspaceFileTool):
    name = "write_file"
    description = "Create or overwrite a text file in the workspace."

    def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> ToolOutcome:
        return self._write(args, "w")


class AppendFileTool(_WorkspaceFileTool):
    name = "append_file"
    description = "Append text to a file in the workspace, creating it if needed."

    def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> ToolOutcome:
        return self._write(args, "a")
