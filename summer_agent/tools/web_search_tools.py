"""Web search tool: lets the model search the web through a search backend."""

import logging
from typing import Any, Dict, Optional

from summer_agent.search.web_search_backend_interface import WebSearchBackend
from summer_agent.tools.tool_base_and_registry import ToolBase, ToolExecutionContext, ToolOutcome

logger = logging.getLogger(__name__)

DEFAULT_WEB_RESULTS = 5
MAX_WEB_RESULTS = 10
SNIPPET_MAX_CHARS = 300


class WebSearchTool(ToolBase):
    """Search the web and return titles, URLs and snippets."""

    name = "web_search"
    description = "Search the web for current information. Returns titles, URLs and snippets."
    parameters_schema = {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Search query",
            },
            "count": {
                "type": "integer",
                "description": f"Number of results (default: {DEFAULT_WEB_RESULTS}, max: {MAX_WEB_RESULTS})",
            },
        },
        "required": ["query"],
    }

    def __init__(self, backend: Optional[WebSearchBackend] = None) -> None:
        self._backend = backend

    def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> ToolOutcome:
        query = args.get("query", "").strip()
        if not query:
            return ToolOutcome.error("query is required")
        if self._backend is None:
            return ToolOutcome.error("web search is not available")

        count = int(args.get("count") or DEFAULT_WEB_RESULTS)
        count = max(1, min(count, MAX_WEB_RESULTS))

        response = self._backend.search(query, count)
        if not response.ok:
            logger.warning("web_search via %s failed: %s", response.engine, response.error)
            return ToolOutcome.error(f"web_search failed: {response.error}")
        if not response.hits:
            return ToolOutcome.ok(f"No web results for: {query}")

        shown = response.hits[:count]
        parts = [f"Web results for: {query}\n"]
        for idx, hit in enumerate(shown, 1):
            parts.append(
                f"{idx}. {hit.title or 'Untitled'}\n"
                f"   URL: {hit.url}\n"
                f"   {hit.snippet[:SNIPPET_MAX_CHARS]}"
            )
        return ToolOutcome(
            for_model="\n".join(parts),
            for_observer=f"{len(shown)} {response.engine} result(s) for: {query}",
        )
