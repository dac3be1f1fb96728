"""Search package: web search backends used by the web_search tool."""

from summer_agent.search.duckduckgo_web_search_client import (
    DuckDuckGoWebSearchClient,
    parse_duckduckgo_html_results,
)
from summer_agent.search.web_search_backend_interface import (
    WebSearchBackend,
    WebSearchHit,
    WebSearchResponse,
)

__all__ = [
    "DuckDuckGoWebSearchClient",
    "WebSearchBackend",
    "WebSearchHit",
    "WebSearchResponse",
    "parse_duckduckgo_html_results",
]
