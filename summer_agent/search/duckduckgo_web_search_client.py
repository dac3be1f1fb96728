"""DuckDuckGo web search client: free, no API key required.

Why: The ``web_search`` tool needs a backend that works out of the box.
DuckDuckGo's HTML lite endpoint returns stable results without quota, and
its markup is simple enough to locate with regular expressions; BeautifulSoup
then turns each title and snippet fragment into plain, entity-decoded text.
"""

import logging
import re as _re
import time
from typing import Any, List, Optional
from urllib.parse import unquote as _unquote

import requests
from bs4 import BeautifulSoup

from summer_agent.search.web_search_backend_interface import (
    WebSearchBackend,
    WebSearchHit,
    WebSearchResponse,
)

logger = logging.getLogger(__name__)

DUCKDUCKGO_HTML_SEARCH_URL = "https://html.duckduckgo.com/html/"
USER_AGENT = "Mozilla/5.0 (compatible; SummerAgent/1.0)"


def _fragment_text(html_fragment: str) -> str:
    return BeautifulSoup(html_fragment, "lxml").get_text(" ", strip=True)


def parse_duckduckgo_html_results(html_text: str) -> List[WebSearchHit]:
    """Parse DuckDuckGo HTML lite results into hits, in page order.

    Links carry ``class="result__a"`` and snippets ``class="result__snippet"``.
    Result URLs are wrapped in a ``//duckduckgo.com/l/?uddg=<encoded>`` redirect.
    """
    hits: List[WebSearchHit] = []

    matches = _re.findall(
        r'class="result__a"[^>]*href="([^"]+)"[^>]*>(.*?)</a>'
        r'.*?class="result__snippet"[^>]*>(.*?)</(?:td|span|a)',
        html_text, _re.DOTALL,
    )
    for raw_url, title_html, snippet_html in matches:
        title = _fragment_text(title_html)
        snippet = _fragment_text(snippet_html)

        url = raw_url
        uddg_match = _re.search(r"uddg=([^&]+)", raw_url)
        if uddg_match:
            url = _unquote(uddg_match.group(1))

        if title or snippet:
            hits.append(WebSearchHit(title=title, url=url, snippet=snippet))

    return hits


class DuckDuckGoWebSearchClient(WebSearchBackend):
    """DuckDuckGo web search via the HTML lite endpoint."""

    engine_name = "duckduckgo"

    def __init__(self, timeout: int = 15, trace_logger: Optional[Any] = None):
        super().__init__(trace_logger)
        self.timeout = timeout

    def search(self, query: str, max_results: int) -> WebSearchResponse:
        start_time = time.time()
        logger.info("DuckDuckGo search: query=%s", query[:80])

        try:
            response = requests.post(
                DUCKDUCKGO_HTML_SEARCH_URL,
                data={"q": query},
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
            response.raise_for_status()
            html_text = response.text
        except requests.RequestException as exc:
            logger.error("DuckDuckGo search error: %s", exc)
            self._record_trace(query, 0, start_time, status="error", error=str(exc))
            return WebSearchResponse(query=query, engine=self.engine_name, error=str(exc))

        hits = parse_duckduckgo_html_results(html_text)[:max(0, max_results)]
        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.info("DuckDuckGo search ok: elapsed_ms=%d query=%s results=%d",
                    elapsed_ms, query[:80], len(hits))
        self._record_trace(query, len(hits), start_time, status="success")
        return WebSearchResponse(query=query, engine=self.engine_name, hits=hits)

    def _record_trace(self, query: str, count: int, start_time: float, status: str, error: str = "") -> None:
        if self.trace_logger and hasattr(self.trace_logger, "record_event"):
            self.trace_logger.record_event(
                "search_api_call",
                f"engine={self.engine_name} q='{query[:80]}' results={count} status={status}",
                details={
                    "elapsed_ms": int((time.time() - start_time) * 1000),
                    "error": error,
                },
            )
