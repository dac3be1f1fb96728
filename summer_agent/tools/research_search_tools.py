"""Research lookup tools: arXiv, Crossref and DuckDuckGo Instant Answer.

Tools defined here:
  1. ArxivSearchTool: paper search over the arXiv Atom API
  2. CrossrefSearchTool: DOI lookup or metadata search over the Crossref API
  3. DuckDuckGoInstantAnswerTool: quick facts and definitions

Network and parse failures are returned as error outcomes so the model can
choose another tool.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List
from urllib.parse import quote

import requests

from summer_agent.tools.tool_base_and_registry import ToolBase, ToolExecutionContext, ToolOutcome

logger = logging.getLogger(__name__)

ARXIV_API_URL = "http://export.arxiv.org/api/query"
CROSSREF_WORKS_URL = "https://api.crossref.org/works"
DDG_INSTANT_ANSWER_URL = "https://api.duckduckgo.com/"

CROSSREF_USER_AGENT = "SummerAgent (mailto:research@example.com)"
DEFAULT_RESULTS = 5
MAX_RESULTS = 20
ABSTRACT_MAX_CHARS = 300

_ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}


def _clamp_result_count(value: Any) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_RESULTS
    if count <= 0:
        return DEFAULT_RESULTS
    return min(count, MAX_RESULTS)


def _collapse_whitespace(text: str) -> str:
    return " ".join((text or "").split())


# ---------------------------------------------------------------------------
# 1. arXiv
# ---------------------------------------------------------------------------

def parse_arxiv_atom_feed(xml_text: str) -> List[Dict[str, str]]:
    """Parse an arXiv Atom feed into ``[{title, authors, abstract, published, link, pdf}]``.

    Entries without a title are dropped.  Raises ``ET.ParseError`` on
    malformed XML.
    """
    root = ET.fromstring(xml_text)
    results: List[Dict[str, str]] = []
    for entry in root.findall("atom:entry", _ATOM_NS):
        title = _collapse_whitespace(entry.findtext("atom:title", default="", namespaces=_ATOM_NS))
        if not title:
            continue
        authors = [
            _collapse_whitespace(author.findtext("atom:name", default="", namespaces=_ATOM_NS))
            for author in entry.findall("atom:author", _ATOM_NS)
        ]
        link = pdf = ""
        for link_el in entry.findall("atom:link", _ATOM_NS):
            link_type = link_el.get("type", "")
            if link_type == "text/html":
                link = link_el.get("href", "")
            elif link_type == "application/pdf":
                pdf = link_el.get("href", "")
        results.append({
            "title": title,
            "authors": ", ".join(a for a in authors if a),
            "abstract": _collapse_whitespace(entry.findtext("atom:summary", default="", namespaces=_ATOM_NS)),
            "published": entry.findtext("atom:published", default="", namespaces=_ATOM_NS).strip(),
            "link": link,
            "pdf": pdf,
        })
    return results


class ArxivSearchTool(ToolBase):
    name = "arxiv_search"
    description = (
        "Search arXiv for research papers. Returns paper titles, authors, abstracts, "
        "and PDF links. Use this for academic research and scientific papers."
    )
    parameters_schema = {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Search query (e.g., 'machine learning', 'quantum computing')",
            },
            "max_results": {
                "type": "integer",
                "description": "Maximum number of results to return (default: 5, max: 20)",
                "minimum": 1,
                "maximum": MAX_RESULTS,
            },
        },
        "required": ["query"],
    }

    def __init__(self, timeout: int = 15) -> None:
        self.timeout = timeout

    def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> ToolOutcome:
        query = args.get("query", "")
        if not query:
            return ToolOutcome.error("query is required")
        max_results = _clamp_result_count(args.get("max_results", DEFAULT_RESULTS))

        try:
            response = requests.get(
                ARXIV_API_URL,
                params={"search_query": f"all:{query}", "start": 0, "max_results": max_results},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            return ToolOutcome.error(f"request failed: {exc}")

        try:
            results = parse_arxiv_atom_feed(response.text)
        except ET.ParseError as exc:
            return ToolOutcome.error(f"failed to parse results: {exc}")

        if not results:
            return ToolOutcome.ok(f"No results found on arXiv for: {query}")

        lines = [f"arXiv Results for: {query}\n"]
        for idx, result in enumerate(results, 1):
            lines.append(f"{idx}. {result['title']}")
            lines.append(f"   Authors: {result['authors']}")
            lines.append(f"   Published: {result['published']}")
            lines.append(f"   Link: {result['link']}")
            lines.append(f"   PDF: {result['pdf']}")
            abstract = result["abstract"]
            if abstract:
                if len(abstract) > ABSTRACT_MAX_CHARS:
                    abstract = abstract[:ABSTRACT_MAX_CHARS - 3] + "..."
                lines.append(f"   Abstract: {abstract}")
            lines.append("")
        return ToolOutcome.ok("\n".join(lines))


# ---------------------------------------------------------------------------
# 2. Crossref
# ---------------------------------------------------------------------------

def format_crossref_item(idx: int, item: Dict[str, Any]) -> List[str]:
    titles = item.get("title") or []
    title = titles[0] if titles else "Untitled"

    authors = [
        f"{a.get('given', '')} {a.get('family', '')}".strip()
        for a in item.get("author") or []
    ]
    author_str = ", ".join(a for a in authors if a) or "Unknown"

    year = "Unknown"
    date_parts = (item.get("published-print") or item.get("published") or {}).get("date-parts") or []
    if date_parts and date_parts[0] and date_parts[0][0] is not None:
        year = str(date_parts[0][0])

    journals = item.get("container-title") or []

    lines = [f"{idx}. {title}", f"   Authors: {author_str}"]
    if journals:
        lines.append(f"   Journal: {journals[0]}")
    lines.append(f"   Year: {year}")
    lines.append(f"   DOI: {item.get('DOI', '')}")
    if item.get("URL"):
        lines.append(f"   URL: {item['URL']}")
    citations = item.get("is-referenced-by-count") or 0
    if citations > 0:
        lines.append(f"   Citations: {citations}")
    lines.append("")
    return lines


class CrossrefSearchTool(ToolBase):
    name = "crossref_search"
    description = (
        "Search Crossref for paper metadata, DOI lookup, and citation information. "
        "Use this for published academic papers and journal articles."
    )
    parameters_schema = {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Search query or DOI (e.g., '10.1038/nature12373' or 'deep learning')",
            },
            "rows": {
                "type": "integer",
                "description": "Number of results to return (default: 5, max: 20)",
                "minimum": 1,
                "maximum": MAX_RESULTS,
            },
        },
        "required": ["query"],
    }

    def __init__(self, timeout: int = 15) -> None:
        self.timeout = timeout

    def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> ToolOutcome:
        query = args.get("query", "")
        if not query:
            return ToolOutcome.error("query is required")
        rows = _clamp_result_count(args.get("rows", DEFAULT_RESULTS))

        if query.startswith("10."):
            url, params = f"{CROSSREF_WORKS_URL}/{quote(query, safe='/')}", None
        else:
            url, params = CROSSREF_WORKS_URL, {"query": query, "rows": rows}

        try:
            response = requests.get(
                url, params=params,
                headers={"User-Agent": CROSSREF_USER_AGENT},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            return ToolOutcome.error(f"request failed: {exc}")
        if response.status_code != 200:
            return ToolOutcome.error(f"API error: {response.status_code} - {response.text[:300]}")

        try:
            message = response.json().get("message") or {}
        except ValueError as exc:
            return ToolOutcome.error(f"failed to parse response: {exc}")

        # A DOI lookup returns a single work instead of a list of items.
        items = message.get("items") if "items" in message else ([message] if message else [])
        if not items:
            return ToolOutcome.ok(f"No results found on Crossref for: {query}")

        lines = [f"Crossref Results for: {query}\n"]
        for idx, item in enumerate(items, 1):
            lines.extend(format_crossref_item(idx, item))
        return ToolOutcome.ok("\n".join(lines))


# ---------------------------------------------------------------------------
# 3. DuckDuckGo Instant Answer
# ---------------------------------------------------------------------------

class DuckDuckGoInstantAnswerTool(ToolBase):
    name = "ddg_instant_answer"
    description = (
        "Get instant answers from DuckDuckGo for quick facts, definitions, calculations, "
        "and summaries. Great for quick information lookup."
    )
    parameters_schema = {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Query for instant answer (e.g., 'what is photosynthesis', 'define quantum')",
            },
        },
        "required": ["query"],
    }

    def __init__(self, timeout: int = 10) -> None:
        self.timeout = timeout

    def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> ToolOutcome:
        query = args.get("query", "")
        if not query:
            return ToolOutcome.error("query is required")

        try:
            response = requests.get(
                DDG_INSTANT_ANSWER_URL,
                params={"q": query, "format": "json", "no_html": 1, "skip_disambig": 1},
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except requests.RequestException as exc:
            return ToolOutcome.error(f"request failed: {exc}")
        except ValueError as exc:
            return ToolOutcome.error(f"failed to parse response: {exc}")

        lines = [f"DuckDuckGo Instant Answer for: {query}\n"]
        has_content = False

        if result.get("Answer"):
            lines.append(f"Answer: {result['Answer']}")
            has_content = True

        if result.get("AbstractText"):
            lines.append(f"Summary: {result['AbstractText']}")
            if result.get("AbstractSource"):
                lines.append(f"Source: {result['AbstractSource']}")
            if result.get("AbstractURL"):
                lines.append(f"URL: {result['AbstractURL']}")
            has_content = True

        if result.get("Definition"):
            lines.append(f"Definition: {result['Definition']}")
            if result.get("DefinitionURL"):
                lines.append(f"URL: {result['DefinitionURL']}")
            has_content = True

        topics = [t for t in result.get("RelatedTopics") or [] if isinstance(t, dict) and t.get("Text")]
        if topics:
            lines.append("\nRelated Topics:")
            for topic in topics[:5]:
                lines.append(f"- {topic['Text']}")
                if topic.get("FirstURL"):
                    lines.append(f"  {topic['FirstURL']}")
            has_content = True

        if not has_content:
            return ToolOutcome(
                for_model=f"No instant answer available for: {query}. Try using web_search for broader results.",
                for_observer=f"No instant answer available for: {query}",
            )
        return ToolOutcome.ok("\n".join(lines))
