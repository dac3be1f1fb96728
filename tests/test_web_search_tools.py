"""Tests for the web_search tool and the DuckDuckGo HTML backend."""

import requests

from summer_agent.search import duckduckgo_web_search_client
from summer_agent.search.duckduckgo_web_search_client import (
    DuckDuckGoWebSearchClient,
    parse_duckduckgo_html_results,
)
from summer_agent.search.web_search_backend_interface import (
    WebSearchBackend,
    WebSearchHit,
    WebSearchResponse,
)
from summer_agent.tools.tool_base_and_registry import ToolExecutionContext
from summer_agent.tools.web_search_tools import WebSearchTool

RESULT_HTML = """
<div class="result">
  <a rel="nofollow" class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fpage&amp;rut=abc">Example <b>Page</b></a>
  <a class="result__snippet" href="#">An <b>example</b> snippet.</a>
</div>
<div class="result">
  <a rel="nofollow" class="result__a" href="https://direct.example.org/">Direct</a>
  <td class="result__snippet">Second snippet</td>
</div>
"""


class _StaticBackend(WebSearchBackend):
    engine_name = "static"

    def __init__(self, hits=(), error=""):
        super().__init__()
        self.hits = list(hits)
        self.error = error
        self.queries = []

    def search(self, query, max_results):
        self.queries.append((query, max_results))
        return WebSearchResponse(query=query, engine=self.engine_name, hits=self.hits, error=self.error)


def test_parse_duckduckgo_html_results():
    hits = parse_duckduckgo_html_results(RESULT_HTML)
    assert hits == [
        WebSearchHit(title="Example Page", url="https://example.com/page", snippet="An example snippet."),
        WebSearchHit(title="Direct", url="https://direct.example.org/", snippet="Second snippet"),
    ]


def test_client_reports_transport_error(monkeypatch):
    def _post(*args, **kwargs):
        raise requests.Timeout("slow")

    monkeypatch.setattr(duckduckgo_web_search_client.requests, "post", _post)
    response = DuckDuckGoWebSearchClient().search("q", 5)
    assert response.hits == []
    assert not response.ok
    assert "slow" in response.error
    assert response.engine == "duckduckgo"


def test_tool_formats_and_limits_results():
    backend = _StaticBackend(hits=[
        WebSearchHit(title=f"T{i}", url=f"https://e.com/{i}", snippet="snippet") for i in range(8)
    ])
    outcome = WebSearchTool(backend).execute({"query": " rust ", "count": 2}, ToolExecutionContext())

    assert backend.queries == [("rust", 2)]
    assert outcome.for_observer == "2 static result(s) for: rust"
    assert outcome.for_model.startswith("Web results for: rust")
    assert "2. T1" in outcome.for_model
    assert "3. T2" not in outcome.for_model


def test_tool_error_and_empty_results():
    failing = WebSearchTool(_StaticBackend(error="blocked"))
    outcome = failing.execute({"query": "x"}, ToolExecutionContext())
    assert outcome.is_error and "blocked" in outcome.for_model

    empty = WebSearchTool(_StaticBackend())
    assert empty.execute({"query": "x"}, ToolExecutionContext()).for_model == "No web results for: x"


def test_tool_without_backend():
    outcome = WebSearchTool().execute({"query": "x"}, ToolExecutionContext())
    assert outcome.is_error


def test_parse_decodes_html_entities():
    html = (
        '<a class="result__a" href="https://att.example/">AT&amp;T <b>Labs</b></a>'
        '<a class="result__snippet" href="#">Research &quot;lab&quot;</a>'
    )
    (hit,) = parse_duckduckgo_html_results(html)
    assert hit.title == "AT&T Labs"
    assert hit.snippet == 'Research "lab"'


class _FakeHtmlResponse:
    status_code = 200
    text = RESULT_HTML

    def raise_for_status(self):
        pass


def test_client_caps_hits_and_traces_the_query(monkeypatch):
    events = []

    class _Trace:
        def record_event(self, event_type, summary, details=None):
            events.append((event_type, summary))

    monkeypatch.setattr(
        duckduckgo_web_search_client.requests, "post", lambda *a, **kw: _FakeHtmlResponse(),
    )
    response = DuckDuckGoWebSearchClient(trace_logger=_Trace()).search("q", 1)

    assert response.ok
    assert [h.title for h in response.hits] == ["Example Page"]
    assert events == [("search_api_call", "engine=duckduckgo q='q' results=1 status=success")]
