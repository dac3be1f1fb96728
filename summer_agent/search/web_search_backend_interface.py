"""Web search backend contract and the records it returns."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class WebSearchHit:
    title: str
    url: str
    snippet: str = ""


@dataclass
class WebSearchResponse:
    """Hits for one query; ``error`` is set when the backend failed."""

    query: str
    engine: str
    hits: List[WebSearchHit] = field(default_factory=list)
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


class WebSearchBackend(ABC):
    """A web search engine the ``web_search`` tool can query.

    Backends never raise for transport failures; they return a response
    with ``error`` set so the tool can report it to the model.
    """

    engine_name: str = ""

    def __init__(self, trace_logger: Optional[Any] = None) -> None:
        self.trace_logger = trace_logger

    @abstractmethod
    def search(self, query: str, max_results: int) -> WebSearchResponse:
        ...
