"""DuckDuckGo web search connector.

Queries the DuckDuckGo instant-answer API with an escalating series of
queries (key terms, then a broad domain query, then the bare core
concept) and falls back to scraping the HTML results page when the API
has nothing. Search is best-effort: every failure is logged and yields an
empty list.
"""

from dataclasses import dataclass
import logging
import re
from typing import Any, Protocol, runtime_checkable

import requests
from bs4 import BeautifulSoup

from threadsmith.config import Settings
from threadsmith.engines.domain_classifier import get_domain_by_id
from threadsmith.engines.prompt_builder import normalize_topic


logger = logging.getLogger(__name__)


USER_AGENT = "Threadsmith/1.0 (Thread Research)"

ABSTRACT_SNIPPET_LIMIT = 300
RELATED_SNIPPET_LIMIT = 200
MAX_RELATED_TOPICS = 3

# Instant answers shorter than this are usually disambiguation stubs
MIN_ANSWER_LENGTH = 20

MAX_KEY_TERMS = 3

DEFAULT_BROAD_TERM = "database"

# Concepts recognized in a topic, in priority order
CORE_CONCEPTS = (
    "index",
    "isolation",
    "query",
    "performance",
    "optimization",
    "schema",
    "transaction",
    "column",
    "table",
    "backup",
    "migration",
    "replication",
    "security",
)

NON_WORD_PATTERN = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class SearchResult:
    """A single web search finding.

    Attributes:
        title: Result heading
        snippet: Short excerpt, truncated for prompt use
        url: Source URL (may be empty)
    """
    title: str
    snippet: str
    url: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "snippet": self.snippet, "url": self.url}


@runtime_checkable
class SearchGateway(Protocol):
    """Protocol for web search providers.

    ``search`` is blocking and must never raise; callers run it in a
    worker thread under their own timeout.
    """

    def search(self, query: str, domain_hint: str | None = None) -> list[SearchResult]:
        ...


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, marking the cut with an ellipsis."""
    return text[:limit] + ("..." if len(text) > limit else "")


def extract_key_terms(topic: str) -> str:
    """Build a short query from the first few significant words of a topic.

    Example:
        >>> extract_key_terms("I want to write about database isolation levels")
        'database isolation levels'
    """
    words = NON_WORD_PATTERN.sub(" ", normalize_topic(topic).lower()).split()
    return " ".join([word for word in words if len(word) > 3][:MAX_KEY_TERMS])


def extract_core_concept(topic: str) -> str | None:
    """Return the first recognized core concept mentioned in the topic."""
    text = normalize_topic(topic).lower()
    for concept in CORE_CONCEPTS:
        if concept in text:
            return concept
    return None


def broad_term_for(domain_hint: str | None) -> str:
    """Pick the umbrella term used for broad queries."""
    domain = get_domain_by_id(domain_hint)
    if domain is not None:
        return domain.search_terms[0]
    return DEFAULT_BROAD_TERM


def build_queries(topic: str, domain_hint: str | None = None) -> list[str]:
    """Build the escalation series of distinct, non-trivial queries.

    Example:
        >>> build_queries("database isolation levels")
        ['database isolation levels', 'database isolation', 'isolation']
    """
    broad_term = broad_term_for(domain_hint)
    concept = extract_core_concept(topic)

    candidates = [
        extract_key_terms(topic),
        f"{broad_term} {concept}" if concept else broad_term,
        concept or broad_term,
    ]

    queries: list[str] = []
    for query in candidates:
        if len(query) >= 2 and query not in queries:
            queries.append(query)
    return queries


def parse_instant_answer(data: dict[str, Any], query: str) -> list[SearchResult]:
    """Convert an instant-answer JSON payload into search results."""
    results: list[SearchResult] = []

    abstract = data.get("Abstract") or ""
    if len(abstract) > MIN_ANSWER_LENGTH:
        results.append(SearchResult(
            title=data.get("Heading") or f"About {query}",
            snippet=truncate(abstract, ABSTRACT_SNIPPET_LIMIT),
            url=data.get("AbstractURL") or "",
        ))

    related = data.get("RelatedTopics")
    if isinstance(related, list):
        for topic in related[:MAX_RELATED_TOPICS]:
            if not isinstance(topic, dict):
                continue
            text = topic.get("Text") or ""
            if len(text) <= MIN_ANSWER_LENGTH:
                continue
            results.append(SearchResult(
                title=text.split(" - ")[0] or f"Related: {query}",
                snippet=truncate(text, RELATED_SNIPPET_LIMIT),
                url=topic.get("FirstURL") or "",
            ))

    return results


def parse_html_results(html: str, max_results: int) -> list[SearchResult]:
    """Extract results from a DuckDuckGo HTML results page."""
    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []

    for result in soup.select("div.result"):
        link = result.select_one("a.result__a") or result.find("a", href=True)
        if not link:
            continue
        href = link.get("href") or ""
        title = link.get_text(" ", strip=True)
        if not title:
            continue
        snippet_el = result.select_one(".result__snippet")
        snippet = snippet_el.get_text(" ", strip=True) if snippet_el else ""
        if len(snippet) <= MIN_ANSWER_LENGTH:
            continue
        results.append(SearchResult(
            title=title,
            snippet=truncate(snippet, RELATED_SNIPPET_LIMIT),
            url=href,
        ))
        if len(results) >= max_results:
            break

    return results


class DuckDuckGoSearch:
    """Search gateway backed by DuckDuckGo.

    Attributes:
        settings: Configuration (endpoints, timeout, result cap)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()

    def search(self, query: str, domain_hint: str | None = None) -> list[SearchResult]:
        """Run the query escalation and return at most ``search_max_results`` results.

        Never raises; any failure is logged and yields an empty list.
        """
        max_results = self.settings.search_max_results
        try:
            queries = build_queries(query, domain_hint)
            logger.info(f"Starting web search for '{query}' with {len(queries)} query strategies")

            for index, search_query in enumerate(queries, start=1):
                logger.debug(f"Search strategy {index}: '{search_query}'")
                results = self._instant_answer(search_query)
                if results:
                    logger.info(f"Search for '{search_query}' returned {len(results)} results")
                    return results[:max_results]

            if queries:
                results = self._html_results(queries[0])
                logger.info(f"HTML search for '{queries[0]}' returned {len(results)} results")
                return results[:max_results]

            return []
        except Exception as e:
            logger.warning(f"Web search failed, continuing without search results: {e}")
            return []

    def _get(self, url: str, params: dict[str, str], accept: str) -> requests.Response | None:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": accept,
        }
        try:
            response = requests.get(
                url,
                params=params,
                headers=headers,
                timeout=self.settings.search_timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning(f"Search request to {url} failed: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Search endpoint {url} returned {response.status_code}")
            return None
        return response

    def _instant_answer(self, query: str) -> list[SearchResult]:
        params = {
            "q": query,
            "format": "json",
            "no_html": "1",
            "skip_disambig": "1",
        }
        response = self._get(self.settings.search_api_url, params, "application/json")
        if response is None:
            return []

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Search response for '{query}' was not valid JSON: {e}")
            return []

        if not isinstance(data, dict):
            return []
        return parse_instant_answer(data, query)

    def _html_results(self, query: str) -> list[SearchResult]:
        response = self._get(
            self.settings.search_html_url,
            {"q": query, "kl": "us-en"},
            "text/html,application/xhtml+xml",
        )
        if response is None or not response.text:
            return []
        return parse_html_results(response.text, self.settings.search_max_results)
