"""Connectors module - external service integrations."""

from threadsmith.connectors.web_search import DuckDuckGoSearch, SearchGateway, SearchResult

__all__ = ["DuckDuckGoSearch", "SearchGateway", "SearchResult"]
