"""Observability helpers for thread generation.

This module provides the metrics record attached to each generated thread
and consistent logging for parser and generation outcomes.
"""

import logging
from dataclasses import dataclass
from typing import Any


logger = logging.getLogger(__name__)


@dataclass
class GenerationMetrics:
    """Metrics collected during a single thread generation.

    Attributes:
        provider: Name of the model gateway that produced the response
        strategy: Parser strategy that yielded the posts ("marker_scan",
                  "numeric_span", "delimiter_split" or "fallback")
        requested_count: Number of posts asked for after validation
        accepted_count: Number of posts in the finalized thread
        search_result_count: Search results folded into the prompt
        enriched: Whether the enriched prompt variant was used
        elapsed_seconds: Wall-clock duration of the generation
    """
    provider: str
    strategy: str
    requested_count: int
    accepted_count: int
    search_result_count: int = 0
    enriched: bool = False
    elapsed_seconds: float = 0.0

    @property
    def used_fallback(self) -> bool:
        """True when no parsing strategy succeeded."""
        return self.strategy == "fallback"

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "provider": self.provider,
            "strategy": self.strategy,
            "requestedCount": self.requested_count,
            "acceptedCount": self.accepted_count,
            "searchResultCount": self.search_result_count,
            "enriched": self.enriched,
            "elapsedSeconds": round(self.elapsed_seconds, 3),
        }


def log_strategy_outcome(strategy: str, count: int) -> None:
    """Log how many posts a parser strategy accepted.

    Example:
        >>> log_strategy_outcome("marker_scan", 6)
        # Logs: "Parser strategy 'marker_scan': 6 posts"
    """
    logger.debug(f"Parser strategy '{strategy}': {count} posts")


def log_generation_metrics(metrics: GenerationMetrics) -> None:
    """Log the summary line for a finished generation."""
    if metrics.accepted_count < metrics.requested_count:
        logger.warning(
            f"Only parsed {metrics.accepted_count} posts instead of "
            f"{metrics.requested_count} (strategy '{metrics.strategy}')"
        )

    logger.info(
        f"Generated {metrics.accepted_count}/{metrics.requested_count} posts "
        f"with {metrics.provider} via '{metrics.strategy}' "
        f"(enriched={metrics.enriched}, search_results={metrics.search_result_count}, "
        f"{metrics.elapsed_seconds:.2f}s)"
    )
