"""Thread data models.

Data Models:
    Post: A single unit of a generated thread
    Thread: Ordered posts plus topic and generation timestamp
    GenerationRequest: Validated input for one generation call
    IntentionAnalysis: Structured judgment about a user topic

Custom Exceptions:
    InvalidRequestError: Raised when a request is missing its topic
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from threadsmith.engines.observability import GenerationMetrics
from threadsmith.engines.prompt_builder import (
    DEFAULT_POST_COUNT,
    MAX_POST_COUNT,
    validate_post_count,
)


class InvalidRequestError(ValueError):
    """Raised when a generation request is invalid (e.g. missing topic)."""

    def __init__(self, message: str = "Topic is required") -> None:
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class Post:
    """A single post within a thread.

    ``character_length`` is derived from ``content`` at construction, so a
    post with new content (``dataclasses.replace``) always carries a fresh
    length. ``total_count`` starts as a placeholder and is back-filled once
    the whole thread is finalized.

    Attributes:
        id: Identifier unique within the thread ("post-<n>").
        content: Display text after cleanup.
        position: 1-based place in the thread.
        total_count: Number of posts in the containing thread (0 until finalized).
        character_length: Length of ``content``.
    """

    id: str
    content: str
    position: int
    total_count: int = 0
    character_length: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "character_length", len(self.content))

    @classmethod
    def create(cls, position: int, content: str) -> "Post":
        """Create an unfinalized post with the sequential id for ``position``."""
        return cls(id=f"post-{position}", content=content, position=position)

    def with_content(self, content: str) -> "Post":
        """Return a copy with new content and a recomputed length."""
        return replace(self, content=content)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "characterLength": self.character_length,
            "position": self.position,
            "totalCount": self.total_count,
        }


def finalize_posts(posts: list[Post], target_count: int) -> list[Post]:
    """Truncate to ``target_count`` and back-fill positions and totals.

    Every returned post has ``position`` equal to its 1-based index, a
    matching ``post-<n>`` id, and ``total_count == max(1, len(result))``.
    """
    kept = posts[:max(target_count, 0)]
    total = max(1, len(kept))
    return [
        replace(post, id=f"post-{index}", position=index, total_count=total)
        for index, post in enumerate(kept, start=1)
    ]


@dataclass
class Thread:
    """Ordered sequence of posts generated from one topic.

    Attributes:
        topic: The originating topic string.
        posts: Posts in display order; never empty.
        generated_at: UTC timestamp of generation.
        metadata: Metrics recorded while generating, if any.
    """

    topic: str
    posts: list[Post]
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: GenerationMetrics | None = None

    def __len__(self) -> int:
        return len(self.posts)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "posts": [post.to_dict() for post in self.posts],
            "topic": self.topic,
            "generatedAt": self.generated_at.isoformat(),
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data


@dataclass(frozen=True)
class GenerationRequest:
    """Validated input for a generation call.

    Attributes:
        topic: Non-empty, trimmed topic.
        context: Optional free-text context.
        tone: Optional tone label.
        count: Post count clamped to ``[1, MAX_POST_COUNT]``.
    """

    topic: str
    context: str | None = None
    tone: str | None = None
    count: int = DEFAULT_POST_COUNT

    @classmethod
    def from_input(
        cls,
        topic: str | None,
        context: str | None = None,
        tone: str | None = None,
        count: Any = None,
        default_count: int = DEFAULT_POST_COUNT,
        max_count: int = MAX_POST_COUNT,
    ) -> "GenerationRequest":
        """Validate raw caller input.

        Raises:
            InvalidRequestError: If the topic is missing or blank.
        """
        if topic is None or not isinstance(topic, str) or not topic.strip():
            raise InvalidRequestError("Topic is required")

        return cls(
            topic=topic.strip(),
            context=context.strip() if context and context.strip() else None,
            tone=tone.strip() if tone and tone.strip() else None,
            count=validate_post_count(count, default=default_count, maximum=max_count),
        )


@dataclass
class IntentionAnalysis:
    """Structured judgment about what a user wants to write.

    Attributes:
        intention: Natural-language summary of the inferred intent.
        is_on_topic: Whether the topic fits the classified domain.
        domain_id: Identifier of the classified domain.
        confidence: Classifier confidence between 0 and 1.
        suggested_context: Optional hint for missing context.
        suggested_hook: Optional opening hook for the thread.
        expertise_level: "beginner", "intermediate" or "expert".
        fallback_to_original: True when the caller should use the baseline flow.
    """

    intention: str
    is_on_topic: bool
    domain_id: str
    confidence: float = 0.0
    suggested_context: str | None = None
    suggested_hook: str | None = None
    expertise_level: str | None = None
    fallback_to_original: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "intention": self.intention,
            "isOnTopic": self.is_on_topic,
            "domain": self.domain_id,
            "confidence": self.confidence,
            "suggestedContext": self.suggested_context,
            "suggestedHook": self.suggested_hook,
            "expertiseLevel": self.expertise_level,
            "fallbackToOriginal": self.fallback_to_original,
        }
