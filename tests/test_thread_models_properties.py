"""Property-based tests for thread data models.

Feature: threadsmith
Tests post invariants, thread finalization and request validation.
"""

import dataclasses

import pytest
from hypothesis import given, settings, strategies as st

from threadsmith.engines.observability import GenerationMetrics
from threadsmith.engines.thread_models import (
    GenerationRequest,
    IntentionAnalysis,
    InvalidRequestError,
    Post,
    Thread,
    finalize_posts,
)


content_strategy = st.text(min_size=1, max_size=300)


# Feature: threadsmith, Property 13: Character Length Invariant
class TestPostInvariants:
    """Property tests for Post."""

    @given(content=content_strategy, position=st.integers(min_value=1, max_value=20))
    @settings(max_examples=100)
    def test_character_length_matches_content(self, content: str, position: int):
        """For any post, character_length SHALL equal len(content)."""
        post = Post.create(position, content)

        assert post.character_length == len(content)
        assert post.id == f"post-{position}"
        assert post.total_count == 0

    @given(first=content_strategy, second=content_strategy)
    @settings(max_examples=100)
    def test_length_recomputed_when_content_changes(self, first: str, second: str):
        """Replacing content SHALL recompute character_length."""
        post = Post.create(1, first).with_content(second)
        assert post.character_length == len(second)

        replaced = dataclasses.replace(post, content=first)
        assert replaced.character_length == len(first)

    def test_posts_are_immutable(self):
        post = Post.create(1, "Indexes speed up reads")
        with pytest.raises(dataclasses.FrozenInstanceError):
            post.content = "changed"

    def test_to_dict_uses_wire_names(self):
        post = Post.create(2, "Indexes speed up reads")
        assert post.to_dict() == {
            "id": "post-2",
            "content": "Indexes speed up reads",
            "characterLength": 22,
            "position": 2,
            "totalCount": 0,
        }


# Feature: threadsmith, Property 14: Finalization
class TestFinalization:
    """Property tests for finalize_posts."""

    @given(
        contents=st.lists(content_strategy, min_size=1, max_size=25),
        target=st.integers(min_value=1, max_value=20),
    )
    @settings(max_examples=100)
    def test_finalized_posts_are_consistent(self, contents: list[str], target: int):
        """For any accepted posts, finalization SHALL truncate and back-fill totals."""
        posts = [Post.create(i, c) for i, c in enumerate(contents, start=1)]

        finalized = finalize_posts(posts, target)

        assert len(finalized) == min(len(contents), target)
        for index, post in enumerate(finalized, start=1):
            assert post.position == index
            assert post.id == f"post-{index}"
            assert post.total_count == len(finalized)
            assert post.content == contents[index - 1]

    def test_empty_list_stays_empty(self):
        assert finalize_posts([], 6) == []


class TestThread:
    """Unit tests for Thread serialization."""

    def test_to_dict_includes_metadata(self):
        posts = finalize_posts([Post.create(1, "Indexes speed up reads")], 1)
        metrics = GenerationMetrics(provider="ollama", strategy="marker_scan", requested_count=1, accepted_count=1)
        thread = Thread(topic="indexes", posts=posts, metadata=metrics)

        data = thread.to_dict()

        assert len(thread) == 1
        assert data["topic"] == "indexes"
        assert data["posts"][0]["totalCount"] == 1
        assert data["metadata"]["strategy"] == "marker_scan"
        assert data["generatedAt"].endswith("+00:00")

    def test_to_dict_without_metadata(self):
        thread = Thread(topic="t", posts=finalize_posts([Post.create(1, "Indexes speed up reads")], 1))
        assert "metadata" not in thread.to_dict()


# Feature: threadsmith, Property 15: Request Validation
class TestGenerationRequest:
    """Property tests for GenerationRequest.from_input."""

    @pytest.mark.parametrize("topic", [None, "", "   ", "\n\t"])
    def test_blank_topic_rejected(self, topic):
        with pytest.raises(InvalidRequestError) as exc_info:
            GenerationRequest.from_input(topic)

        assert exc_info.value.message == "Topic is required"

    @given(
        topic=st.text(min_size=1, max_size=80).filter(lambda x: x.strip()),
        count=st.one_of(st.none(), st.integers(), st.text(max_size=5)),
    )
    @settings(max_examples=100)
    def test_valid_request_is_normalized(self, topic: str, count):
        """For any non-blank topic, the request SHALL be trimmed and count in range."""
        request = GenerationRequest.from_input(topic, context="  ", tone=" casual ", count=count)

        assert request.topic == topic.strip()
        assert request.context is None
        assert request.tone == "casual"
        assert 1 <= request.count <= 20

    def test_custom_limits(self):
        request = GenerationRequest.from_input("topic", count=50, default_count=4, max_count=30)
        assert request.count == 30

        request = GenerationRequest.from_input("topic", count="x", default_count=4, max_count=30)
        assert request.count == 4


class TestIntentionAnalysis:
    """Unit tests for IntentionAnalysis serialization."""

    def test_to_dict_uses_wire_names(self):
        analysis = IntentionAnalysis(
            intention="You want to explain MVCC",
            is_on_topic=True,
            domain_id="database",
            confidence=0.6,
            suggested_hook="hook",
            expertise_level="expert",
        )

        assert analysis.to_dict() == {
            "intention": "You want to explain MVCC",
            "isOnTopic": True,
            "domain": "database",
            "confidence": 0.6,
            "suggestedContext": None,
            "suggestedHook": "hook",
            "expertiseLevel": "expert",
            "fallbackToOriginal": False,
        }
