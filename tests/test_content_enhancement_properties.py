"""Property-based tests for the content enhancement advisor.

Feature: threadsmith
Tests code-vs-text strategy selection and code guidance rendering.
"""

from hypothesis import given, settings, strategies as st

from threadsmith.engines.content_enhancement import (
    MAX_CODE_SAMPLES,
    STRATEGY_CODE_HEAVY,
    STRATEGY_TEXT_ONLY,
    TEXT_ONLY_GUIDANCE,
    ContentEnhancement,
    analyze_content_strategy,
    build_code_guidance,
)
from threadsmith.engines.domain_classifier import DOMAINS_BY_ID


domain_id_strategy = st.sampled_from(sorted(DOMAINS_BY_ID))


# Feature: threadsmith, Property 17: Content Strategy
class TestContentStrategy:
    """Property tests for analyze_content_strategy."""

    def test_plain_topic_in_text_domain_is_text_only(self):
        enhancement = analyze_content_strategy("gardening tips", "security")

        assert enhancement == ContentEnhancement()
        assert enhancement.strategy == STRATEGY_TEXT_ONLY
        assert not enhancement.should_include_code

    def test_code_heavy_domain_without_keywords(self):
        enhancement = analyze_content_strategy("team rituals", "devops")

        assert enhancement.strategy == STRATEGY_CODE_HEAVY
        assert enhancement.should_include_code
        assert enhancement.code_examples == ()

    def test_database_samples_follow_triggers(self):
        enhancement = analyze_content_strategy("SQL index performance tuning", "database")

        purposes = [sample.purpose for sample in enhancement.code_examples]
        assert purposes == ["Query optimization example", "Index creation"]
        assert [s.post_position for s in enhancement.code_examples] == [2, 4]

    def test_samples_capped_by_post_count(self):
        enhancement = analyze_content_strategy(
            "performance", "database", context="transaction index", post_count=2
        )
        assert len(enhancement.code_examples) == 2

    @given(
        topic=st.text(max_size=80),
        domain_id=domain_id_strategy,
        post_count=st.integers(min_value=1, max_value=20),
    )
    @settings(max_examples=200)
    def test_strategy_is_consistent(self, topic: str, domain_id: str, post_count: int):
        """For any topic, samples SHALL be capped and only present when code is included."""
        enhancement = analyze_content_strategy(topic, domain_id, post_count=post_count)

        assert len(enhancement.code_examples) <= min(post_count, MAX_CODE_SAMPLES)
        assert enhancement.should_include_code == (enhancement.strategy == STRATEGY_CODE_HEAVY)
        if not enhancement.should_include_code:
            assert enhancement.code_examples == ()


# Feature: threadsmith, Property 18: Code Guidance
class TestCodeGuidance:
    """Unit tests for build_code_guidance."""

    def test_text_only_guidance(self):
        assert build_code_guidance(ContentEnhancement()) == TEXT_ONLY_GUIDANCE

    def test_code_guidance_lists_examples(self):
        enhancement = analyze_content_strategy("SQL index performance tuning", "database")

        guidance = build_code_guidance(enhancement)

        assert guidance.startswith("CODE CONTENT REQUIREMENTS:")
        assert "SUGGESTED CODE EXAMPLES:" in guidance
        assert "1. Query optimization example (Post 2): sql example" in guidance
        assert "   Context: Composite index for performance" in guidance
        assert guidance.splitlines()[-1].startswith("IMPORTANT:")

    def test_code_guidance_without_examples(self):
        guidance = build_code_guidance(analyze_content_strategy("team rituals", "devops"))

        assert "CODE CONTENT REQUIREMENTS:" in guidance
        assert "SUGGESTED CODE EXAMPLES:" not in guidance
