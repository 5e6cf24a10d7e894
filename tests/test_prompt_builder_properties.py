"""Property-based tests for prompt construction.

Feature: threadsmith
Tests topic normalization, count validation and the prompt output contract.
"""

import pytest
from hypothesis import given, settings, strategies as st

from threadsmith.connectors.web_search import SearchResult
from threadsmith.engines.domain_classifier import get_domain_by_id
from threadsmith.engines.prompt_builder import (
    DEFAULT_POST_COUNT,
    MARKER_TOKEN,
    MAX_POST_COUNT,
    PromptBuilder,
    normalize_topic,
    validate_post_count,
)


topic_strategy = st.text(
    alphabet=st.characters(whitelist_categories=('L', 'N'), whitelist_characters=' -_'),
    min_size=1,
    max_size=60,
).filter(lambda x: x.strip())

prefix_strategy = st.sampled_from([
    "I want to write about",
    "i WANT to WRITE about",
    "I'd like to write about",
    "write a thread about",
    "Write about",
])


# Feature: threadsmith, Property 4: Topic Normalization
class TestTopicNormalization:
    """Property tests for conversational prefix stripping."""

    def test_strips_leading_prefix(self):
        assert normalize_topic("I want to write about database indexes") == "database indexes"

    def test_leaves_plain_topic_trimmed(self):
        assert normalize_topic("  Kubernetes probes  ") == "Kubernetes probes"

    def test_prefix_inside_topic_is_kept(self):
        assert normalize_topic("Why people write about SQL") == "Why people write about SQL"

    @given(prefix=prefix_strategy, topic=topic_strategy)
    @settings(max_examples=100)
    def test_prefix_removed_for_any_topic(self, prefix: str, topic: str):
        """For any topic behind a known prefix, the prefix SHALL be removed."""
        result = normalize_topic(f"{prefix} {topic}")

        assert not result.lower().startswith(prefix.lower() + " ")
        assert result == normalize_topic(topic)

    @given(text=st.text(max_size=120))
    @settings(max_examples=200)
    def test_normalization_is_idempotent(self, text: str):
        """For any text, normalize(normalize(t)) SHALL equal normalize(t)."""
        once = normalize_topic(text)
        assert normalize_topic(once) == once

    @given(prefixes=st.lists(prefix_strategy, min_size=2, max_size=4), topic=topic_strategy)
    @settings(max_examples=100)
    def test_repeated_prefixes_all_removed(self, prefixes: list[str], topic: str):
        """Stacked prefixes SHALL all be stripped in one pass."""
        raw = " ".join(prefixes) + " " + topic
        assert normalize_topic(raw) == normalize_topic(topic)


# Feature: threadsmith, Property 5: Count Validation
class TestCountValidation:
    """Property tests for post count validation."""

    def test_documented_examples(self):
        """{0, -5, "abc", 37, 12} SHALL map to {6, 6, 6, 20, 12}."""
        assert [validate_post_count(c) for c in (0, -5, "abc", 37, 12)] == [6, 6, 6, 20, 12]

    @pytest.mark.parametrize("count", [None, True, False, 2.5, "3.5", [], {}])
    def test_non_integer_values_use_default(self, count):
        assert validate_post_count(count) == DEFAULT_POST_COUNT

    def test_integer_valued_inputs_accepted(self):
        assert validate_post_count(8.0) == 8
        assert validate_post_count(" 9 ") == 9

    @given(count=st.integers())
    @settings(max_examples=200)
    def test_result_always_in_range(self, count: int):
        """For any integer, the validated count SHALL lie in [1, MAX_POST_COUNT]."""
        result = validate_post_count(count)

        assert 1 <= result <= MAX_POST_COUNT
        if 1 <= count <= MAX_POST_COUNT:
            assert result == count
        elif count > MAX_POST_COUNT:
            assert result == MAX_POST_COUNT
        else:
            assert result == DEFAULT_POST_COUNT

    @given(count=st.integers(min_value=1, max_value=100), maximum=st.integers(min_value=1, max_value=50))
    @settings(max_examples=100)
    def test_custom_maximum_respected(self, count: int, maximum: int):
        assert validate_post_count(count, default=1, maximum=maximum) == min(count, maximum)


# Feature: threadsmith, Property 6: Prompt Output Contract
class TestPromptContract:
    """Property tests for the baseline and enriched prompt contract."""

    @given(topic=topic_strategy, count=st.integers(min_value=1, max_value=MAX_POST_COUNT))
    @settings(max_examples=100)
    def test_baseline_prompt_contains_contract(self, topic: str, count: int):
        """For any topic and count, the baseline prompt SHALL state the full contract."""
        builder = PromptBuilder(max_post_chars=280)
        prompt = builder.build(topic, count=count)

        assert f"exactly {count} posts" in prompt
        assert f"1/{count}" in prompt
        assert "under 280 characters" in prompt
        assert f'"{MARKER_TOKEN}"' in prompt
        assert "NO markdown" in prompt
        assert f"{MARKER_TOKEN} 1/{count} " in prompt

    @given(topic=topic_strategy, count=st.integers(min_value=1, max_value=MAX_POST_COUNT))
    @settings(max_examples=100)
    def test_enriched_prompt_contains_contract(self, topic: str, count: int):
        """For any topic and count, the enriched prompt SHALL state the same contract."""
        builder = PromptBuilder(max_post_chars=250)
        prompt = builder.build_enriched(topic, count, "Focus: testing")

        assert f"EXACTLY {count} posts" in prompt
        assert f"exactly {count} posts" in prompt
        assert f"1/{count}" in prompt
        assert "under 250 characters" in prompt
        assert f'"{MARKER_TOKEN}"' in prompt
        assert "NO markdown" in prompt

    @given(count=st.integers(min_value=1, max_value=MAX_POST_COUNT))
    @settings(max_examples=50)
    def test_example_block_has_at_most_three_posts(self, count: int):
        """The format example SHALL show min(count, 3) numbered posts."""
        builder = PromptBuilder()
        example = builder._format_example(count)

        lines = example.splitlines()
        assert len(lines) == min(count, 3)
        for index, line in enumerate(lines, start=1):
            assert line.startswith(f"{MARKER_TOKEN} {index}/{count} ")

    def test_prompt_uses_normalized_topic(self):
        prompt = PromptBuilder().build("I want to write about database indexes", count=3)

        assert '"database indexes"' in prompt
        assert "I want to write about" not in prompt

    def test_out_of_range_count_is_validated(self):
        prompt = PromptBuilder().build("indexes", count=99)
        assert f"exactly {MAX_POST_COUNT} posts" in prompt

    def test_builder_maximum_applies(self):
        prompt = PromptBuilder(max_post_count=30).build("indexes", count=25)
        assert "exactly 25 posts" in prompt

    def test_context_and_tone_rendered(self):
        prompt = PromptBuilder().build("indexes", context="Postgres only", tone="casual", count=4)

        assert "Additional context: Postgres only" in prompt
        assert "Tone: casual" in prompt

    def test_default_tone_used_when_missing(self):
        prompt = PromptBuilder().build("indexes", count=4)
        assert f"Tone: {PromptBuilder.DEFAULT_TONE}" in prompt

    @given(topic=topic_strategy, count=st.integers(min_value=1, max_value=10))
    @settings(max_examples=50)
    def test_prompt_is_deterministic(self, topic: str, count: int):
        """Prompt building SHALL be a pure function of its inputs."""
        builder = PromptBuilder()
        assert builder.build(topic, count=count) == builder.build(topic, count=count)


class TestEnrichedPrompt:
    """Unit tests for enrichment blocks."""

    def test_research_digest_is_numbered(self):
        builder = PromptBuilder()
        results = [
            SearchResult("Isolation", "Isolation levels control visibility.", "https://a"),
            SearchResult("MVCC", "Multi-version concurrency control.", "https://b"),
        ]

        block = builder.build_enhanced_context(
            context="Postgres",
            refined_intention="Explain isolation levels",
            search_results=results,
            focus="Database systems",
        )

        assert block.startswith("User's refined intention: Explain isolation levels")
        assert "Additional context: Postgres" in block
        assert "Current web research findings:" in block
        assert "1. Isolation: Isolation levels control visibility." in block
        assert "2. MVCC: Multi-version concurrency control." in block
        assert block.rstrip().endswith("Focus: Database systems")

    def test_empty_search_results_omit_digest(self):
        block = PromptBuilder().build_enhanced_context(search_results=[])
        assert "research findings" not in block

    def test_persona_hook_and_code_guidance_included(self):
        prompt = PromptBuilder().build_enriched(
            "query plans",
            5,
            "Focus: SQL",
            persona="You are a database engineer.",
            code_guidance="CODE CONTENT REQUIREMENTS:",
            suggested_hook="Slow queries begone",
        )

        assert "WRITE AS THIS EXPERT:\nYou are a database engineer." in prompt
        assert "CODE CONTENT REQUIREMENTS:" in prompt
        assert 'Slow queries begone' in prompt
        assert "Post 5/5:" in prompt

    def test_enriched_system_prompt_states_count(self):
        system = PromptBuilder().get_enriched_system_prompt("You are an SRE.", 7)

        assert system.startswith("You are an SRE.")
        assert "exactly 7 posts" in system
        assert "1/7, 2/7, etc." in system

    def test_intention_prompt_names_domain(self):
        domain = get_domain_by_id("database")
        builder = PromptBuilder()

        prompt = builder.build_intention_prompt("SQL joins", "for juniors", domain)

        assert domain.name in prompt
        assert 'User Topic: "SQL joins"' in prompt
        assert 'Additional Context: "for juniors"' in prompt
        assert '"isOnTopic"' in prompt
        assert domain.name in builder.get_intention_system_prompt(domain)

    def test_rewrite_prompt_contains_original_and_limit(self):
        prompt = PromptBuilder(max_post_chars=200).build_rewrite_prompt("Indexes are cool", None)

        assert 'Original: "Indexes are cool"' in prompt
        assert "Context: None" in prompt
        assert "under 200 characters" in prompt
