"""Prompt construction for thread generation.

This module renders the natural-language instructions sent to the model
gateway. Every thread prompt, baseline or enriched, shares one output
contract so the parser never has to know which variant produced a response:

- exactly N posts
- each post on its own line, starting with the ``TWEET:`` marker
- each post numbered ``k/N``
- a hard per-post character ceiling
- no markdown styling

Functions:
    normalize_topic: Strip conversational prefixes from a user topic
    validate_post_count: Coerce a requested post count into range

Classes:
    PromptBuilder: Builds baseline, enriched, rewrite and intention prompts
"""

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from threadsmith.connectors.web_search import SearchResult
    from threadsmith.engines.domain_classifier import TechnicalDomain


# Line-start marker every post must carry
MARKER_TOKEN = "TWEET:"

DEFAULT_POST_COUNT = 6
MAX_POST_COUNT = 20

# Conversational lead-ins users type before the actual subject
TOPIC_PREFIX_PATTERN = re.compile(
    r"^(?:\s*(?:"
    r"I\s+want\s+to\s+write\s+about"
    r"|I\s*'?d\s+like\s+to\s+write\s+about"
    r"|write\s+a\s+thread\s+about"
    r"|write\s+about"
    r")(?=\s|$))+",
    re.IGNORECASE,
)


def normalize_topic(topic: str) -> str:
    """Strip leading conversational prefixes from a topic and trim it.

    Prefixes are removed repeatedly, so normalizing an already-normalized
    topic is a no-op.

    Args:
        topic: Raw topic text as typed by the user.

    Returns:
        The topic without its conversational lead-in.

    Example:
        >>> normalize_topic("I want to write about database indexes")
        'database indexes'
        >>> normalize_topic("  Kubernetes probes ")
        'Kubernetes probes'
    """
    if not topic:
        return ""
    return TOPIC_PREFIX_PATTERN.sub("", topic, count=1).strip()


def validate_post_count(
    count: Any,
    default: int = DEFAULT_POST_COUNT,
    maximum: int = MAX_POST_COUNT,
) -> int:
    """Coerce a requested post count into ``[1, maximum]``.

    Non-integer values and values below 1 fall back to ``default``; values
    above ``maximum`` are clamped to it. Integer-valued strings and floats
    are accepted.

    Example:
        >>> [validate_post_count(c) for c in (0, -5, "abc", 37, 12)]
        [6, 6, 6, 20, 12]
    """
    if count is None or isinstance(count, bool):
        return default

    if isinstance(count, float):
        if not count.is_integer():
            return default
        value = int(count)
    elif isinstance(count, int):
        value = count
    elif isinstance(count, str):
        try:
            value = int(count.strip())
        except ValueError:
            return default
    else:
        return default

    if value < 1:
        return default
    return min(value, maximum)


class PromptBuilder:
    """Build prompts for thread generation.

    The builder produces two thread prompt variants that share the same
    numbering and marker contract:

    - ``build``: baseline prompt from topic, context and tone
    - ``build_enriched``: adds persona framing, a numbered research digest,
      code-sample guidance and structure for the opening and closing posts

    It also builds the single-post rewrite prompt and the intention analysis
    prompt, plus the matching system prompts.

    Attributes:
        max_post_chars: Per-post character ceiling written into prompts.
        max_post_count: Upper bound applied to requested post counts.

    Example:
        >>> builder = PromptBuilder()
        >>> prompt = builder.build("database indexes", count=4)
        >>> "exactly 4 posts" in prompt and "TWEET:" in prompt
        True
    """

    SYSTEM_PROMPT: str = (
        "You are an expert technical content creator for B2B SaaS and "
        "engineering professionals. Generate engaging threads with code "
        "examples, emojis, and practical insights. Never add preambles such "
        "as \"Here is the thread:\"; start directly with the first post."
    )

    INTENTION_SYSTEM_PROMPT: str = (
        "You are an expert at analyzing technical writing topics in the "
        "{domain_name} space. Always respond with valid JSON only."
    )

    DEFAULT_TONE: str = (
        "Professional but approachable, educational, with authority-building insights"
    )

    # Sample posts for the format example; numbered at render time
    EXAMPLE_POSTS: tuple[str, ...] = (
        "🧵 Database isolation levels explained: the secret to preventing data "
        "corruption in high-concurrency apps ⚡ Let's dive in 🔒",
        "💡 READ UNCOMMITTED: fastest but dangerous. Dirty reads let you see "
        "uncommitted changes. Only for analytics where accuracy isn't critical.",
        "✅ READ COMMITTED: the default in most databases. Prevents dirty reads, "
        "allows phantom reads. A solid balance for OLTP workloads 📊",
    )

    THREAD_TEMPLATE: str = """Create a thread about "{topic}" for B2B SaaS entrepreneurs and technical professionals.

STRICT REQUIREMENTS:
- Generate exactly {count} posts
- Each post MUST be under {max_chars} characters
- Include relevant code examples and snippets where applicable
- Use engaging emojis (🔥, ⚡, 💡, 🧵, 📊, 🔧, 🔒, 💾)
- Focus on practical, actionable insights
- Include technical depth with business value
- Number each post ({numbering})

{context_line}
Tone: {tone}

FORMAT REQUIREMENTS:
- Start each post with "{marker}"
- NO markdown formatting (**, *, #, code fences)
- Each post on a single line
- Make each post standalone but part of the thread
- End with actionable advice

Example of the format only (do not reuse its content):
{example}

Generate exactly {count} posts for "{topic}". Each post must start with "{marker}" and be on its own line:"""

    ENRICHED_TEMPLATE: str = """Create a comprehensive thread about "{topic}" for practitioners who want expert-level insight.

{persona_block}ENHANCED CONTEXT:
{enhanced_context}

CRITICAL FORMAT REQUIREMENTS - FOLLOW EXACTLY:
1. Generate EXACTLY {count} posts, no more, no less
2. Each post MUST start with "{marker}" (all caps)
3. Each post MUST be numbered {numbering}
4. Each post MUST be under {max_chars} characters
5. NO markdown formatting (no **, *, #, code fences)
6. Each post on its own line

THREAD STRUCTURE:
- Post 1/{count}: open with a hook that establishes authority{hook_hint}
- Middle posts: one concrete insight each, backed by the research findings above where relevant
- Post {count}/{count}: close with a practical takeaway and a call to discuss

CONTENT REQUIREMENTS:
- Incorporate the research findings and current best practices from the context above
- Focus on actionable insights and practical implementation
- Reference current trends and up-to-date information when available
- Use engaging emojis (🔥, ⚡, 💡, 🧵, 📊, 🔧, 🔒, 🎯, 📈)

{code_guidance}
EXACT FORMAT EXAMPLE (format only, do not reuse its content):
{example}

Now generate exactly {count} posts for "{topic}" following this EXACT format:"""

    REWRITE_TEMPLATE: str = """Rewrite this post to be more engaging while keeping the same core message:

Original: "{original}"
Context: {context}

Requirements:
- Keep under {max_chars} characters
- Include relevant emojis
- Maintain technical accuracy
- Make it more engaging or clear

Return only the improved post content:"""

    INTENTION_TEMPLATE: str = """Analyze this user input to understand their intention for creating a {domain_name} thread:

User Topic: "{topic}"
{context_line}
REQUIREMENTS:
1. Determine if this topic belongs to {domain_name} ({domain_description})
2. Create a simple, conversational summary of what the user wants to explain
3. Suggest missing context only if it would clearly improve the thread

RESPONSE FORMAT (JSON):
{{
  "intention": "Simple summary like: 'You want to explain ... with practical examples'",
  "isOnTopic": true,
  "suggestedContext": "Optional suggestion for missing context",
  "fallbackToOriginal": false
}}

If the topic is NOT about {domain_name}, set isOnTopic to false and fallbackToOriginal to true.

Respond with valid JSON only:"""

    def __init__(self, max_post_chars: int = 280, max_post_count: int = MAX_POST_COUNT) -> None:
        self.max_post_chars = max_post_chars
        self.max_post_count = max_post_count

    def build(
        self,
        topic: str,
        context: str | None = None,
        tone: str | None = None,
        count: int = DEFAULT_POST_COUNT,
    ) -> str:
        """Build the baseline thread prompt.

        Args:
            topic: User topic; conversational prefixes are stripped.
            context: Optional free-text context.
            tone: Optional tone label; a professional default is used if None.
            count: Requested number of posts, validated into range.

        Returns:
            A formatted prompt string ready to send to the model.
        """
        count = validate_post_count(count, maximum=self.max_post_count)
        clean_topic = normalize_topic(topic)

        return self.THREAD_TEMPLATE.format(
            topic=clean_topic,
            count=count,
            max_chars=self.max_post_chars,
            numbering=self._format_numbering(count),
            context_line=f"Additional context: {context}\n" if context else "",
            tone=tone or self.DEFAULT_TONE,
            marker=MARKER_TOKEN,
            example=self._format_example(count),
        )

    def build_enriched(
        self,
        topic: str,
        count: int,
        enhanced_context: str,
        persona: str | None = None,
        code_guidance: str | None = None,
        suggested_hook: str | None = None,
    ) -> str:
        """Build the enriched thread prompt.

        Args:
            topic: User topic; conversational prefixes are stripped.
            count: Requested number of posts, validated into range.
            enhanced_context: Block produced by ``build_enhanced_context``.
            persona: Optional expert persona text.
            code_guidance: Optional code-sample instructions.
            suggested_hook: Optional opening hook idea for the first post.

        Returns:
            A formatted prompt string ready to send to the model.
        """
        count = validate_post_count(count, maximum=self.max_post_count)
        clean_topic = normalize_topic(topic)

        persona_block = f"WRITE AS THIS EXPERT:\n{persona}\n\n" if persona else ""
        hook_hint = f' (for inspiration: "{suggested_hook}")' if suggested_hook else ""

        return self.ENRICHED_TEMPLATE.format(
            topic=clean_topic,
            count=count,
            persona_block=persona_block,
            enhanced_context=enhanced_context.strip() or "No additional context.",
            marker=MARKER_TOKEN,
            numbering=self._format_numbering(count),
            max_chars=self.max_post_chars,
            hook_hint=hook_hint,
            code_guidance=f"{code_guidance.strip()}\n" if code_guidance else "",
            example=self._format_example(count),
        )

    def build_enhanced_context(
        self,
        context: str | None = None,
        refined_intention: str | None = None,
        search_results: "list[SearchResult] | None" = None,
        focus: str | None = None,
    ) -> str:
        """Fold intention, context and search findings into one block.

        Search results are rendered as a numbered research digest.

        Example:
            >>> builder = PromptBuilder()
            >>> block = builder.build_enhanced_context(refined_intention="Explain MVCC")
            >>> block.startswith("User's refined intention: Explain MVCC")
            True
        """
        lines: list[str] = []

        if refined_intention:
            lines.append(f"User's refined intention: {refined_intention}")

        if context:
            lines.append(f"Additional context: {context}")

        digest = self.format_research_digest(search_results or [])
        if digest:
            lines.append("")
            lines.append(digest)
            lines.append("")

        if focus:
            lines.append(f"Focus: {focus}")

        return "\n".join(lines)

    def format_research_digest(self, search_results: "list[SearchResult]") -> str:
        """Render search results as a numbered research digest, or ''."""
        if not search_results:
            return ""

        lines = ["Current web research findings:"]
        for index, result in enumerate(search_results, start=1):
            lines.append(f"{index}. {result.title}: {result.snippet}")
        return "\n".join(lines)

    def build_rewrite_prompt(self, original_content: str, context: str | None) -> str:
        """Build the single-post rewrite prompt."""
        return self.REWRITE_TEMPLATE.format(
            original=original_content,
            context=context or "None",
            max_chars=self.max_post_chars,
        )

    def build_intention_prompt(
        self,
        topic: str,
        context: str | None,
        domain: "TechnicalDomain",
    ) -> str:
        """Build the prompt asking the model to summarize user intent as JSON."""
        return self.INTENTION_TEMPLATE.format(
            domain_name=domain.name,
            domain_description=domain.description,
            topic=topic,
            context_line=f'Additional Context: "{context}"\n' if context else "",
        )

    def get_system_prompt(self) -> str:
        """Get the system prompt for baseline thread generation."""
        return self.SYSTEM_PROMPT

    def get_enriched_system_prompt(self, persona: str | None, count: int) -> str:
        """Get the persona-aware system prompt for enriched generation."""
        count = validate_post_count(count, maximum=self.max_post_count)
        intro = persona or self.SYSTEM_PROMPT
        return (
            f"{intro} You MUST generate exactly {count} posts, each starting with "
            f"\"{MARKER_TOKEN}\" and numbered {self._format_numbering(count)}. "
            "Follow the format requirements precisely."
        )

    def get_intention_system_prompt(self, domain: "TechnicalDomain") -> str:
        """Get the system prompt for intention analysis."""
        return self.INTENTION_SYSTEM_PROMPT.format(domain_name=domain.name)

    def _format_numbering(self, count: int) -> str:
        """Describe the numbering convention, e.g. "1/6, 2/6, etc."."""
        if count == 1:
            return "1/1"
        if count == 2:
            return "1/2, 2/2"
        return f"1/{count}, 2/{count}, etc."

    def _format_example(self, count: int) -> str:
        """Render the format example with at most three numbered posts."""
        samples = self.EXAMPLE_POSTS[:min(count, len(self.EXAMPLE_POSTS))]
        return "\n".join(
            f"{MARKER_TOKEN} {index}/{count} {sample}"
            for index, sample in enumerate(samples, start=1)
        )
