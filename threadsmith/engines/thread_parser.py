"""Parse raw model output into a validated, numbered thread.

Model output is unpredictable: the model may drop the ``TWEET:`` marker,
wrap a post over several lines, use alternate numbering, or ignore the
format entirely. Parsing therefore escalates through an ordered list of
strategies, each a function ``(text, target_count) -> list[Post]``, and
stops at the first one that accepts at least one post:

1. marker_scan: line scan keyed on the marker or numbering prefixes
2. numeric_span: regex over the whole text for ``k/m``-delimited spans
3. delimiter_split: split on ``/N``, ``Post n:`` or ``n.`` delimiters

If every strategy comes back empty, a single synthetic post embedding the
topic is returned. ``parse_thread_content`` never raises.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from threadsmith.engines.observability import log_strategy_outcome
from threadsmith.engines.prompt_builder import MARKER_TOKEN, normalize_topic
from threadsmith.engines.thread_models import Post, finalize_posts


logger = logging.getLogger(__name__)


# Accepted posts must be strictly longer than this
MIN_POST_LENGTH = 10

# Leniency ceiling; looser than the prompt's platform limit to tolerate overruns
DEFAULT_MAX_POST_LENGTH = 320

FALLBACK_TEMPLATE = (
    "1/1 🧵 {topic} - Essential concepts every developer should master! "
    "🚀 More detailed thread coming soon..."
)

_MARKER = re.escape(MARKER_TOKEN)

# A line opens a new post when it starts with the marker or a numbering prefix
POST_START_PATTERN = re.compile(
    rf"^[*_]*(?:{_MARKER}|\d+\s*/\s*\d+|\d+\.\s)",
    re.IGNORECASE,
)

# Maximal run from one "k/m" token up to the next one or end of text;
# tokens never start inside a longer number
NUMERIC_SPAN_PATTERN = re.compile(
    r"((?<!\d)\d{1,3}\s*/\s*\d{1,3}.*?)(?=(?<!\d)\d{1,3}\s*/\s*\d{1,3}|\Z)",
    re.DOTALL,
)

# Leading run of marker / numbering tokens stripped from post content
LEADING_PREFIX_PATTERN = re.compile(
    rf"^(?:(?:{_MARKER}|\d{{1,3}}\s*/\s*\d{{1,3}}|\d{{1,3}}\.(?=\s|$))\s*)+",
    re.IGNORECASE,
)

# A language tag only counts as one when it ends the fence line
CODE_FENCE_TAG_PATTERN = re.compile(r"```[A-Za-z0-9_+-]*(?=[ \t]*\r?\n)")
# Emphasis markers must sit at word boundaries so 2*3*4 and a*b survive
BOLD_PATTERN = re.compile(r"(?<![\w*])\*\*(?=\S)(.+?)(?<=\S)\*\*(?![\w*])")
ITALIC_PATTERN = re.compile(r"(?<![\w*])\*([^*\s][^*]*?)(?<!\s)\*(?![\w*])")
WHITESPACE_PATTERN = re.compile(r"\s+")

Strategy = Callable[[str, int], list[Post]]


@dataclass
class ParseResult:
    """Posts produced by the parser and the strategy that produced them."""

    posts: list[Post]
    strategy: str


def _strip_markdown_once(text: str) -> str:
    """Remove one layer of styling markdown, keeping the inner text."""
    text = text.replace("`", "")
    text = BOLD_PATTERN.sub(r"\1", text)
    text = ITALIC_PATTERN.sub(r"\1", text)
    return text


def _drop_control_characters(text: str) -> str:
    return "".join(ch for ch in text if ch.isprintable() or ch.isspace())


def clean_post_content(text: str) -> str:
    """Normalize a candidate post for display.

    Drops fence language tags and control characters, then repeats until
    nothing changes: collapse whitespace, remove styling markdown
    (backticks, bold and italic emphasis) and strip the leading marker and
    numbering prefixes. Inline code and arithmetic such as ``2*3*4`` are
    kept. Applying it to its own output is a no-op.

    Example:
        >>> clean_post_content("TWEET: 1/3 **Indexes**   speed up   reads")
        'Indexes speed up reads'
        >>> clean_post_content("SELECT * FROM users")
        'SELECT * FROM users'
        >>> clean_post_content("Run ```EXPLAIN ANALYZE``` first")
        'Run EXPLAIN ANALYZE first'
    """
    if not text:
        return ""

    cleaned = CODE_FENCE_TAG_PATTERN.sub("", text)
    cleaned = _drop_control_characters(cleaned)
    while True:
        previous = cleaned
        cleaned = _strip_markdown_once(WHITESPACE_PATTERN.sub(" ", cleaned))
        cleaned = WHITESPACE_PATTERN.sub(" ", cleaned).strip()
        cleaned = LEADING_PREFIX_PATTERN.sub("", cleaned, count=1).strip()
        if cleaned == previous:
            return cleaned


def is_valid_post(content: str, max_length: int = DEFAULT_MAX_POST_LENGTH) -> bool:
    """Check the acceptance rule ``MIN_POST_LENGTH < len(content) <= max_length``."""
    return MIN_POST_LENGTH < len(content) <= max_length


class ThreadParser:
    """Convert raw model text into an ordered list of validated posts.

    Attributes:
        max_length: Leniency ceiling for accepted post content.

    Example:
        >>> parser = ThreadParser()
        >>> raw = "TWEET: 1/2 First post about indexes\\nTWEET: 2/2 Second post wraps up"
        >>> [p.content for p in parser.parse(raw, 2, "indexes")]
        ['First post about indexes', 'Second post wraps up']
    """

    def __init__(self, max_length: int = DEFAULT_MAX_POST_LENGTH) -> None:
        self.max_length = max_length

    @property
    def strategies(self) -> list[tuple[str, Strategy]]:
        """Strategies in escalation order."""
        return [
            ("marker_scan", self.marker_scan),
            ("numeric_span", self.numeric_span),
            ("delimiter_split", self.delimiter_split),
        ]

    def parse(self, text: str, target_count: int, topic: str) -> list[Post]:
        """Parse ``text`` into 1..``target_count`` finalized posts."""
        return self.parse_with_report(text, target_count, topic).posts

    def parse_with_report(self, text: str, target_count: int, topic: str) -> ParseResult:
        """Parse ``text`` and report which strategy produced the posts.

        Never raises: a failing strategy is logged and treated as empty,
        and the synthetic fallback post is used when nothing is accepted.
        """
        target_count = max(1, target_count)
        text = text or ""
        logger.debug(f"Raw model response ({len(text)} chars): {text[:500]}")

        for name, strategy in self.strategies:
            try:
                posts = strategy(text, target_count)
            except Exception as e:
                logger.warning(f"Parser strategy '{name}' failed: {e}")
                posts = []

            log_strategy_outcome(name, len(posts))
            if posts:
                if name != "marker_scan":
                    logger.info(f"Recovered {len(posts)} posts with fallback strategy '{name}'")
                return ParseResult(finalize_posts(posts, target_count), name)

        logger.warning("All parsing strategies failed, creating fallback post")
        return ParseResult(finalize_posts([self._fallback_post(topic)], 1), "fallback")

    def marker_scan(self, text: str, target_count: int) -> list[Post]:
        """Primary strategy: scan lines, accumulating multi-line posts.

        A line starting with the marker, ``k/m``, ``n. `` or ``n/n`` closes
        the open accumulator and opens a new one. Other non-blank lines are
        appended to the open accumulator. No new post is opened once
        ``target_count`` posts are accepted.
        """
        posts: list[Post] = []
        current: list[str] | None = None

        for line in text.splitlines():
            stripped = line.strip()
            if not stripped:
                continue

            if POST_START_PATTERN.match(stripped):
                if current is not None:
                    self._accept(posts, "\n".join(current))
                    current = None
                if len(posts) >= target_count:
                    break
                current = [stripped]
            elif current is not None:
                current.append(stripped)

        if current is not None and len(posts) < target_count:
            self._accept(posts, "\n".join(current))

        return posts

    def numeric_span(self, text: str, target_count: int) -> list[Post]:
        """Secondary strategy: capture ``k/m``-delimited spans over the whole text."""
        posts: list[Post] = []
        for match in NUMERIC_SPAN_PATTERN.finditer(text):
            if len(posts) >= target_count:
                break
            self._accept(posts, match.group(1))
        return posts

    def delimiter_split(self, text: str, target_count: int) -> list[Post]:
        """Tertiary strategy: split on successive delimiters.

        Delimiters are tried in order (``n/N``, ``Tweet n:``/``Post n:``,
        ``n.``). Fragments after the first are cleaned, re-prefixed with
        ``i/N`` and validated. The first delimiter that yields a post wins.
        """
        delimiters = [
            re.compile(rf"\d+\s*/\s*{target_count}(?!\d)"),
            re.compile(r"(?:tweet|post)\s*\d+\s*:", re.IGNORECASE),
            re.compile(r"\d+\."),
        ]

        for delimiter in delimiters:
            fragments = delimiter.split(text)
            if len(fragments) < 2:
                continue

            posts: list[Post] = []
            for fragment in fragments[1:]:
                if len(posts) >= target_count:
                    break
                cleaned = clean_post_content(fragment)
                if not cleaned:
                    continue
                content = f"{len(posts) + 1}/{target_count} {cleaned}"
                if is_valid_post(content, self.max_length):
                    posts.append(Post.create(len(posts) + 1, content))

            if posts:
                return posts

        return []

    def _accept(self, posts: list[Post], candidate: str) -> bool:
        """Clean and validate a closed candidate; append it if accepted."""
        content = clean_post_content(candidate)
        if not is_valid_post(content, self.max_length):
            logger.debug(f"Rejected candidate ({len(content)} chars): {content[:50]}")
            return False
        posts.append(Post.create(len(posts) + 1, content))
        return True

    def _fallback_post(self, topic: str) -> Post:
        content = FALLBACK_TEMPLATE.format(topic=normalize_topic(topic or ""))
        return Post.create(1, content)


def parse_thread_content(
    text: str,
    target_count: int,
    topic: str,
    max_length: int = DEFAULT_MAX_POST_LENGTH,
) -> list[Post]:
    """Parse raw model output into a finalized, never-empty list of posts.

    Args:
        text: Raw model response.
        target_count: Maximum number of posts to return.
        topic: Topic embedded in the synthetic fallback post.
        max_length: Leniency ceiling for accepted post content.

    Returns:
        Between 1 and ``target_count`` posts with positions ``1..n`` and
        ``total_count == n`` on every post.
    """
    return ThreadParser(max_length=max_length).parse(text, target_count, topic)
