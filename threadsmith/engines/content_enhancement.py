"""Content enhancement advisor.

Decides whether a topic benefits from code examples and, if so, which
domain-specific samples the model should weave into which posts. The
sample catalog is fixed configuration; nothing here calls the model.
"""

from dataclasses import dataclass, field


MAX_CODE_SAMPLES = 3

STRATEGY_CODE_HEAVY = "code-heavy"
STRATEGY_TEXT_ONLY = "text-only"

CODE_KEYWORDS = (
    "algorithm", "function", "method", "api", "sql", "query", "code", "implementation",
    "syntax", "programming", "script", "debugging", "testing", "refactoring", "optimization",
    "performance", "best practices", "patterns",
)

CODE_HEAVY_DOMAINS = frozenset({"database", "webdev", "ai-ml", "devops"})

TEXT_ONLY_GUIDANCE = "Focus on clear, concise explanations without code examples."


@dataclass(frozen=True)
class CodeSample:
    """A suggested code example.

    Attributes:
        language: Language of the snippet (e.g. "sql").
        purpose: Short label for what the example demonstrates.
        snippet: The example code.
        context: One-line explanation shown alongside the snippet.
        post_position: 1-based post the example fits best, or None for any.
    """

    language: str
    purpose: str
    snippet: str
    context: str
    post_position: int | None = None


@dataclass(frozen=True)
class ContentEnhancement:
    """Outcome of ``analyze_content_strategy``."""

    should_include_code: bool = False
    code_examples: tuple[CodeSample, ...] = field(default_factory=tuple)
    strategy: str = STRATEGY_TEXT_ONLY


# (domains, trigger words, sample); a rule fires when any trigger appears
_SAMPLE_RULES: tuple[tuple[frozenset[str], tuple[str, ...], CodeSample], ...] = (
    (
        frozenset({"database"}),
        ("performance", "optimization"),
        CodeSample(
            language="sql",
            purpose="Query optimization example",
            snippet="SELECT * FROM users WHERE status = 'active' AND created_at > '2024-01-01'",
            context="Optimized query with proper indexing",
            post_position=2,
        ),
    ),
    (
        frozenset({"database"}),
        ("isolation", "transaction"),
        CodeSample(
            language="sql",
            purpose="Transaction isolation demo",
            snippet=(
                "BEGIN TRANSACTION ISOLATION LEVEL READ COMMITTED;\n"
                "UPDATE accounts SET balance = balance - 100 WHERE id = 1;\n"
                "COMMIT;"
            ),
            context="Safe transaction handling",
            post_position=3,
        ),
    ),
    (
        frozenset({"database"}),
        ("index",),
        CodeSample(
            language="sql",
            purpose="Index creation",
            snippet="CREATE INDEX idx_user_status_date ON users(status, created_at);",
            context="Composite index for performance",
            post_position=4,
        ),
    ),
    (
        frozenset({"webdev"}),
        ("react", "component"),
        CodeSample(
            language="javascript",
            purpose="React optimization",
            snippet=(
                "const MemoizedComponent = React.memo(({ data }) => (\n"
                "  <div>{data.map(item => <Item key={item.id} {...item} />)}</div>\n"
                "));"
            ),
            context="Performance optimization with React.memo",
            post_position=2,
        ),
    ),
    (
        frozenset({"webdev"}),
        ("api", "fetch"),
        CodeSample(
            language="javascript",
            purpose="Error handling",
            snippet="const response = await fetch('/api/data')\n  .catch(err => ({ error: err.message }));",
            context="Robust API error handling",
            post_position=3,
        ),
    ),
    (
        frozenset({"webdev"}),
        ("async", "promise"),
        CodeSample(
            language="javascript",
            purpose="Async/await pattern",
            snippet=(
                "try {\n  const result = await processData();\n  return result;\n"
                "} catch (error) {\n  console.error('Processing failed:', error);\n}"
            ),
            context="Clean async error handling",
            post_position=4,
        ),
    ),
    (
        frozenset({"devops"}),
        ("docker", "container"),
        CodeSample(
            language="dockerfile",
            purpose="Multi-stage build",
            snippet="FROM node:16-alpine AS builder\nWORKDIR /app\nCOPY package*.json ./\nRUN npm ci --only=production",
            context="Optimized Docker build",
            post_position=2,
        ),
    ),
    (
        frozenset({"devops"}),
        ("kubernetes", "k8s"),
        CodeSample(
            language="yaml",
            purpose="Kubernetes deployment",
            snippet="apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: myapp\nspec:\n  replicas: 3",
            context="Basic K8s deployment config",
            post_position=3,
        ),
    ),
    (
        frozenset({"ai-ml"}),
        ("model", "training"),
        CodeSample(
            language="python",
            purpose="Model validation",
            snippet=(
                "from sklearn.model_selection import cross_val_score\n"
                "scores = cross_val_score(model, X, y, cv=5, scoring='accuracy')"
            ),
            context="Proper model evaluation",
            post_position=2,
        ),
    ),
    (
        frozenset({"ai-ml"}),
        ("data", "preprocessing"),
        CodeSample(
            language="python",
            purpose="Data preprocessing",
            snippet="import pandas as pd\ndf = pd.read_csv('data.csv')\ndf_clean = df.dropna().fillna(df.mean())",
            context="Basic data cleaning pipeline",
            post_position=3,
        ),
    ),
    (
        frozenset({"architecture", "distributed-systems"}),
        ("api", "service"),
        CodeSample(
            language="javascript",
            purpose="Service communication",
            snippet=(
                "const response = await fetch('http://user-service/api/users', {\n"
                "  headers: { 'Authorization': `Bearer ${token}` }\n});"
            ),
            context="Microservice API call",
            post_position=2,
        ),
    ),
)


def is_code_heavy_topic(text: str, domain_id: str) -> bool:
    """True when lowercase ``text`` mentions code or the domain is code-centric."""
    return any(keyword in text for keyword in CODE_KEYWORDS) or domain_id in CODE_HEAVY_DOMAINS


def select_code_samples(domain_id: str, text: str, max_samples: int) -> tuple[CodeSample, ...]:
    """Pick catalog samples for ``domain_id`` whose triggers appear in ``text``."""
    samples = [
        sample
        for domains, triggers, sample in _SAMPLE_RULES
        if domain_id in domains and any(trigger in text for trigger in triggers)
    ]
    return tuple(samples[:max(0, min(max_samples, MAX_CODE_SAMPLES))])


def analyze_content_strategy(
    topic: str,
    domain_id: str,
    context: str | None = None,
    post_count: int = 6,
) -> ContentEnhancement:
    """Decide between a code-heavy and a text-only thread.

    Args:
        topic: The thread topic.
        domain_id: Identifier of the classified domain.
        context: Optional free-text context, scanned with the topic.
        post_count: Number of posts; caps the number of suggested samples.

    Returns:
        ContentEnhancement with at most three code samples.
    """
    full_text = f"{topic} {context or ''}".lower()

    if not is_code_heavy_topic(full_text, domain_id):
        return ContentEnhancement()

    return ContentEnhancement(
        should_include_code=True,
        code_examples=select_code_samples(domain_id, full_text, post_count),
        strategy=STRATEGY_CODE_HEAVY,
    )


def build_code_guidance(enhancement: ContentEnhancement) -> str:
    """Render prompt instructions for the chosen content strategy."""
    if enhancement.strategy == STRATEGY_TEXT_ONLY:
        return TEXT_ONLY_GUIDANCE

    lines = [
        "CODE CONTENT REQUIREMENTS:",
        "- Include relevant, practical code examples in appropriate posts",
        "- Write inline code as plain text, without backticks or code fences",
        "- Keep code snippets short enough to fit within a single post",
        "- Focus on practical, copy-paste ready examples",
    ]

    if enhancement.code_examples:
        lines.append("")
        lines.append("SUGGESTED CODE EXAMPLES:")
        for index, example in enumerate(enhancement.code_examples, start=1):
            position = example.post_position if example.post_position is not None else "any"
            lines.append(f"{index}. {example.purpose} (Post {position}): {example.language} example")
            lines.append(f"   Context: {example.context}")

    lines.append("")
    lines.append("IMPORTANT: Ensure code examples enhance understanding and fit within post character limits.")
    return "\n".join(lines)
