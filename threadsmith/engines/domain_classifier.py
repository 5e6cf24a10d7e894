"""Keyword-based technical domain classification.

The taxonomy is read-only configuration built once at import time. Topics
are scored by keyword matches: each matching search term is worth 3 points
and each matching authority keyword 1 point.
"""

from dataclasses import dataclass
from types import MappingProxyType


SEARCH_TERM_WEIGHT = 3
AUTHORITY_KEYWORD_WEIGHT = 1

# Score at which confidence saturates at 1.0
CONFIDENCE_SCALE = 10

BEGINNER_TERMS = ("basics", "introduction", "getting started", "tutorial", "beginner")
EXPERT_TERMS = ("advanced", "optimization", "architecture", "enterprise", "scalability", "performance")

DEFAULT_HOOK = "💡 Technical insights that level up your engineering game"


@dataclass(frozen=True)
class TechnicalDomain:
    """A technical domain in the fixed taxonomy.

    Attributes:
        id: Stable identifier (e.g. "database").
        name: Display name.
        description: One-line description of the domain's scope.
        expert_persona: Persona text used to frame enriched prompts.
        search_terms: Primary keywords, weighted higher when scoring.
        authority_keywords: Secondary keywords, weighted lower.
        hook: Suggested opening hook for threads in this domain.
    """

    id: str
    name: str
    description: str
    expert_persona: str
    search_terms: tuple[str, ...]
    authority_keywords: tuple[str, ...]
    hook: str = DEFAULT_HOOK


@dataclass(frozen=True)
class DomainAnalysis:
    """Result of classifying a topic.

    Attributes:
        primary_domain: Best-matching domain.
        confidence: Normalized score between 0 and 1.
        suggested_hook: Opening hook for the domain.
        expertise_level: "beginner", "intermediate" or "expert".
    """

    primary_domain: TechnicalDomain
    confidence: float
    suggested_hook: str
    expertise_level: str

    @property
    def matched(self) -> bool:
        """True when at least one keyword matched."""
        return self.confidence > 0.0


DOMAINS: tuple[TechnicalDomain, ...] = (
    TechnicalDomain(
        id="webdev",
        name="Web Development",
        description="Frontend, backend, full-stack development, frameworks, and web technologies",
        expert_persona=(
            "You are a senior full-stack developer with 8+ years building scalable web "
            "applications. You specialize in modern frameworks (React, Vue, Angular), backend "
            "technologies (Node.js, Python, Go), and have deep expertise in web performance, "
            "architecture, and best practices."
        ),
        search_terms=("web development", "frontend", "backend", "javascript", "react", "vue", "angular", "node.js"),
        authority_keywords=("scalable", "performance", "architecture", "best practices", "modern", "enterprise"),
        hook="🚀 Want to build web apps that scale? Here's what senior developers wish they knew earlier",
    ),
    TechnicalDomain(
        id="architecture",
        name="Software Architecture",
        description="System design, architectural patterns, microservices, and scalable systems",
        expert_persona=(
            "You are a distinguished software architect with 10+ years designing enterprise "
            "systems. You excel at system design, architectural patterns, microservices, "
            "event-driven architecture, and building systems that scale from startup to enterprise."
        ),
        search_terms=("software architecture", "system design", "microservices", "design patterns", "scalability"),
        authority_keywords=("enterprise", "scalable", "patterns", "design", "architecture", "systems thinking"),
        hook="🏗️ System design secrets that separate senior engineers from the rest",
    ),
    TechnicalDomain(
        id="distributed-systems",
        name="Distributed Systems",
        description="Distributed computing, consensus algorithms, fault tolerance, and large-scale systems",
        expert_persona=(
            "You are a distributed systems expert with deep knowledge of consensus algorithms, "
            "fault tolerance, CAP theorem, and building resilient large-scale systems. You "
            "understand network partitions, eventual consistency, and distributed data management."
        ),
        search_terms=("distributed systems", "consensus", "fault tolerance", "cap theorem", "eventual consistency"),
        authority_keywords=("resilient", "fault-tolerant", "consensus", "distributed", "large-scale", "reliability"),
        hook="⚡ The distributed systems principles that power trillion-dollar companies",
    ),
    TechnicalDomain(
        id="devops",
        name="DevOps & Infrastructure",
        description="CI/CD, containerization, cloud platforms, monitoring, and infrastructure automation",
        expert_persona=(
            "You are a senior DevOps engineer with expertise in CI/CD, containerization (Docker, "
            "Kubernetes), cloud platforms (AWS, GCP, Azure), infrastructure as code, and building "
            "reliable deployment pipelines."
        ),
        search_terms=("devops", "kubernetes", "docker", "ci/cd", "aws", "cloud", "infrastructure"),
        authority_keywords=("automation", "reliable", "scalable", "cloud-native", "infrastructure", "deployment"),
        hook="🔧 DevOps practices that reduce deployment anxiety and increase reliability",
    ),
    TechnicalDomain(
        id="ai-ml",
        name="AI/ML & Data Science",
        description="Machine learning, AI, data science, MLOps, and intelligent systems",
        expert_persona=(
            "You are an AI/ML engineer with extensive experience in machine learning, deep "
            "learning, MLOps, and building production AI systems. You understand model training, "
            "deployment, monitoring, and the practical challenges of AI in business."
        ),
        search_terms=("machine learning", "ai", "artificial intelligence", "data science", "neural networks", "mlops"),
        authority_keywords=("intelligent", "predictive", "automated", "data-driven", "ml", "production ai"),
        hook="🤖 AI/ML insights that bridge the gap between research and production",
    ),
    TechnicalDomain(
        id="security",
        name="Cybersecurity",
        description="Application security, infrastructure security, threat modeling, and secure coding",
        expert_persona=(
            "You are a cybersecurity expert specializing in application security, threat "
            "modeling, secure coding practices, and building security-first systems. You "
            "understand OWASP principles, encryption, and modern security challenges."
        ),
        search_terms=("cybersecurity", "security", "encryption", "owasp", "threat modeling", "secure coding"),
        authority_keywords=("secure", "protected", "encrypted", "threat-resistant", "compliant", "security-first"),
        hook="🔒 Security principles that protect your applications from real-world threats",
    ),
    TechnicalDomain(
        id="mobile",
        name="Mobile Development",
        description="iOS, Android, React Native, Flutter, and mobile app development",
        expert_persona=(
            "You are a senior mobile developer with expertise in iOS (Swift), Android (Kotlin), "
            "and cross-platform frameworks (React Native, Flutter). You understand mobile-specific "
            "challenges like performance, battery optimization, and user experience."
        ),
        search_terms=("mobile development", "ios", "android", "react native", "flutter", "swift", "kotlin"),
        authority_keywords=("mobile-first", "native", "cross-platform", "optimized", "user experience", "performant"),
        hook="📱 Mobile development strategies that create apps users actually love",
    ),
    TechnicalDomain(
        id="blockchain",
        name="Blockchain & Web3",
        description="Blockchain development, smart contracts, DeFi, and decentralized applications",
        expert_persona=(
            "You are a blockchain developer with deep expertise in smart contracts, DeFi "
            "protocols, and building decentralized applications. You understand Ethereum, "
            "Solidity, and the complexities of building secure, decentralized systems."
        ),
        search_terms=("blockchain", "web3", "smart contracts", "ethereum", "defi", "solidity", "decentralized"),
        authority_keywords=("decentralized", "trustless", "immutable", "smart contracts", "defi", "web3"),
        hook="⛓️ Web3 development insights for building the decentralized future",
    ),
    TechnicalDomain(
        id="database",
        name="Database & Data Engineering",
        description="Database design, SQL, NoSQL, data pipelines, and data architecture",
        expert_persona=(
            "You are a senior database engineer with expertise in SQL/NoSQL databases, data "
            "modeling, query optimization, and building scalable data architectures. You "
            "understand ACID properties, CAP theorem, and the modern data stack."
        ),
        search_terms=("database", "sql", "nosql", "data engineering", "data pipeline", "data architecture"),
        authority_keywords=("scalable", "optimized", "performant", "data-driven", "robust", "efficient"),
        hook="📊 Database optimizations that turned slow queries into lightning-fast responses",
    ),
)

DOMAINS_BY_ID = MappingProxyType({domain.id: domain for domain in DOMAINS})


def score_domain(domain: TechnicalDomain, text: str) -> int:
    """Score how well lowercase ``text`` matches ``domain``."""
    score = 0
    for term in domain.search_terms:
        if term in text:
            score += SEARCH_TERM_WEIGHT
    for keyword in domain.authority_keywords:
        if keyword in text:
            score += AUTHORITY_KEYWORD_WEIGHT
    return score


def determine_expertise_level(text: str) -> str:
    """Infer the audience level from wording in lowercase ``text``."""
    has_beginner_terms = any(term in text for term in BEGINNER_TERMS)
    has_expert_terms = any(term in text for term in EXPERT_TERMS)

    if has_expert_terms:
        return "expert"
    if has_beginner_terms:
        return "beginner"
    return "intermediate"


def detect_domain(topic: str, context: str | None = None) -> DomainAnalysis:
    """Classify a topic into the best-matching technical domain.

    Ties keep taxonomy order. With no keyword match the first domain is
    returned with zero confidence.

    Example:
        >>> analysis = detect_domain("SQL query optimization")
        >>> analysis.primary_domain.id
        'database'
        >>> analysis.expertise_level
        'expert'
    """
    full_text = f"{topic} {context or ''}".lower()

    best_domain = DOMAINS[0]
    best_score = 0
    for domain in DOMAINS:
        score = score_domain(domain, full_text)
        if score > best_score:
            best_domain, best_score = domain, score

    return DomainAnalysis(
        primary_domain=best_domain,
        confidence=min(best_score / CONFIDENCE_SCALE, 1.0),
        suggested_hook=best_domain.hook,
        expertise_level=determine_expertise_level(full_text),
    )


def get_domain_by_id(domain_id: str | None) -> TechnicalDomain | None:
    """Look up a domain by identifier, or None if unknown."""
    if not domain_id:
        return None
    return DOMAINS_BY_ID.get(domain_id.strip().lower())


def get_all_domains() -> tuple[TechnicalDomain, ...]:
    return DOMAINS
