"""Configuration settings for the thread generator."""

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv


# Provider names accepted by LLM_PROVIDER, mapped to their canonical adapter
PROVIDER_ALIASES: dict[str, str] = {
    "ollama": "ollama",
    "llama": "ollama",
    "anthropic": "anthropic",
    "claude": "anthropic",
}


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class Settings:
    """Configuration settings for the thread generator.

    Attributes:
        llm_provider: Model backend to use ("ollama"/"llama" or "anthropic"/"claude")
        ollama_host: Base URL of the local Ollama runtime
        ollama_model: Ollama model name
        anthropic_api_key: API key for Anthropic (required for that provider)
        anthropic_model: Anthropic model name
        anthropic_max_tokens: Maximum tokens requested from Anthropic
        model_timeout_seconds: Hard timeout for a single model call
        model_max_retries: Retries for an unavailable provider (0 disables)
        search_enabled: Whether enriched generation queries the web
        search_timeout_seconds: Hard timeout for the whole search step
        search_max_results: Maximum search results folded into a prompt
        search_api_url: DuckDuckGo instant-answer endpoint
        search_html_url: DuckDuckGo HTML results endpoint
        default_post_count: Posts per thread when the caller gives none
        max_post_count: Upper bound for requested posts per thread
        max_post_chars: Platform display limit requested in prompts
        parser_max_length: Parser leniency ceiling for accepted posts
        environment: Deployment environment label reported by health checks
        port: Port for the HTTP server
    """

    llm_provider: str = "ollama"
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-haiku-20240307"
    anthropic_max_tokens: int = 2000
    model_timeout_seconds: float = 120.0
    model_max_retries: int = 0
    search_enabled: bool = True
    search_timeout_seconds: float = 6.0
    search_max_results: int = 4
    search_api_url: str = "https://api.duckduckgo.com/"
    search_html_url: str = "https://html.duckduckgo.com/html/"
    default_post_count: int = 6
    max_post_count: int = 20
    max_post_chars: int = 280
    parser_max_length: int = 320
    environment: str = "development"
    port: int = 3001

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any configuration value is invalid.
        """
        errors: list[str] = []

        if self.llm_provider.lower() not in PROVIDER_ALIASES:
            errors.append(
                f"llm_provider must be one of {sorted(PROVIDER_ALIASES)}, "
                f"got '{self.llm_provider}'"
            )

        if self.model_timeout_seconds <= 0.0:
            errors.append("model_timeout_seconds must be positive")

        if self.model_max_retries < 0:
            errors.append("model_max_retries must be non-negative")

        if self.search_timeout_seconds <= 0.0:
            errors.append("search_timeout_seconds must be positive")

        if self.search_max_results < 1:
            errors.append("search_max_results must be at least 1")

        if self.max_post_count < 1:
            errors.append("max_post_count must be at least 1")

        if self.default_post_count < 1 or self.default_post_count > self.max_post_count:
            errors.append("default_post_count must be between 1 and max_post_count")

        if self.max_post_chars <= 10:
            errors.append("max_post_chars must be greater than 10")

        # The parser tolerates slight overruns, never a stricter limit
        if self.parser_max_length < self.max_post_chars:
            errors.append("parser_max_length must be at least max_post_chars")

        if self.anthropic_max_tokens < 1:
            errors.append("anthropic_max_tokens must be at least 1")

        if self.port < 1 or self.port > 65535:
            errors.append("port must be between 1 and 65535")

        if errors:
            raise ConfigurationError("; ".join(errors))

    @property
    def provider(self) -> str:
        """Canonical provider name ("ollama" or "anthropic")."""
        return PROVIDER_ALIASES.get(self.llm_provider.lower(), self.llm_provider.lower())


def _parse_float(value: str | None, default: float) -> float:
    """Parse a string to float, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_int(value: str | None, default: int) -> int:
    """Parse a string to int, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_bool(value: str | None, default: bool) -> bool:
    """Parse a string flag such as "true"/"0", returning default if None."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def load_settings(env_path: str | Path | None = None, validate: bool = True) -> Settings:
    """Load settings from environment variables and .env file.

    Args:
        env_path: Optional path to .env file. If None, searches for .env
                  in current directory and parent directories.
        validate: If True, validate settings after loading.

    Returns:
        Settings instance with loaded configuration.

    Raises:
        ConfigurationError: If validate=True and configuration is invalid.
    """
    if env_path:
        load_dotenv(env_path)
    else:
        load_dotenv()

    settings = Settings(
        llm_provider=os.getenv("LLM_PROVIDER", "ollama"),
        ollama_host=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
        ollama_model=os.getenv("OLLAMA_MODEL", "llama3.2"),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-haiku-20240307"),
        anthropic_max_tokens=_parse_int(
            os.getenv("ANTHROPIC_MAX_TOKENS"), 2000
        ),
        model_timeout_seconds=_parse_float(
            os.getenv("MODEL_TIMEOUT_SECONDS"), 120.0
        ),
        model_max_retries=_parse_int(
            os.getenv("MODEL_MAX_RETRIES"), 0
        ),
        search_enabled=_parse_bool(
            os.getenv("SEARCH_ENABLED"), True
        ),
        search_timeout_seconds=_parse_float(
            os.getenv("SEARCH_TIMEOUT_SECONDS"), 6.0
        ),
        search_max_results=_parse_int(
            os.getenv("SEARCH_MAX_RESULTS"), 4
        ),
        search_api_url=os.getenv("SEARCH_API_URL", "https://api.duckduckgo.com/"),
        search_html_url=os.getenv("SEARCH_HTML_URL", "https://html.duckduckgo.com/html/"),
        default_post_count=_parse_int(
            os.getenv("DEFAULT_POST_COUNT"), 6
        ),
        max_post_count=_parse_int(
            os.getenv("MAX_POST_COUNT"), 20
        ),
        max_post_chars=_parse_int(
            os.getenv("MAX_POST_CHARS"), 280
        ),
        parser_max_length=_parse_int(
            os.getenv("PARSER_MAX_LENGTH"), 320
        ),
        environment=os.getenv("APP_ENV", "development"),
        port=_parse_int(
            os.getenv("PORT"), 3001
        ),
    )

    if validate:
        settings.validate()

    return settings
