"""Model gateway: a uniform chat interface over LLM providers.

This module provides the ``ModelGateway`` protocol used by the thread
assembler, plus two adapters: a local Ollama runtime and Anthropic Claude.
Provider SDKs are imported lazily so that only the selected provider's
package has to be installed.

Custom Exceptions:
    ProviderUnavailableError: Raised when the provider cannot be reached
    ModelNotAvailableError: Raised when the configured model does not exist
    MalformedOutputError: Raised when the provider answers without usable text
"""

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from threadsmith.config import ConfigurationError

if TYPE_CHECKING:
    from threadsmith.config import Settings


logger = logging.getLogger(__name__)


VALID_ROLES = ("system", "user", "assistant")

DEFAULT_ANTHROPIC_SYSTEM_PROMPT = "You are a helpful assistant."


class ProviderUnavailableError(Exception):
    """Raised when the model provider cannot be reached or rejects the call.

    Attributes:
        provider: Name of the provider that failed
        message: The error message describing the failure
        troubleshooting: Instructions for resolving the issue

    Example:
        >>> raise ProviderUnavailableError("ollama", "Connection refused")
        ProviderUnavailableError: Connection refused
        Ensure Ollama is running: 'ollama serve'
        Check if Ollama is accessible at http://localhost:11434
    """

    TROUBLESHOOTING = {
        "ollama": (
            "Ensure Ollama is running: 'ollama serve'\n"
            "Check if Ollama is accessible at http://localhost:11434"
        ),
        "anthropic": (
            "Check that ANTHROPIC_API_KEY is set and valid\n"
            "Verify your Anthropic account has remaining quota"
        ),
    }

    def __init__(
        self,
        provider: str,
        message: str = "Cannot connect to the model provider",
        troubleshooting: str | None = None,
    ) -> None:
        self.provider = provider
        self.message = message
        self.troubleshooting = troubleshooting or self.TROUBLESHOOTING.get(
            provider, "Check the model provider configuration"
        )
        super().__init__(f"{message}\n{self.troubleshooting}")


class ModelNotAvailableError(ProviderUnavailableError):
    """Raised when the configured model is not available from the provider.

    Example:
        >>> raise ModelNotAvailableError("ollama", "llama3.2")
        ModelNotAvailableError: Model 'llama3.2' is not available in ollama
        Pull the model with: 'ollama pull llama3.2'
    """

    def __init__(self, provider: str, model: str) -> None:
        self.model = model
        if provider == "ollama":
            troubleshooting = f"Pull the model with: 'ollama pull {model}'"
        else:
            troubleshooting = f"Check that '{model}' is a valid {provider} model name"
        super().__init__(
            provider,
            f"Model '{model}' is not available in {provider}",
            troubleshooting,
        )


class MalformedOutputError(Exception):
    """Raised when the provider responds but the response carries no text."""

    def __init__(self, provider: str, cause: str = "Model returned empty response") -> None:
        self.provider = provider
        self.cause = cause
        super().__init__(f"{provider} returned unusable output: {cause}")


@dataclass(frozen=True)
class ChatMessage:
    """One message of a chat exchange.

    Attributes:
        role: "system", "user" or "assistant"
        content: Message text
    """
    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in VALID_ROLES:
            raise ValueError(f"Invalid chat role '{self.role}', expected one of {VALID_ROLES}")

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@runtime_checkable
class ModelGateway(Protocol):
    """Anything that can answer a chat exchange with text.

    Implementations raise ``ProviderUnavailableError`` (or its subclass
    ``ModelNotAvailableError``) when the provider cannot serve the request
    and ``MalformedOutputError`` when it answers without text.
    """

    @property
    def provider_name(self) -> str:
        ...

    async def chat(self, messages: list[ChatMessage]) -> str:
        ...


def _extract_ollama_content(response) -> str:
    """Pull the assistant text out of an Ollama chat response."""
    if hasattr(response, "message"):
        message = response.message
        return message.content if hasattr(message, "content") else str(message)
    if isinstance(response, dict):
        message = response.get("message", {})
        return message.get("content", "") if isinstance(message, dict) else str(message)
    return str(response)


class OllamaGateway:
    """Gateway for a local Ollama runtime.

    Attributes:
        host: Base URL of the Ollama server.
        model: Model name to run (e.g. "llama3.2").
        timeout: Request timeout in seconds.

    Example:
        >>> gateway = OllamaGateway(model="llama3.2")
        >>> reply = await gateway.chat([ChatMessage("user", "Hello!")])
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "llama3.2",
        timeout: float = 120.0,
    ) -> None:
        self.host = host
        self.model = model
        self.timeout = timeout
        self._client = None

    @property
    def provider_name(self) -> str:
        return "ollama"

    def _get_client(self):
        if self._client is None:
            try:
                import ollama
            except ImportError:
                raise ProviderUnavailableError(
                    "ollama",
                    "The 'ollama' package is not installed. Install it with: pip install ollama",
                )
            self._client = ollama.AsyncClient(host=self.host, timeout=self.timeout)
        return self._client

    async def chat(self, messages: list[ChatMessage]) -> str:
        """Send a non-streaming chat request and return the reply text.

        Raises:
            ModelNotAvailableError: If Ollama reports the model as missing.
            ProviderUnavailableError: If Ollama cannot be reached.
            MalformedOutputError: If the reply has no text.
        """
        client = self._get_client()
        logger.debug(f"Sending chat request to Ollama model '{self.model}' ({len(messages)} messages)")

        try:
            response = await client.chat(
                model=self.model,
                messages=[message.to_dict() for message in messages],
                stream=False,
            )
        except Exception as e:
            error_message = str(e)
            status_code = getattr(e, "status_code", None)
            if status_code == 404 or "not found" in error_message.lower():
                raise ModelNotAvailableError("ollama", self.model) from e
            if "timeout" in error_message.lower() or "timed out" in error_message.lower():
                raise ProviderUnavailableError(
                    "ollama", f"Ollama request timed out after {self.timeout} seconds"
                ) from e
            raise ProviderUnavailableError("ollama", f"Chat request failed: {error_message}") from e

        content = _extract_ollama_content(response)
        if not content or not content.strip():
            raise MalformedOutputError("ollama")
        return content


class AnthropicGateway:
    """Gateway for Anthropic Claude.

    Anthropic takes the system prompt as a separate argument, so the first
    system message is lifted out of the conversation before sending.

    Attributes:
        model: Claude model identifier.
        max_tokens: Completion token cap.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-haiku-20240307",
        max_tokens: int = 2000,
        timeout: float = 120.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY environment variable is required for the Anthropic provider"
            )
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = None

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def _get_client(self):
        if self._client is None:
            try:
                from anthropic import AsyncAnthropic
            except ImportError:
                raise ProviderUnavailableError(
                    "anthropic",
                    "The 'anthropic' package is not installed. Install it with: pip install anthropic",
                )
            self._client = AsyncAnthropic(api_key=self.api_key, timeout=self.timeout)
        return self._client

    @staticmethod
    def split_system_prompt(messages: list[ChatMessage]) -> tuple[str, list[dict[str, str]]]:
        """Separate the system prompt from the conversation messages."""
        system = next(
            (message.content for message in messages if message.role == "system"),
            DEFAULT_ANTHROPIC_SYSTEM_PROMPT,
        )
        conversation = [message.to_dict() for message in messages if message.role != "system"]
        return system, conversation

    async def chat(self, messages: list[ChatMessage]) -> str:
        """Send a messages request and join the text blocks of the reply.

        Raises:
            ModelNotAvailableError: If the model name is rejected.
            ProviderUnavailableError: On connection, auth or quota failures.
            MalformedOutputError: If the reply has no text blocks.
        """
        client = self._get_client()
        import anthropic

        system, conversation = self.split_system_prompt(messages)
        logger.debug(f"Sending chat request to Anthropic model '{self.model}' ({len(conversation)} messages)")

        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system,
                messages=conversation,
            )
        except anthropic.NotFoundError as e:
            raise ModelNotAvailableError("anthropic", self.model) from e
        except anthropic.APIError as e:
            raise ProviderUnavailableError("anthropic", f"Anthropic request failed: {e}") from e

        text = "\n".join(
            block.text
            for block in getattr(response, "content", None) or []
            if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise MalformedOutputError("anthropic", "Response contained no text blocks")
        return text


def create_model_gateway(settings: "Settings") -> ModelGateway:
    """Build the gateway selected by ``settings.llm_provider``.

    Raises:
        ConfigurationError: If the provider name is unknown or the selected
            provider is missing required credentials.
    """
    provider = settings.provider
    logger.info(f"Initializing model gateway with provider: {provider}")

    if provider == "anthropic":
        return AnthropicGateway(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            max_tokens=settings.anthropic_max_tokens,
            timeout=settings.model_timeout_seconds,
        )
    if provider == "ollama":
        return OllamaGateway(
            host=settings.ollama_host,
            model=settings.ollama_model,
            timeout=settings.model_timeout_seconds,
        )
    raise ConfigurationError(f"Unknown LLM_PROVIDER '{settings.llm_provider}'")
