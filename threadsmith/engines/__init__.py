"""Engines module - core processing components."""

from threadsmith.engines.llm_gateway import (
    AnthropicGateway,
    ChatMessage,
    MalformedOutputError,
    ModelGateway,
    ModelNotAvailableError,
    OllamaGateway,
    ProviderUnavailableError,
    create_model_gateway,
)
from threadsmith.engines.prompt_builder import PromptBuilder, normalize_topic, validate_post_count
from threadsmith.engines.thread_models import (
    GenerationRequest,
    IntentionAnalysis,
    InvalidRequestError,
    Post,
    Thread,
)
from threadsmith.engines.thread_parser import ThreadParser, parse_thread_content

__all__ = [
    # Prompt Builder
    "PromptBuilder",
    "normalize_topic",
    "validate_post_count",
    # Thread Parser
    "ThreadParser",
    "parse_thread_content",
    # Models
    "GenerationRequest",
    "IntentionAnalysis",
    "Post",
    "Thread",
    # Model Gateway
    "AnthropicGateway",
    "ChatMessage",
    "ModelGateway",
    "OllamaGateway",
    "create_model_gateway",
    # Exceptions
    "InvalidRequestError",
    "MalformedOutputError",
    "ModelNotAvailableError",
    "ProviderUnavailableError",
]
