"""Thread assembler: orchestrates prompt building, model calls and parsing.

The assembler is stateless between calls. Each operation builds a fresh
prompt, calls the model gateway once (plus optional retries when the
provider is unavailable), and parses the reply into a finalized thread.

Failure policy:
    - Missing topic: ``InvalidRequestError`` before any gateway call
    - Gateway failure: surfaced as ``GenerationError`` with a remediation hint
    - Malformed thread output: absorbed by the parser's fallback strategies
    - Intention analysis failure: absorbed, classification-derived judgment
    - Search failure or timeout: absorbed, generation proceeds unenriched
"""

import asyncio
import json
import logging
import re
import time
from typing import Any

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from threadsmith.config import Settings
from threadsmith.connectors.web_search import DuckDuckGoSearch, SearchGateway, SearchResult
from threadsmith.engines.content_enhancement import analyze_content_strategy, build_code_guidance
from threadsmith.engines.domain_classifier import DomainAnalysis, detect_domain, get_domain_by_id
from threadsmith.engines.llm_gateway import (
    ChatMessage,
    MalformedOutputError,
    ModelGateway,
    ModelNotAvailableError,
    ProviderUnavailableError,
    create_model_gateway,
)
from threadsmith.engines.observability import GenerationMetrics, log_generation_metrics
from threadsmith.engines.prompt_builder import PromptBuilder
from threadsmith.engines.thread_models import (
    GenerationRequest,
    IntentionAnalysis,
    Post,
    Thread,
)
from threadsmith.engines.thread_parser import ThreadParser, clean_post_content


logger = logging.getLogger(__name__)


JSON_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)
POST_ID_PATTERN = re.compile(r"-(\d+)$")

DEFAULT_TROUBLESHOOTING = "Check that the model provider is running and correctly configured"


class GenerationError(Exception):
    """Raised when the model gateway fails to produce a response.

    Attributes:
        topic: The topic being generated
        cause: The underlying reason for the failure
        troubleshooting: Remediation hint for the caller

    Example:
        >>> raise GenerationError("database indexes", "Connection refused")
        GenerationError: Failed to generate content for 'database indexes': Connection refused
    """

    def __init__(self, topic: str, cause: str, troubleshooting: str | None = None) -> None:
        self.topic = topic
        self.cause = cause
        self.troubleshooting = troubleshooting or DEFAULT_TROUBLESHOOTING
        super().__init__(f"Failed to generate content for '{topic}': {cause}")


def _is_transient(error: BaseException) -> bool:
    """Provider outages are retried; a missing model never is."""
    return isinstance(error, ProviderUnavailableError) and not isinstance(error, ModelNotAvailableError)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Extract a JSON object from a model reply.

    Accepts a bare object, an object inside a fenced code block, or the
    first ``{...}`` span embedded in prose. Returns None if nothing parses
    to a JSON object.

    Example:
        >>> extract_json_object('Sure! {"intention": "x"}')
        {'intention': 'x'}
    """
    if not text:
        return None

    candidates = [text.strip()]
    fence = JSON_FENCE_PATTERN.search(text)
    if fence:
        candidates.append(fence.group(1).strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _optional_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def position_from_post_id(post_id: str) -> int:
    """Parse the position out of a ``post-<n>`` id, defaulting to 1."""
    match = POST_ID_PATTERN.search(post_id or "")
    if match and int(match.group(1)) >= 1:
        return int(match.group(1))
    return 1


class ThreadAssembler:
    """Generate threads end to end.

    Attributes:
        gateway: Model gateway used for every model call
        search: Optional search gateway for enriched generation
        settings: Configuration (timeouts, counts, limits)
        prompt_builder: Prompt builder shared by all operations
        parser: Thread parser using the configured leniency ceiling
    """

    def __init__(
        self,
        gateway: ModelGateway,
        search: SearchGateway | None = None,
        settings: Settings | None = None,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        self.gateway = gateway
        self.search = search
        self.settings = settings or Settings()
        self.prompt_builder = prompt_builder or PromptBuilder(
            max_post_chars=self.settings.max_post_chars,
            max_post_count=self.settings.max_post_count,
        )
        self.parser = ThreadParser(max_length=self.settings.parser_max_length)
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=10)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ThreadAssembler":
        """Wire the configured model gateway and DuckDuckGo search."""
        search = DuckDuckGoSearch(settings) if settings.search_enabled else None
        return cls(create_model_gateway(settings), search=search, settings=settings)

    @property
    def provider_name(self) -> str:
        return getattr(self.gateway, "provider_name", type(self.gateway).__name__)

    def _request(self, topic: str | None, context: str | None = None, tone: str | None = None,
                 count: Any = None) -> GenerationRequest:
        return GenerationRequest.from_input(
            topic,
            context=context,
            tone=tone,
            count=count,
            default_count=self.settings.default_post_count,
            max_count=self.settings.max_post_count,
        )

    async def _chat_once(self, messages: list[ChatMessage]) -> str:
        timeout = self.settings.model_timeout_seconds
        try:
            return await asyncio.wait_for(self.gateway.chat(messages), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ProviderUnavailableError(
                self.provider_name,
                f"Model call timed out after {timeout} seconds",
                "Increase MODEL_TIMEOUT_SECONDS or use a smaller model",
            ) from e

    async def _call_model(self, messages: list[ChatMessage]) -> str:
        """Call the gateway under the model timeout, retrying provider outages."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.model_max_retries + 1),
            wait=self.retry_wait,
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(f"Retrying model call (attempt {attempt.retry_state.attempt_number})")
                text = await self._chat_once(messages)
        return text

    async def _generate(
        self,
        request: GenerationRequest,
        system_prompt: str,
        prompt: str,
        enriched: bool = False,
        search_result_count: int = 0,
    ) -> Thread:
        started = time.monotonic()
        messages = [
            ChatMessage("system", system_prompt),
            ChatMessage("user", prompt),
        ]

        try:
            text = await self._call_model(messages)
        except MalformedOutputError as e:
            logger.warning(f"Model output unusable, falling back to parser recovery: {e}")
            text = ""
        except ProviderUnavailableError as e:
            logger.error(f"Model gateway unavailable: {e.message}")
            raise GenerationError(request.topic, e.message, e.troubleshooting) from e
        except Exception as e:
            logger.error(f"Model call failed: {e}")
            raise GenerationError(request.topic, str(e)) from e

        result = self.parser.parse_with_report(text, request.count, request.topic)

        metrics = GenerationMetrics(
            provider=self.provider_name,
            strategy=result.strategy,
            requested_count=request.count,
            accepted_count=len(result.posts),
            search_result_count=search_result_count,
            enriched=enriched,
            elapsed_seconds=time.monotonic() - started,
        )
        log_generation_metrics(metrics)

        return Thread(topic=request.topic, posts=result.posts, metadata=metrics)

    async def generate_thread(
        self,
        topic: str,
        context: str | None = None,
        tone: str | None = None,
        count: Any = None,
    ) -> Thread:
        """Generate a thread with the baseline prompt.

        Raises:
            InvalidRequestError: If the topic is missing or blank.
            GenerationError: If the model gateway fails.
        """
        request = self._request(topic, context, tone, count)
        logger.info(f"Generating {request.count}-post thread for '{request.topic}'")

        prompt = self.prompt_builder.build(
            request.topic,
            context=request.context,
            tone=request.tone,
            count=request.count,
        )
        return await self._generate(request, self.prompt_builder.get_system_prompt(), prompt)

    async def analyze_intention(self, topic: str, context: str | None = None) -> IntentionAnalysis:
        """Classify the topic and ask the model to summarize the user's intent.

        Never fails because of the model: an unreachable gateway or an
        unparseable reply yields a judgment derived from the classifier.

        Raises:
            InvalidRequestError: If the topic is missing or blank.
        """
        request = self._request(topic, context)
        classification = detect_domain(request.topic, request.context)
        domain = classification.primary_domain
        logger.info(
            f"Classified '{request.topic}' as {domain.id} "
            f"(confidence {classification.confidence:.2f}, {classification.expertise_level})"
        )

        messages = [
            ChatMessage("system", self.prompt_builder.get_intention_system_prompt(domain)),
            ChatMessage("user", self.prompt_builder.build_intention_prompt(request.topic, request.context, domain)),
        ]

        try:
            reply = await self._call_model(messages)
        except Exception as e:
            logger.warning(f"Intention analysis failed, using classification fallback: {e}")
            return self._fallback_intention(classification)

        logger.debug(f"Raw intention analysis response: {reply[:500]}")
        data = extract_json_object(reply)
        if data is None:
            logger.warning("Failed to parse intention analysis JSON, using classification fallback")
            return self._fallback_intention(classification)

        return IntentionAnalysis(
            intention=_optional_text(data.get("intention")) or f"{domain.name} content creation",
            is_on_topic=data.get("isOnTopic") is not False,
            domain_id=domain.id,
            confidence=classification.confidence,
            suggested_context=_optional_text(data.get("suggestedContext")),
            suggested_hook=classification.suggested_hook,
            expertise_level=classification.expertise_level,
            fallback_to_original=data.get("fallbackToOriginal") is True,
        )

    def _fallback_intention(self, classification: DomainAnalysis) -> IntentionAnalysis:
        # On-topic only when the classifier actually matched a keyword
        domain = classification.primary_domain
        return IntentionAnalysis(
            intention=f"{domain.name} content creation",
            is_on_topic=classification.matched,
            domain_id=domain.id,
            confidence=classification.confidence,
            suggested_hook=classification.suggested_hook,
            expertise_level=classification.expertise_level,
            fallback_to_original=True,
        )

    async def _search(self, topic: str, domain_id: str) -> list[SearchResult]:
        """Run the blocking search in a worker thread under a hard timeout."""
        if self.search is None or not self.settings.search_enabled:
            return []

        timeout = self.settings.search_timeout_seconds
        try:
            results = await asyncio.wait_for(
                asyncio.to_thread(self.search.search, topic, domain_id),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Web search timed out after {timeout} seconds, continuing without results")
            return []
        except Exception as e:
            logger.warning(f"Web search failed, continuing without results: {e}")
            return []

        return list(results or [])[:self.settings.search_max_results]

    async def generate_thread_with_context(
        self,
        topic: str,
        context: str | None = None,
        refined_intention: str | None = None,
        domain_hint: str | None = None,
        count: Any = None,
    ) -> Thread:
        """Generate a thread with the enriched, persona-aware prompt.

        Search is best-effort: a failure or timeout leaves the research
        digest empty and generation proceeds.

        Raises:
            InvalidRequestError: If the topic is missing or blank.
            GenerationError: If the model gateway fails.
        """
        request = self._request(topic, context, count=count)
        classification = detect_domain(request.topic, request.context)
        domain = get_domain_by_id(domain_hint) or classification.primary_domain
        logger.info(f"Generating enriched {request.count}-post thread for '{request.topic}' ({domain.id})")

        search_results = await self._search(request.topic, domain.id)

        enhancement = analyze_content_strategy(request.topic, domain.id, request.context, request.count)
        logger.debug(f"Content strategy: {enhancement.strategy} ({len(enhancement.code_examples)} code samples)")

        enhanced_context = self.prompt_builder.build_enhanced_context(
            context=request.context,
            refined_intention=_optional_text(refined_intention),
            search_results=search_results,
            focus=f"{domain.description}, with practical implementation examples and current best practices.",
        )
        prompt = self.prompt_builder.build_enriched(
            request.topic,
            request.count,
            enhanced_context,
            persona=domain.expert_persona,
            code_guidance=build_code_guidance(enhancement),
            suggested_hook=domain.hook,
        )
        system_prompt = self.prompt_builder.get_enriched_system_prompt(domain.expert_persona, request.count)

        return await self._generate(
            request,
            system_prompt,
            prompt,
            enriched=True,
            search_result_count=len(search_results),
        )

    async def regenerate_post(self, post_id: str, original_content: str, context: str | None = None) -> Post:
        """Rewrite a single post.

        The returned post keeps ``post_id``, takes its position from the id
        and has ``total_count == 0``; the caller re-derives totals.

        Raises:
            GenerationError: If the gateway fails or returns nothing usable.
        """
        prompt = self.prompt_builder.build_rewrite_prompt(original_content, context)
        messages = [ChatMessage("user", prompt)]

        try:
            reply = await self._call_model(messages)
        except ProviderUnavailableError as e:
            raise GenerationError(original_content[:50], e.message, e.troubleshooting) from e
        except Exception as e:
            raise GenerationError(original_content[:50], str(e)) from e

        content = clean_post_content(reply).strip('"').strip()
        if not content:
            raise GenerationError(original_content[:50], "Model returned empty rewrite")

        logger.info(f"Regenerated {post_id} ({len(content)} chars)")
        return Post(id=post_id, content=content, position=position_from_post_id(post_id))
