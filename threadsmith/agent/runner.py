"""Runner module for Threadsmith.

This module wires settings, the model gateway and the assembler together
for the command-line entry points and maps outcomes to exit codes.
"""

import asyncio
import json
import logging
import sys

from threadsmith.agent.thread_assembler import GenerationError, ThreadAssembler
from threadsmith.config.settings import ConfigurationError, Settings, load_settings
from threadsmith.engines.thread_models import InvalidRequestError, Thread


# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_GENERATION_ERROR = 2
EXIT_INVALID_REQUEST = 3


logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _load_settings() -> Settings | None:
    try:
        settings = load_settings(validate=True)
        logger.info("Configuration loaded successfully")
        return settings
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return None


def format_thread(thread: Thread) -> str:
    """Render a thread for the terminal, one post per block."""
    blocks = [
        f"{post.position}/{post.total_count} {post.content}\n({post.character_length} chars)"
        for post in thread.posts
    ]
    return "\n\n".join(blocks)


def run_generate(
    topic: str,
    context: str | None = None,
    tone: str | None = None,
    count: int | None = None,
    enriched: bool = False,
    refined_intention: str | None = None,
    domain: str | None = None,
    as_json: bool = False,
    verbose: bool = False,
) -> int:
    """Generate one thread and print it to stdout.

    Returns:
        Exit code:
        - 0: Success
        - 1: Configuration error
        - 2: Generation error
        - 3: Invalid request (e.g. blank topic)
    """
    _setup_logging(verbose)

    settings = _load_settings()
    if settings is None:
        return EXIT_CONFIG_ERROR

    try:
        assembler = ThreadAssembler.from_settings(settings)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    try:
        if enriched:
            thread = asyncio.run(assembler.generate_thread_with_context(
                topic,
                context=context,
                refined_intention=refined_intention,
                domain_hint=domain,
                count=count,
            ))
        else:
            thread = asyncio.run(assembler.generate_thread(topic, context=context, tone=tone, count=count))
    except InvalidRequestError as e:
        logger.error(f"Invalid request: {e.message}")
        return EXIT_INVALID_REQUEST
    except GenerationError as e:
        logger.error(str(e))
        logger.error(e.troubleshooting)
        return EXIT_GENERATION_ERROR

    if as_json:
        print(json.dumps(thread.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(format_thread(thread))

    return EXIT_SUCCESS


def run_analyze(topic: str, context: str | None = None, verbose: bool = False) -> int:
    """Run intention analysis for a topic and print the JSON result."""
    _setup_logging(verbose)

    settings = _load_settings()
    if settings is None:
        return EXIT_CONFIG_ERROR

    try:
        assembler = ThreadAssembler.from_settings(settings)
        analysis = asyncio.run(assembler.analyze_intention(topic, context=context))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    except InvalidRequestError as e:
        logger.error(f"Invalid request: {e.message}")
        return EXIT_INVALID_REQUEST

    print(json.dumps(analysis.to_dict(), indent=2, ensure_ascii=False))
    return EXIT_SUCCESS


def run_server(host: str = "0.0.0.0", port: int | None = None, verbose: bool = False) -> int:
    """Serve the HTTP API with uvicorn until interrupted."""
    _setup_logging(verbose)

    settings = _load_settings()
    if settings is None:
        return EXIT_CONFIG_ERROR

    import uvicorn

    from threadsmith.server import create_app

    port = port or settings.port
    logger.info(f"Starting Threadsmith API on {host}:{port} (provider: {settings.provider})")
    uvicorn.run(create_app(settings), host=host, port=port, log_level="debug" if verbose else "info")
    return EXIT_SUCCESS
