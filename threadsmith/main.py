#!/usr/bin/env python3
"""Main entry point for Threadsmith.

This module provides the CLI interface for generating threads, analyzing
topics and serving the HTTP API.

Usage:
    python -m threadsmith.main generate "database indexes"
    python -m threadsmith.main generate "database indexes" --enriched -n 8
    python -m threadsmith.main analyze "SQL query optimization"
    python -m threadsmith.main serve --port 3001
    python -m threadsmith.main -v generate "..."   # Verbose logging
"""

import argparse
import sys

from threadsmith.agent.runner import run_analyze, run_generate, run_server


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="threadsmith",
        description="Threadsmith - generate social-media threads from a topic",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a thread for a topic")
    generate.add_argument("topic", help="Topic to write about")
    generate.add_argument("-c", "--context", help="Additional context for the thread")
    generate.add_argument("-t", "--tone", help="Tone of voice (e.g. 'casual')")
    generate.add_argument("-n", "--count", type=int, help="Number of posts (1-20, default 6)")
    generate.add_argument(
        "--enriched",
        action="store_true",
        help="Use web research and a domain expert persona",
    )
    generate.add_argument("--intention", help="Refined intention for enriched generation")
    generate.add_argument("--domain", help="Domain id hint for enriched generation (e.g. 'database')")
    generate.add_argument("--json", action="store_true", help="Print the thread as JSON")

    analyze = subparsers.add_parser("analyze", help="Analyze the intention behind a topic")
    analyze.add_argument("topic", help="Topic to analyze")
    analyze.add_argument("-c", "--context", help="Additional context")

    serve = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve.add_argument("--host", default="0.0.0.0", help="Interface to bind")
    serve.add_argument("--port", type=int, help="Port to bind (default from PORT)")

    return parser.parse_args(args)


def main(args: list[str] | None = None) -> int:
    """Main entry point for Threadsmith.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parsed = parse_args(args)

    if parsed.command == "generate":
        return run_generate(
            parsed.topic,
            context=parsed.context,
            tone=parsed.tone,
            count=parsed.count,
            enriched=parsed.enriched,
            refined_intention=parsed.intention,
            domain=parsed.domain,
            as_json=parsed.json,
            verbose=parsed.verbose,
        )
    if parsed.command == "analyze":
        return run_analyze(parsed.topic, context=parsed.context, verbose=parsed.verbose)
    return run_server(host=parsed.host, port=parsed.port, verbose=parsed.verbose)


if __name__ == "__main__":
    sys.exit(main())
