"""CLI entry point for toolchat-server.

This module provides the command-line interface for starting the toolchat-server.
It can be invoked as `toolchat-server` (via the script entry point) or
`python -m toolchat_server`.
"""

import argparse
import logging
import sys

import uvicorn

from toolchat_server import __version__, create_app
from toolchat_server.config import ToolchatServerSettings


def main() -> None:
    """Main entry point for the toolchat-server CLI.

    Parses command-line arguments and starts the uvicorn server with the
    FastAPI application.
    """
    parser = argparse.ArgumentParser(
        prog="toolchat-server",
        description="Headless FastAPI server for tool-augmented LLM conversations via Ollama",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"toolchat-server {__version__}",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via TOOLCHAT_HOST)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: 8000, can be set via TOOLCHAT_PORT)",
    )

    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via TOOLCHAT_OLLAMA_HOST)",
    )

    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Ollama model to chat with (default: llama3.2:latest, can be set via TOOLCHAT_MODEL)",
    )

    parser.add_argument(
        "--provider",
        action="append",
        default=None,
        metavar="ID=URL",
        help="Capability provider to make available; repeatable (can be set via TOOLCHAT_PROVIDERS as JSON)",
    )

    parser.add_argument(
        "--enable",
        action="append",
        default=None,
        metavar="ID",
        help="Provider id to enable at startup; repeatable (can be set via TOOLCHAT_ENABLED_PROVIDERS)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via TOOLCHAT_LOG_LEVEL)",
    )

    args = parser.parse_args()

    # Build settings, CLI args override environment variables
    settings_kwargs = {}
    if args.host is not None:
        settings_kwargs["host"] = args.host
    if args.port is not None:
        settings_kwargs["port"] = args.port
    if args.ollama_host is not None:
        settings_kwargs["ollama_host"] = args.ollama_host
    if args.model is not None:
        settings_kwargs["model"] = args.model
    if args.provider is not None:
        providers = {}
        for item in args.provider:
            provider_id, sep, url = item.partition("=")
            if not sep or not provider_id or not url:
                parser.error(f"--provider expects ID=URL, got {item!r}")
            providers[provider_id] = url
        settings_kwargs["providers"] = providers
    if args.enable is not None:
        settings_kwargs["enabled_providers"] = args.enable
    if args.log_level is not None:
        settings_kwargs["log_level"] = args.log_level

    settings = ToolchatServerSettings(**settings_kwargs)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    sys.exit(main())
