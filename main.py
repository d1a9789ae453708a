"""Command-line interface for the user API service."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Sequence

import yaml

from userapi.config import Settings, format_duration, load_settings

logger = logging.getLogger("userapi.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User API service")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API server")
    serve_parser.add_argument(
        "--host",
        default=None,
        help="Bind address (default: SERVER_HOST or 0.0.0.0)",
    )
    serve_parser.add_argument(
        "--port",
        default=None,
        help="Listening port (default: SERVER_PORT or 8080)",
    )

    subparsers.add_parser("show-config", help="Print the resolved configuration")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "show-config"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _apply_overrides(settings: Settings, *, host: str | None, port: str | None) -> Settings:
    server = settings.server
    if host:
        server = replace(server, host=host)
    if port:
        server = replace(server, port=str(port))
    return replace(settings, server=server)


def _serve(settings: Settings) -> None:
    from userapi.api import create_app
    import uvicorn

    server = settings.server
    port = server.port_number
    logger.info("Starting server on %s:%s", server.host, port)
    logger.info(
        "Timeouts: read=%s write=%s idle=%s shutdown=%s",
        format_duration(server.read_timeout),
        format_duration(server.write_timeout),
        format_duration(server.idle_timeout),
        format_duration(server.shutdown_timeout),
    )

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=server.host,
        port=port,
        log_level="info",
        timeout_keep_alive=max(1, int(server.idle_timeout.total_seconds())),
        timeout_graceful_shutdown=max(1, int(server.shutdown_timeout.total_seconds())),
    )
    logger.info("Server exited properly")


def _show_config(settings: Settings) -> None:
    print(json.dumps(settings.describe(), indent=2))


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    try:
        settings = load_settings()
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    if args.command == "serve":
        settings = _apply_overrides(settings, host=args.host, port=args.port)
        try:
            _serve(settings)
        except ValueError as exc:
            raise SystemExit(f"Invalid server configuration: {exc}") from exc
    elif args.command == "show-config":
        _show_config(settings)


if __name__ == "__main__":
    main()
