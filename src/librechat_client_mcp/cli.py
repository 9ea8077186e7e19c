"""Command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from typing import Any

import pydantic

from librechat_client_mcp import SERVER_NAME, __version__
from librechat_client_mcp.config import Settings, TransportMode, load_settings
from librechat_client_mcp.log import configure_logging
from librechat_client_mcp.transports.manager import TransportManager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=SERVER_NAME,
        description="MCP server for the LibreChat client package source.",
    )
    parser.add_argument(
        "-g",
        "--github-api-key",
        dest="github_token",
        help="GitHub personal access token (raises the API limit to 5000 req/h)",
    )
    parser.add_argument(
        "-m",
        "--mode",
        help="Transport mode: " + ", ".join(m.value for m in TransportMode) + " (default: stdio)",
    )
    parser.add_argument("-p", "--port", help="HTTP port (default: 7424)")
    parser.add_argument("-H", "--host", help="HTTP bind host (default: 0.0.0.0)")
    parser.add_argument(
        "--cors",
        dest="cors_origins",
        help='Comma-separated allowed origins (default: "*")',
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--log-level", help="Log level (default: INFO)")
    parser.add_argument(
        "--log-json",
        action="store_const",
        const=True,
        default=None,
        help="Emit JSON log lines",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {
        "github_token": args.github_token,
        "mode": args.mode,
        "port": args.port,
        "host": args.host,
        "cors_origins": args.cors_origins,
        "log_level": args.log_level,
        "log_json": args.log_json,
    }
    return load_settings(overrides, config_file=args.config)


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        settings = settings_from_args(args)
    except pydantic.ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(settings.log_level, json_output=settings.log_json)

    try:
        asyncio.run(TransportManager(settings).run())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Server error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
