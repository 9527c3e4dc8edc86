"""
Command line interface for the YNAB MCP server.

Usage:
    ynab-mcp-server serve                      # stdio (default)
    ynab-mcp-server serve -t http -p 8080      # streamable HTTP at /mcp
    ynab-mcp-server serve -c ./config.json
    ynab-mcp-server version
"""
import argparse
import logging
import sys
from typing import Optional, Sequence

from ynab_mcp import __version__
from ynab_mcp.config import ConfigError, configure, load_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str = "info") -> None:
    # stdout carries the stdio protocol, so logs go to stderr
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ynab-mcp-server",
        description="MCP server for YNAB (You Need A Budget)",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Start the MCP server")
    serve.add_argument(
        "-t",
        "--transport",
        choices=["stdio", "http"],
        help="Transport mode (default: stdio)",
    )
    serve.add_argument("-p", "--port", type=int, help="HTTP port (default: 8080)")
    serve.add_argument("--host", help="HTTP host (default: 0.0.0.0)")
    serve.add_argument("-c", "--config", help="Path to a JSON config file")

    subparsers.add_parser("version", help="Print the version")
    return parser


def serve(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(
            config_path=args.config,
            transport_mode=args.transport,
            http_port=args.port,
            http_host=args.host,
        )
    except ConfigError as e:
        configure_logging()
        logger.error(f"Configuration error: {e}")
        return 1

    configure_logging(settings.log_level)
    configure(settings)

    # Imported after configuration so tool modules see the final settings
    from ynab_mcp.mcp.server import build_http_app, mcp

    if settings.transport_mode == "http":
        import uvicorn

        logger.info(f"Starting YNAB MCP server (http) on {settings.http_host}:{settings.http_port}")
        uvicorn.run(
            build_http_app(settings),
            host=settings.http_host,
            port=settings.http_port,
            log_level=settings.log_level.lower(),
        )
    else:
        logger.info("Starting YNAB MCP server (stdio)")
        mcp.run()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"ynab-mcp-server {__version__}")
        return 0
    if args.command == "serve":
        return serve(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
