"""
Command-line entry point.

    python -m hermes                       # localhost:3000, seeded feed
    python -m hermes --port 8000 --no-seed
    HERMES_LOG_FORMAT=json hermes -H 0.0.0.0

Flags override ``HERMES_*`` environment variables, which override the
defaults in ServerConfig.
"""

from typing import Optional, Sequence
import argparse
import sys

from . import __version__
from .app import create_app
from .config import ServerConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hermes",
        description="Hermes: a tiny in-memory feed of short posts over HTTP/JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "endpoints:\n"
            "  GET  /feed        every post, oldest first\n"
            "  POST /post        create a post\n"
            "  GET  /post/:id    one post by uuid\n"
        ),
    )

    parser.add_argument("--host", "-H", help="Address to bind (default: localhost)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 3000)")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Minimum worker threads; the pool grows to twice this under load",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--no-seed",
        dest="seed",
        action="store_false",
        default=None,
        help="Start with an empty feed instead of the launch posts",
    )
    parser.add_argument("--version", "-v", action="version", version=f"hermes {__version__}")

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Overlay command-line flags on the environment configuration."""
    config = ServerConfig.from_env()

    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    if args.seed is not None:
        config.seed = args.seed

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = create_app(config)
        server.run()
    except (OSError, ValueError) as e:
        print(f"hermes: error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
