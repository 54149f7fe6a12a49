"""Waymark - operation ledger bridge.

Usage:
    waymark serve --document fixture.json    Serve JSON-RPC on stdio against a fixture document
    waymark methods                          List available commands

Environment Variables:
    WAYMARK_HISTORY_SIZE      Ledger capacity (default: 50)
    WAYMARK_RECONCILE_WINDOW  Records inspected per reconciliation stage (default: 10)
    WAYMARK_LOG_LEVEL         Logging level (default: INFO)
    WAYMARK_LOG_PATH          Log file (default: ~/.waymark/waymark.log)
"""

from __future__ import annotations

import argparse
import sys

from waymark import __version__
from waymark.config import LIMITS
from waymark.errors import ConfigurationError
from waymark.logging_setup import configure_logging
from waymark.memory_document import InMemoryDocument
from waymark.session import BridgeSession
from waymark.settings import settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="waymark",
        description="Operation ledger, reconciliation and recovery bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Serve JSON-RPC over stdio")
    serve.add_argument(
        "--document",
        help="JSON fixture describing the document to operate on",
    )
    serve.add_argument(
        "--capacity",
        type=int,
        default=LIMITS.HISTORY_SIZE,
        help=f"Ledger capacity (default: {LIMITS.HISTORY_SIZE})",
    )
    serve.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.log_level.upper(),
        help=f"Logging level (default: {settings.log_level})",
    )
    serve.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to stderr only",
    )

    sub.add_parser("methods", help="List available commands")
    return parser


def _open_session(document_path: str | None, capacity: int) -> BridgeSession:
    """Build a session over a fixture document.

    Raises:
        ConfigurationError: No fixture given, or it cannot be read.
    """
    if not document_path:
        # A real host supplies its own accessor; the CLI needs a fixture.
        raise ConfigurationError(
            "No document to operate on",
            setting="--document",
            suggestion="Pass a JSON fixture, or embed waymark in the host with its own accessor",
        )
    try:
        document = InMemoryDocument.load(document_path)
    except (OSError, ValueError, KeyError) as e:
        raise ConfigurationError(
            f"Cannot load document {document_path}: {e}",
            setting="--document",
            suggestion="Check the path and the fixture format",
        ) from e
    return BridgeSession.create(document, capacity=capacity)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "methods":
        from waymark import rpc_handlers  # noqa: F401
        from waymark.rpc.router import methods

        for name in methods():
            print(name)
        return 0

    if args.command != "serve":
        parser.print_help()
        return 2

    configure_logging(args.log_level, to_file=not args.no_log_file)

    try:
        session = _open_session(args.document, args.capacity)
    except ConfigurationError as e:
        print(f"waymark: {e.message} ({e.context['suggestion']})", file=sys.stderr)
        return 2

    from waymark.server import run_stdio_server

    run_stdio_server(session)
    return 0


if __name__ == "__main__":
    sys.exit(main())
