"""Command line entry point."""

import argparse
import sys

import structlog
import uvicorn

from finplan.config import configure_logging, get_settings

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="finplan",
        description="finplan function host",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve                        # Serve on the configured host and port
  %(prog)s serve --port=9000            # Serve on another port
  %(prog)s serve --log-format=json      # JSON logs for log shipping
        """,
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    serve = subcommands.add_parser("serve", help="Run the HTTP API under uvicorn")
    serve.add_argument("--host", type=str, default=None, help="Bind address (default: settings)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: settings)")
    serve.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default: settings)",
    )
    serve.add_argument(
        "--log-format",
        type=str,
        choices=["json", "console"],
        default=None,
        help="Log renderer (default: settings)",
    )
    return parser


def serve(args: argparse.Namespace) -> None:
    settings = get_settings()
    configure_logging(level=args.log_level, format=args.log_format)

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("starting_finplan_api", host=host, port=port)
    uvicorn.run(
        "finplan.api:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=(args.log_level or settings.log_level).lower(),
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Usage:
        finplan serve
        python -m finplan serve --port=9000
    """
    args = build_parser().parse_args(argv)

    try:
        if args.command == "serve":
            serve(args)
    except KeyboardInterrupt:
        logger.info("finplan_interrupted")
    except Exception as e:
        logger.exception("finplan_error", error=str(e))
        sys.exit(1)
