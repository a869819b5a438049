"""Command-line interface for the transcript bridge.

Commands:
    server <callback-url>            Register the webhook and serve callbacks.
    upload <source-url> [--tag T]    Register an audio and start its upload.

Settings come from the environment (see ``Settings.from_env``). Logs go to
stderr; the upload command prints its JSON result on stdout.
"""

import argparse
import asyncio
import json
import sys

import structlog

from transcript_bridge.config import Settings, configure_logging
from transcript_bridge.operations import OperationInitiator
from transcript_bridge.service import AudioServiceClient

logger = structlog.get_logger(__name__)


async def run_upload_command(args: argparse.Namespace, settings: Settings) -> int:
    """Execute the 'upload' command.

    Args:
        args: Parsed command-line arguments.
        settings: Application settings.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        async with AudioServiceClient(settings) as service:
            initiator = OperationInitiator(service, settings)
            result = await initiator.upload(args.url, args.tags)
    except Exception as e:
        logger.error("upload_failed", url=args.url, error=str(e))
        return 1

    print(json.dumps(result.to_output()))
    return 0


def run_server_command(args: argparse.Namespace, settings: Settings) -> int:
    """Execute the 'server' command.

    Args:
        args: Parsed command-line arguments.
        settings: Application settings.

    Returns:
        Exit code.
    """
    import uvicorn

    from transcript_bridge.api import create_app

    app = create_app(settings, args.url)
    logger.info("server_listening", host=args.host, port=settings.port)
    uvicorn.run(app, host=args.host, port=settings.port, log_config=None)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="transcript-bridge",
        description="Bridge between remote audio operations and local transcript storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    server_parser = subparsers.add_parser("server", help="Serve webhook callbacks")
    server_parser.add_argument("url", help="Public callback URL registered with the service")
    server_parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Interface to bind",
    )

    upload_parser = subparsers.add_parser("upload", help="Upload audio from a URL")
    upload_parser.add_argument("url", help="Source URL of the recording")
    upload_parser.add_argument(
        "--tag",
        dest="tags",
        action="append",
        default=[],
        help="Extra tag for the upload operation (repeatable)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI.

    Returns:
        Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help(sys.stderr)
        return 1

    settings = Settings.from_env()
    configure_logging(settings.log_level, json_output=args.json_logs)

    if args.command == "upload":
        return asyncio.run(run_upload_command(args, settings))
    elif args.command == "server":
        return run_server_command(args, settings)

    return 1


if __name__ == "__main__":
    sys.exit(main())
