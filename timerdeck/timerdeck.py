"""Timer Deck - Main entry point.

Loads settings, configures logging and serves the timer API.
"""

import argparse
import logging
from pathlib import Path

from timerdeck.core.settings import DEFAULT_CONFIG_FILE, load_settings

logger = logging.getLogger("timerdeck")


def setup_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if debug else logging.INFO
    format_str = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt="%H:%M:%S",
    )
    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Timer Deck - named, categorized countdown timers"
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help="Path to config JSON file",
    )
    parser.add_argument(
        "--data-file",
        type=Path,
        default=None,
        help="Where timers are saved",
    )
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on")
    parser.add_argument(
        "--in-memory",
        action="store_true",
        default=None,
        help="Keep timers in memory only",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Log config problems at the requested level, before settings exist
    setup_logging(bool(args.debug))

    settings = load_settings(
        args.config,
        overrides={
            "data_file": args.data_file,
            "host": args.host,
            "port": args.port,
            "in_memory": args.in_memory,
            "debug": args.debug,
        },
    )
    if settings.debug:
        logging.getLogger("timerdeck").setLevel(logging.DEBUG)

    from timerdeck.web.server import run_server

    run_server(settings)


if __name__ == "__main__":
    main()
