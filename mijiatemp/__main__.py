"""Entry point for MijiaTemp: python -m mijiatemp."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .app import MijiaTempApp


def setup_logging(verbose: bool, quiet: bool = False) -> None:
    """Configure logging."""
    if quiet:
        logging.basicConfig(level=logging.WARNING)
        return

    level = logging.DEBUG if verbose else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from libraries
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="mijiatemp",
        description="Poll Xiaomi Mijia temperature sensors with gatttool",
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file (default: config.yaml)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only log warnings and errors",
    )

    parser.add_argument(
        "--api-port",
        type=int,
        default=None,
        metavar="PORT",
        help="Start status API server on this port",
    )

    return parser.parse_args(argv)


def main() -> int:
    """Main entry point."""
    args = parse_args()
    setup_logging(args.verbose, quiet=args.quiet)

    logger = logging.getLogger(__name__)

    config_path = args.config.resolve()
    if not config_path.exists():
        logger.error("Configuration file not found: %s", config_path)
        logger.error("Copy config.example.yaml to config.yaml and edit it")
        return 1

    try:
        app = MijiaTempApp(config_path, api_port=args.api_port)
        asyncio.run(app.run())
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
