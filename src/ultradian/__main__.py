"""Entry point for the ultradian MCP server."""

import argparse
import atexit
import logging

from importlib.metadata import version

from ultradian.constants import DEFAULT_DATABASE_PATH
from ultradian.database.session import init_database
from ultradian.logging_config import setup_logging
from ultradian.server import server, shutdown_trigger

logger = logging.getLogger("ultradian")


def main() -> int:
    """Main entry point for the ultradian MCP server."""
    setup_logging()

    parser = argparse.ArgumentParser(
        description="ultradian: MCP server for cognitive rhythm tracking"
    )
    parser.add_argument(
        "--database",
        default=DEFAULT_DATABASE_PATH,
        help=f"Path to database file (default: {DEFAULT_DATABASE_PATH})",
    )
    args = parser.parse_args()

    logger.info(f"Starting ultradian v{version('ultradian')}...")
    logger.info(f"Using database: {args.database}")

    try:
        init_database(args.database)
        logger.info("Database initialized successfully")

        atexit.register(shutdown_trigger)

        logger.info("Starting MCP server...")
        server.run()
        return 0

    except Exception as e:
        logger.error(f"Server failed to start: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    exit(main())
