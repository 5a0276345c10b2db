#!/usr/bin/env python
"""Main entry point for the noteshelf MCP server."""
import argparse
import logging
import os
import sys

from noteshelf.config import STORAGE_BACKENDS, config
from noteshelf.observability import configure_logging
from noteshelf.server.mcp_server import NoteshelfMcpServer
from noteshelf.storage import SharedPersister, create_persister


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="noteshelf MCP server")
    parser.add_argument(
        "--storage",
        help="Storage engine",
        choices=STORAGE_BACKENDS,
        default=os.environ.get("NOTESHELF_STORAGE")
    )
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy database URL for the sql storage engine",
        type=str,
        default=os.environ.get("NOTESHELF_DATABASE_URL")
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotating log files (console only when omitted)",
        type=str,
        default=os.environ.get("NOTESHELF_LOG_DIR")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTESHELF_LOG_LEVEL", "INFO")
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.storage:
        config.storage_backend = args.storage
    if args.database_url:
        config.database_url = args.database_url
    if args.log_level:
        config.log_level = args.log_level


def main(argv=None):
    """Run the noteshelf MCP server."""
    args = parse_args(argv)
    update_config(args)

    log_level = getattr(logging, config.log_level, logging.INFO)
    try:
        configure_logging(level=log_level, log_dir=args.log_dir, console=True)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")

    logger = logging.getLogger(__name__)

    try:
        logger.info(f"Using {config.storage_backend} storage")
        handle = SharedPersister(create_persister(config.storage_backend))
    except Exception as e:
        logger.error(f"Failed to initialize storage: {e}")
        sys.exit(1)

    try:
        logger.info("Starting noteshelf MCP server")
        server = NoteshelfMcpServer(handle=handle)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
