"""
Entry point for the redbook_sync component.
"""

import argparse
import asyncio
import logging
import sys

from .application.exceptions import RedbookSyncError
from .infrastructure.containers import Container

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Applies basic logging configuration."""
    logging.basicConfig(level=level)


async def run_application(args: argparse.Namespace):
    """Wires and runs the application using the DI container."""

    container = Container()
    container.cli_args.from_dict(vars(args))
    setup_logging(level=container.config()["logging"]["level"])

    try:
        sync_service = container.sync_service()
        await sync_service.run()
    except RedbookSyncError as e:
        logger.error(f"An application error occurred: {e}")
        sys.exit(1)
    finally:
        await container.http_client().aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Mirror the USPTO Redbook full-text archive into a store"
    )

    parser.add_argument(
        "--file-limit",
        type=int,
        help="Maximum number of archives to mirror (default from config).",
    )

    parser.add_argument("--start-year", type=int, help="First year to scan.")

    parser.add_argument(
        "--end-year",
        type=int,
        help="Last year to scan (default: the current year).",
    )

    parser.add_argument("--zip-dir", help="Archive cache directory.")
    parser.add_argument("--xml-dir", help="Extracted document cache directory.")
    parser.add_argument("--record-dir", help="Processed-record cache directory.")
    parser.add_argument("--ledger-path", help="Synchronization ledger file.")

    cli_args = parser.parse_args()

    asyncio.run(run_application(cli_args))
