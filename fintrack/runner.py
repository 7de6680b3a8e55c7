"""
Runner script for the FinTrack ledger core.

This module handles configuration loading and starts the recurring-transaction
scheduler alongside the audit log worker.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv

# Load .env before fintrack.config reads the environment
ENV_PATH = Path(__file__).parent.parent / ".env"
_ENV_LOADED = load_dotenv(ENV_PATH)

from fintrack.config import (  # noqa: E402
    LOG_FILE,
    LOG_FORMAT,
    ensure_directories,
    get_log_level,
)

if TYPE_CHECKING:
    from .app import FinTrackApp

# Ensure required directories exist
ensure_directories()

# Configure logging
logging.basicConfig(
    level=get_log_level(),
    format=LOG_FORMAT,
    handlers=[
        logging.FileHandler(LOG_FILE),
        logging.StreamHandler(sys.stdout),
    ],
)

logger = logging.getLogger(__name__)


async def serve(app: "FinTrackApp", run_on_start: bool = False):
    """
    Keep the scheduler running until cancelled.

    Args:
        app: Wired application
        run_on_start: Run one sweep immediately, e.g. after downtime
    """
    app.start()
    try:
        if run_on_start:
            report = await app.scheduler.run_now()
            if report is not None:
                logger.info(f"Startup sweep: {report.to_dict()}")
        await asyncio.Event().wait()
    finally:
        app.close()


def run():
    """Run the FinTrack scheduler with comprehensive error handling."""
    try:
        if _ENV_LOADED:
            logger.info(f"Loaded environment from {ENV_PATH}")
        else:
            logger.warning(f".env file not found at {ENV_PATH}")

        logger.info("Starting FinTrack ledger scheduler...")

        try:
            # The scheduler parses FINTRACK_RECURRING_TIME when first imported
            from .app import create_app

            app = create_app()
        except ValueError as e:
            logger.error(f"Invalid configuration: {e}")
            print(f"\nConfiguration error: {e}")
            print("Check FINTRACK_RECURRING_TIME and FINTRACK_TIMEZONE in your .env file.")
            sys.exit(1)
        except Exception as e:
            logger.error(f"Failed to create app: {e}", exc_info=True)
            print(f"\nError: {e}")
            sys.exit(1)

        run_on_start = "--run-now" in sys.argv[1:]

        try:
            asyncio.run(serve(app, run_on_start=run_on_start))
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt, shutting down...")
            print("\nShutting down...")
    except Exception as e:
        logger.critical(f"Critical error in run(): {e}", exc_info=True)
        print(f"\nCritical error: {e}")
        print(f"Check {LOG_FILE} for more details.")
        sys.exit(1)


if __name__ == "__main__":
    run()
