"""
Scheduler module for the daily recurring-transaction sweep.

Handles scheduling the sweep at a fixed wall-clock time using discord.ext.tasks,
which runs on any asyncio event loop and never overlaps two iterations.
"""

import asyncio
import logging
from datetime import date, time
from typing import Optional

from discord.ext import tasks

from fintrack.config import get_recurring_run_time
from fintrack.services.recurring import MaterializationReport, RecurringMaterializer

logger = logging.getLogger(__name__)

# Time to run the sweep (00:00 in the configured timezone by default)
RECURRING_RUN_AT = get_recurring_run_time()


class RecurringScheduler:
    """Runs the recurring materializer once a day."""

    def __init__(self, materializer: RecurringMaterializer, run_at: Optional[time] = None):
        """
        Initialize the scheduler.

        Args:
            materializer: Materializer invoked on every tick
            run_at: Wall-clock time of the daily tick; defaults to RECURRING_RUN_AT
        """
        self.materializer = materializer
        self.run_at = run_at or RECURRING_RUN_AT
        self._started = False
        self._sweep_lock = asyncio.Lock()
        if run_at is not None:
            self.daily_task.change_interval(time=run_at)
        logger.info("RecurringScheduler initialized")

    @property
    def is_running(self) -> bool:
        return self._started

    def start(self):
        """Start the scheduled task. Must be called from a running event loop."""
        if not self._started:
            self.daily_task.start()
            self._started = True
            logger.info(
                f"Recurring transaction scheduler started. "
                f"Will run at {self.run_at.strftime('%H:%M')} {self.run_at.tzinfo} daily."
            )

    def stop(self):
        """Stop the scheduled task."""
        if self._started:
            self.daily_task.cancel()
            self._started = False
            logger.info("Recurring transaction scheduler stopped")

    @tasks.loop(time=RECURRING_RUN_AT)
    async def daily_task(self):
        """Materialize every recurring transaction due today."""
        logger.info("Running recurring transaction check...")
        await self.run_now()

    @daily_task.error
    async def daily_task_error(self, error: BaseException):
        """Handle errors escaping the daily task."""
        logger.error(f"Error in recurring daily_task: {error}", exc_info=True)

    async def run_now(self, today: Optional[date] = None) -> Optional[MaterializationReport]:
        """
        Run one sweep immediately (manual trigger or the daily tick).

        The blocking sweep runs in a worker thread so the event loop stays
        responsive. Sweeps never overlap.

        Returns:
            The sweep report, or None if the sweep itself failed
        """
        async with self._sweep_lock:
            try:
                return await asyncio.to_thread(self.materializer.run, today)
            except Exception as e:
                logger.error(f"Recurring sweep failed: {e}", exc_info=True)
                return None


def setup_scheduler(
    materializer: RecurringMaterializer, run_at: Optional[time] = None
) -> RecurringScheduler:
    """
    Create and configure the scheduler.

    Args:
        materializer: Materializer to drive
        run_at: Optional override of the daily run time

    Returns:
        Configured RecurringScheduler
    """
    return RecurringScheduler(materializer, run_at=run_at)
