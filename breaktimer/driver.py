"""Fixed-rate tick driver for the break scheduler."""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .scheduler import BreakScheduler

logger = logging.getLogger(__name__)

TICK_JOB_ID = "tick_job"
DEFAULT_TICK_INTERVAL = 1  # seconds


class TickDriver:
    """Calls ``BreakScheduler.tick`` once per interval on a background thread.

    ``start()`` is restart-safe: calling it again re-initializes breaks and
    replaces the existing tick job instead of adding a second one.
    """

    def __init__(
        self,
        break_scheduler: BreakScheduler,
        interval_seconds: int = DEFAULT_TICK_INTERVAL,
        scheduler: Optional[BackgroundScheduler] = None,
    ) -> None:
        self.break_scheduler = break_scheduler
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BackgroundScheduler()

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """(Re)initialize breaks and install the tick job."""
        self.break_scheduler.init_breaks()

        if not self.scheduler.running:
            self.scheduler.start()

        self.scheduler.add_job(
            self._run_tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=TICK_JOB_ID,
            replace_existing=True,
            max_instances=1,  # never overlap ticks
            coalesce=True,  # after sleep, run once rather than catching up
        )
        logger.info(f"Tick driver started (interval: {self.interval_seconds}s)")

    def stop(self) -> None:
        """Shut down the scheduler if running."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Tick driver stopped")

    def _run_tick(self) -> None:
        self.break_scheduler.tick(datetime.now())
