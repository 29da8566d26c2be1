"""
Cron-based scheduler that runs the pipeline at configured intervals
"""

import logging
import threading
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .models.schemas import PipelineResult
from .pipeline import SignalPipeline

JOB_ID = "signal_pipeline"


class PipelineScheduler:
    """
    Runs a fresh pipeline on every cron tick.

    Only one run is active at a time: a tick that fires while a previous run
    is still in progress is skipped, not queued.
    """

    def __init__(
        self,
        pipeline_factory: Callable[[], SignalPipeline],
        cron_schedule: str,
        logger: Optional[logging.Logger] = None,
    ):
        self.pipeline_factory = pipeline_factory
        self.cron_schedule = cron_schedule
        self.logger = logger or logging.getLogger(__name__)

        self.running = False
        self._state_lock = threading.Lock()
        self._scheduler: Optional[BackgroundScheduler] = None

    def tick(self) -> Optional[PipelineResult]:
        """Run the pipeline once unless a run is already in progress"""
        with self._state_lock:
            if self.running:
                self.logger.warning("Previous pipeline run still in progress, skipping")
                return None
            self.running = True

        try:
            result = self.pipeline_factory().run()
            self.logger.info(
                "Scheduled run complete: %d signals (run %s)", result.total_signals, result.run_id
            )
            return result
        except Exception as e:
            self.logger.error("Scheduled run failed: %s", e, exc_info=True)
            return None
        finally:
            with self._state_lock:
                self.running = False

    def start(self, run_immediately: bool = True) -> BackgroundScheduler:
        """
        Start the background scheduler.

        Args:
            run_immediately: Also run the pipeline once right away

        Raises:
            ValueError: if the cron expression is invalid
        """
        trigger = CronTrigger.from_crontab(self.cron_schedule, timezone="UTC")

        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.tick,
            trigger=trigger,
            id=JOB_ID,
            name="ICP signal pipeline",
            replace_existing=True,
            max_instances=1,
        )
        self._scheduler.start()
        self.logger.info('Scheduler started with cron: "%s"', self.cron_schedule)

        if run_immediately:
            self.logger.info("Running initial pipeline...")
            self.tick()

        return self._scheduler

    def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self.logger.info("Scheduler stopped")

    @property
    def is_started(self) -> bool:
        return self._scheduler is not None
