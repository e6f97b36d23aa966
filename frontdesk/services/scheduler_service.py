"""
Scheduler for the console's periodic jobs
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from frontdesk.core.config import settings

logger = logging.getLogger(__name__)


class SchedulerService:
    """Owns the AsyncIOScheduler and its interval jobs"""

    def __init__(self):
        self.scheduler = AsyncIOScheduler()
        self._jobs_registered = False

    def register_jobs(self, poller) -> None:
        """Register the change-notification poll for ``poller``"""
        if self._jobs_registered:
            logger.warning("Jobs already registered")
            return

        if not settings.enable_notification_polling:
            logger.info("Notification polling is disabled in settings")
            return

        interval = settings.notification_poll_interval_seconds
        if interval <= 0:
            logger.info("Notification polling disabled (interval = 0)")
            return

        self.scheduler.add_job(
            poller.poll_once,
            IntervalTrigger(seconds=interval),
            id="notification_poll",
            name="Poll booking changes",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Registered notification poll job (every {interval} seconds)")
        self._jobs_registered = True

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")
        else:
            logger.warning("Scheduler already running")

    def shutdown(self):
        """Request a stop; AsyncIOScheduler completes it on the next loop tick"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown requested")

    def get_jobs(self):
        return self.scheduler.get_jobs()

    def reload(self, poller):
        """Re-register jobs, e.g. after the poll interval changed"""
        self.scheduler.remove_all_jobs()
        self._jobs_registered = False
        self.register_jobs(poller)
        logger.info("Scheduler jobs reloaded")


scheduler_service = SchedulerService()
