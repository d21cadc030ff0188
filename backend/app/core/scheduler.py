"""
Background Job Scheduler

Manages background jobs using APScheduler.
Runs the daily price guide ingestion for every configured category.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR

from app.services.ingestion_service import IngestionService

logger = logging.getLogger(__name__)

INGESTION_JOB_ID = "daily-csv-ingestion"


class BackgroundScheduler:
    """Manages background job scheduling"""

    def __init__(self, ingestion_service: IngestionService, cron_hour: int = 3, cron_minute: int = 0):
        self.ingestion_service = ingestion_service
        self.cron_hour = cron_hour
        self.cron_minute = cron_minute
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.is_running = False

    async def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler = AsyncIOScheduler(
                timezone="UTC",
                job_defaults={
                    "coalesce": True,  # Combine pending executions into one
                    "max_instances": 1,
                    "misfire_grace_time": 300,
                },
            )

            self.scheduler.add_listener(self._job_executed_listener, EVENT_JOB_EXECUTED)
            self.scheduler.add_listener(self._job_error_listener, EVENT_JOB_ERROR)

            self.scheduler.add_job(
                func=self._ingestion_job,
                trigger=CronTrigger(hour=self.cron_hour, minute=self.cron_minute),
                id=INGESTION_JOB_ID,
                name="Daily Price Guide CSV Ingestion",
                replace_existing=True,
            )

            self.scheduler.start()
            self.is_running = True

            logger.info("Background scheduler started successfully")
            logger.info(f"Scheduled jobs: {[job.id for job in self.scheduler.get_jobs()]}")

        except Exception as e:
            logger.error(f"Failed to start background scheduler: {str(e)}", exc_info=True)
            raise

    async def stop(self):
        """Stop the background scheduler"""
        if not self.is_running or not self.scheduler:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Background scheduler stopped successfully")

        except Exception as e:
            logger.error(f"Error stopping background scheduler: {str(e)}", exc_info=True)

    async def _ingestion_job(self):
        """Ingest every configured category"""
        job_start = datetime.now(timezone.utc)
        logger.info("Starting scheduled price guide ingestion")

        try:
            result = await self.ingestion_service.ingest_all(triggered_manually=False)
            duration = (datetime.now(timezone.utc) - job_start).total_seconds()
            summary = result.summary
            logger.info(
                f"Scheduled ingestion finished in {duration:.1f}s: "
                f"{summary.successful}/{summary.categoriesProcessed} categories, "
                f"{summary.totalProducts} products"
            )
            if summary.failed:
                failed = [r.category for r in result.results if not r.success]
                logger.warning(f"Categories that failed ingestion: {failed}")

        except Exception as e:
            duration = (datetime.now(timezone.utc) - job_start).total_seconds()
            logger.error(f"Scheduled ingestion failed after {duration:.1f}s: {str(e)}", exc_info=True)

    def _job_executed_listener(self, event):
        """Listener for successful job executions"""
        logger.info(f"Job '{event.job_id}' executed successfully")

    def _job_error_listener(self, event):
        """Listener for job execution errors"""
        logger.error(f"Job '{event.job_id}' failed: {event.exception}", exc_info=event.traceback)

    def get_job_status(self) -> dict:
        """Get status of all scheduled jobs"""
        if not self.scheduler:
            return {"status": "not_started", "jobs": []}

        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            })

        return {
            "status": "running" if self.is_running else "stopped",
            "jobs": jobs,
            "scheduler_state": str(self.scheduler.state),
        }

    async def trigger_ingestion_job(self) -> dict:
        """Move the ingestion job's next run to now"""
        if not self.scheduler:
            return {"success": False, "message": "Scheduler not running"}

        try:
            job = self.scheduler.get_job(INGESTION_JOB_ID)
            if job:
                self.scheduler.modify_job(INGESTION_JOB_ID, next_run_time=datetime.now(timezone.utc))
                logger.info("Manually triggered price guide ingestion job")
                return {"success": True, "message": "Job triggered successfully"}
            else:
                return {"success": False, "message": "Job not found"}

        except Exception as e:
            logger.error(f"Error triggering job: {str(e)}")
            return {"success": False, "message": str(e)}
