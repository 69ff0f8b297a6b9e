"""Scheduled worker: runs one ingestion cycle per cron tick.

Usage:
    python scripts/worker.py

Environment Variables:
    DATABASE_URL / FD_DATABASE_URL: database connection string
    FD_LLM_PROVIDER: gemini, anthropic, or openai
    FD_GEMINI_API_KEY / FD_ANTHROPIC_API_KEY / FD_OPENAI_API_KEY
    FD_DISCORD_WEBHOOK_URL: Optional, enables notifications
    FD_SCHEDULE_CRON: crontab expression, default hourly
"""

import os
import sys
import asyncio
import signal

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from feed_digest.config.settings import settings
from feed_digest.logging_config import configure_logging
from feed_digest.pipeline.cycle import IngestionPipeline
from feed_digest.storage.factory import get_article_storage

logger = structlog.get_logger()


class PipelineWorker:
    """Manages scheduled pipeline tasks."""

    def __init__(self):
        self.storage = get_article_storage()
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.stopped = asyncio.Event()

    def setup_jobs(self):
        """Configure scheduled jobs."""
        self.scheduler.add_job(
            self.run_cycle,
            CronTrigger.from_crontab(settings.schedule_cron, timezone="UTC"),
            id='ingestion_cycle',
            name='Fetch, summarize and notify',
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=600
        )

        # Retention sweep daily at 3am UTC
        self.scheduler.add_job(
            self.prune,
            CronTrigger(hour=3),
            id='prune_articles',
            name='Delete articles past retention',
            replace_existing=True,
            misfire_grace_time=3600
        )

        logger.info("jobs_configured", count=len(self.scheduler.get_jobs()), cron=settings.schedule_cron)

    async def run_cycle(self):
        """Run one ingestion cycle."""
        logger.info("job_started", job="ingestion_cycle")
        try:
            report = await IngestionPipeline(storage=self.storage).run()
            logger.info("job_completed", job="ingestion_cycle", **report.to_dict())
        except Exception as e:
            logger.error("job_failed", job="ingestion_cycle", error=str(e))

    async def prune(self):
        """Delete articles past the retention window."""
        try:
            deleted = self.storage.delete_old_articles(settings.article_retention_days)
            logger.info("job_completed", job="prune_articles", deleted=deleted)
        except Exception as e:
            logger.error("job_failed", job="prune_articles", error=str(e))

    def start(self):
        """Start the worker."""
        self.setup_jobs()
        self.scheduler.start()
        logger.info("worker_started", jobs=len(self.scheduler.get_jobs()))

    def stop(self):
        """Stop the worker gracefully."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.stopped.set()
        logger.info("worker_stopped")


async def main():
    """Main entry point."""
    worker = PipelineWorker()
    configure_logging(storage=worker.storage)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    worker.start()

    # Run immediately on startup
    logger.info("running_initial_tasks")
    await worker.run_cycle()

    await worker.stopped.wait()


if __name__ == "__main__":
    asyncio.run(main())
