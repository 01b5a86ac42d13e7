"""APScheduler configuration for daily exam status updates."""

import logging
from datetime import date

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from gradebook.core.config import settings
from gradebook.core.database import SessionLocal
from gradebook.services.exam import ExamService

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


def get_db_session() -> Session:
    """Get a database session for scheduler jobs."""
    return SessionLocal()


def refresh_exam_statuses_job(today: date | None = None) -> int:
    """
    Job to move exams through upcoming -> ongoing -> completed.
    Runs shortly after midnight every day.
    """
    logger.info("Starting exam status refresh job")

    db = get_db_session()
    try:
        service = ExamService(db)
        count = service.refresh_statuses(today or date.today())
        db.commit()
        logger.info(f"Updated status of {count} exams")
        return count
    except Exception as e:
        logger.exception(f"Error refreshing exam statuses: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_scheduler() -> AsyncIOScheduler:
    """Initialize and configure the scheduler."""
    global scheduler

    scheduler = AsyncIOScheduler(
        timezone=settings.SCHEDULER_TIMEZONE,
        job_defaults={
            "coalesce": True,  # Combine missed runs
            "max_instances": 1,  # Only one instance of each job at a time
            "misfire_grace_time": 3600,  # Allow 1 hour grace period for missed jobs
        }
    )

    scheduler.add_job(
        refresh_exam_statuses_job,
        trigger=CronTrigger(hour=0, minute=5),
        id="refresh_exam_statuses",
        name="Refresh exam statuses",
        replace_existing=True,
    )

    logger.info(f"Scheduler initialized with exam status job ({settings.SCHEDULER_TIMEZONE})")
    return scheduler


def start_scheduler():
    """Start the scheduler."""
    global scheduler
    if scheduler is None:
        scheduler = init_scheduler()

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def stop_scheduler():
    """Stop the scheduler gracefully."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")
