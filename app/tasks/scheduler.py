"""
Periodic jobs
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime
from app.tasks.reconciler import reconcile_purchase_lists
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)
scheduler = BackgroundScheduler()


def start_scheduler():
    """
    Starts the scheduler.

    Jobs:
    1. Purchase list reconciliation (every RECONCILE_INTERVAL_HOURS)
    """

    if not settings.SCHEDULER_ENABLED:
        logger.warning("Scheduler is disabled in settings")
        return

    logger.info("Starting scheduler...")

    scheduler.add_job(
        reconcile_purchase_lists,
        trigger=IntervalTrigger(hours=settings.RECONCILE_INTERVAL_HOURS),
        id="reconcile_purchase_lists",
        name="Recompute purchase list aggregates from snapshots",
        replace_existing=True,
        misfire_grace_time=300,
        coalesce=True,
    )
    logger.info(
        f"Scheduled: purchase list reconciliation (every {settings.RECONCILE_INTERVAL_HOURS}h)"
    )

    scheduler.start()
    logger.info("Scheduler started successfully")

    for job in scheduler.get_jobs():
        logger.info(f"  - {job.name} (ID: {job.id}, Next run: {job.next_run_time})")


def stop_scheduler():
    if not scheduler.running:
        return
    logger.info("Stopping scheduler...")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")


def get_scheduler_status():
    if not scheduler.running:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run": (
                    job.next_run_time.isoformat() if job.next_run_time else None
                ),
                "trigger": str(job.trigger),
            }
        )

    return {"running": True, "jobs": jobs}


def trigger_job_manually(job_id: str) -> bool:
    """Runs a scheduled job as soon as possible. Returns False for an unknown id."""
    job = scheduler.get_job(job_id)
    if not job:
        logger.warning(f"Job {job_id} not found")
        return False

    logger.info(f"Manually triggering job: {job_id}")
    job.modify(next_run_time=datetime.now(job.trigger.timezone))
    return True
