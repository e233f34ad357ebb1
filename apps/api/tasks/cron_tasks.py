"""
Scheduled Cron Tasks

Runs registered cron jobs from Celery Beat. Every run is recorded as a
cron execution; failures are logged and returned, never raised, so one bad
run does not disturb the scheduler.
"""

from typing import Dict
from celery import Task
from core.database import get_db_sync
from tasks import celery_app
from services.cron_jobs import CRON_JOBS
from services.cron_logger import run_with_cron_logging
import logging

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.run_cron_job", bind=True)
def run_cron_job_task(self: Task, job_name: str, triggered_by: str = "cron") -> Dict:
    job = CRON_JOBS.get(job_name)
    if job is None:
        logger.error(f"Unknown cron job: {job_name}")
        return {"status": "error", "job": job_name, "message": f"Unknown cron job: {job_name}"}

    db = get_db_sync()
    try:
        result = run_with_cron_logging(db, job_name, triggered_by, lambda: job.runner(db))
        return {"status": "success", "job": job_name, "result": result}
    except Exception as e:
        logger.error(f"Cron task {job_name} failed: {e}", exc_info=True)
        return {"status": "error", "job": job_name, "message": str(e)}
    finally:
        db.close()
