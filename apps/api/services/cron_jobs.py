"""
Registry of scheduled jobs and the admin-side views over their executions.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.exceptions import BadRequestError
from models import CronJobExecution, CronJobStatus
from schemas import CronExecutionResponse
from services.cron_logger import cleanup_timed_out_jobs, run_with_cron_logging
from services.dispute_summary import send_dispute_summary
from services.scheduled_ingestion import run_fetch_games, run_fetch_questions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CronJob:
    key: str
    name: str
    description: str
    schedule: str  # crontab expression, UTC
    endpoint: Optional[str]  # None for internal-only jobs
    runner: Callable[[Session], Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "schedule": self.schedule,
            "endpoint": self.endpoint,
        }


CRON_JOBS: Dict[str, CronJob] = {
    "fetch-questions": CronJob(
        key="fetch-questions",
        name="Fetch Questions",
        description="Fetches yesterday's questions from the archive",
        schedule="0 9 * * *",
        endpoint="/v1/cron/fetch-questions",
        runner=lambda db: run_fetch_questions(db),
    ),
    "fetch-games": CronJob(
        key="fetch-games",
        name="Fetch Games",
        description="Fetches games for the last 7 days (internal cron)",
        schedule="0 3 * * *",
        endpoint=None,
        runner=lambda db: run_fetch_games(db),
    ),
    "dispute-summary": CronJob(
        key="dispute-summary",
        name="Dispute Summary",
        description="Emails admins a summary of pending answer disputes",
        schedule="0 13 * * *",
        endpoint="/v1/cron/dispute-summary",
        runner=lambda db: send_dispute_summary(db),
    ),
}


def get_job(job_name: str) -> CronJob:
    job = CRON_JOBS.get(job_name)
    if job is None:
        raise BadRequestError(f"Unknown cron job: {job_name}", error_code="UNKNOWN_CRON_JOB")
    return job


def trigger_job(db: Session, job_name: str, triggered_by: str) -> Dict[str, Any]:
    """
    Run a registered job now, recording the execution.

    Internal-only jobs (no endpoint) are refused. Job exceptions propagate
    after the FAILED record is written.
    """
    job = get_job(job_name)
    if not job.endpoint:
        raise BadRequestError(
            f"Job {job_name} cannot be triggered manually (internal cron only)",
            error_code="INTERNAL_CRON_JOB",
        )

    logger.info(f"Manual trigger of cron job {job_name} by {triggered_by}")
    result = run_with_cron_logging(db, job_name, triggered_by, lambda: job.runner(db))
    return {
        "success": True,
        "message": f"Cron job {job_name} triggered successfully",
        "result": result,
    }


def _serialize(execution: Optional[CronJobExecution]) -> Optional[Dict[str, Any]]:
    if execution is None:
        return None
    return CronExecutionResponse.model_validate(execution).model_dump(mode="json", by_alias=True)


def cron_overview(
    db: Session,
    job_name: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
) -> Dict[str, Any]:
    timed_out = cleanup_timed_out_jobs(db)

    query = db.query(CronJobExecution)
    if job_name:
        query = query.filter(CronJobExecution.job_name == job_name)
    if status and status in CronJobStatus.ALL:
        query = query.filter(CronJobExecution.status == status)
    executions: List[CronJobExecution] = query.order_by(CronJobExecution.started_at.desc()).limit(limit).all()

    counts = (
        db.query(CronJobExecution.job_name, CronJobExecution.status, func.count(CronJobExecution.id))
        .group_by(CronJobExecution.job_name, CronJobExecution.status)
        .all()
    )
    stats = {f"{name}:{job_status}": count for name, job_status, count in counts}

    latest = {}
    for key in CRON_JOBS:
        row = (
            db.query(CronJobExecution)
            .filter(CronJobExecution.job_name == key)
            .order_by(CronJobExecution.started_at.desc())
            .first()
        )
        latest[key] = _serialize(row)

    return {
        "executions": [_serialize(e) for e in executions],
        "stats": stats,
        "latestExecutions": latest,
        "jobs": {key: job.to_dict() for key, job in CRON_JOBS.items()},
        "timedOutCount": timed_out,
    }
