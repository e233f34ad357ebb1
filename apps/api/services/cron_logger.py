"""
Cron job execution log.

Every scheduled or manually triggered job run gets a CronJobExecution row:
RUNNING when it starts, then SUCCESS with the job's result payload or
FAILED with the error message. Rows stuck in RUNNING past the timeout are
swept to FAILED before the admin view reads them.
"""
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from core.config import settings
from models import CronJobExecution, CronJobStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_execution(db: Session, job_name: str, triggered_by: str = "cron") -> CronJobExecution:
    execution = CronJobExecution(
        job_name=job_name,
        status=CronJobStatus.RUNNING,
        started_at=utcnow(),
        triggered_by=triggered_by,
    )
    db.add(execution)
    db.commit()
    return execution


def complete_execution(
    db: Session,
    execution: CronJobExecution,
    status: str,
    result: Any = None,
    error: Optional[str] = None,
) -> CronJobExecution:
    completed_at = utcnow()
    execution.status = status
    execution.completed_at = completed_at
    execution.duration_ms = int((completed_at - as_utc(execution.started_at)).total_seconds() * 1000)
    execution.result = result
    execution.error = error
    db.add(execution)
    db.commit()
    return execution


def run_with_cron_logging(db: Session, job_name: str, triggered_by: str, job_fn: Callable[[], T]) -> T:
    """
    Run ``job_fn`` inside an execution record.

    The job's own uncommitted work is rolled back on failure; the FAILED
    record is still written and the original exception is re-raised.
    """
    execution = create_execution(db, job_name, triggered_by)
    started = time.monotonic()
    try:
        result = job_fn()
    except Exception as e:
        db.rollback()
        complete_execution(db, execution, CronJobStatus.FAILED, error=str(e) or type(e).__name__)
        logger.error(
            f"Cron job {job_name} failed: {e}",
            extra={"extra_fields": {"job_name": job_name, "triggered_by": triggered_by}},
        )
        raise

    complete_execution(db, execution, CronJobStatus.SUCCESS, result={"success": True, "data": result})
    logger.info(
        f"Cron job {job_name} succeeded",
        extra={"extra_fields": {
            "job_name": job_name,
            "triggered_by": triggered_by,
            "duration_ms": round((time.monotonic() - started) * 1000, 2),
        }},
    )
    return result


def cleanup_timed_out_jobs(db: Session, timeout_minutes: Optional[int] = None, now: Optional[datetime] = None) -> int:
    """Mark RUNNING executions older than the timeout as FAILED. Returns the count."""
    timeout_minutes = timeout_minutes or settings.CRON_JOB_TIMEOUT_MINUTES
    now = now or utcnow()
    cutoff = now - timedelta(minutes=timeout_minutes)

    stale = (
        db.query(CronJobExecution)
        .filter(CronJobExecution.status == CronJobStatus.RUNNING)
        .filter(CronJobExecution.started_at < cutoff)
        .all()
    )
    for execution in stale:
        execution.status = CronJobStatus.FAILED
        execution.completed_at = now
        execution.duration_ms = int((now - as_utc(execution.started_at)).total_seconds() * 1000)
        execution.error = f"Job timed out after {timeout_minutes} minutes"

    if stale:
        db.flush()
        logger.warning(f"Marked {len(stale)} timed-out cron executions as FAILED")
    return len(stale)
