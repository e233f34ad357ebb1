"""
Scheduler-facing endpoints.

Authenticated with the shared CRON_SECRET bearer token, not a user JWT.
Runs are logged as cron executions unless the caller sends
``x-skip-cron-logging: true``.
"""
import logging
from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from core.auth import require_cron_secret
from core.database import get_db
from services.cron_jobs import CRON_JOBS
from services.cron_logger import run_with_cron_logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/cron", tags=["cron"])


def _run(db: Session, request: Request, job_name: str, triggered_by: str) -> Any:
    job: Callable[[], Dict[str, Any]] = lambda: CRON_JOBS[job_name].runner(db)
    skip_logging = request.headers.get("x-skip-cron-logging", "").lower() == "true"
    try:
        if skip_logging:
            result = job()
            db.commit()
        else:
            result = run_with_cron_logging(db, job_name, triggered_by, job)
    except Exception as e:
        db.rollback()
        logger.error(f"Cron endpoint {job_name} failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e) or type(e).__name__},
        )
    return {"success": True, "job": job_name, "result": result}


@router.get("/fetch-questions")
def fetch_questions(
    request: Request,
    triggered_by: str = Depends(require_cron_secret),
    db: Session = Depends(get_db),
):
    """Fetch and store yesterday's game."""
    return _run(db, request, "fetch-questions", triggered_by)


@router.get("/dispute-summary")
def dispute_summary(
    request: Request,
    triggered_by: str = Depends(require_cron_secret),
    db: Session = Depends(get_db),
):
    """Email admins the pending-dispute digest."""
    return _run(db, request, "dispute-summary", triggered_by)
