"""
Persistent log of scheduled job runs (cron_job_logs).

Writing a log row must never break the job it describes, so
log_cron_job_execution swallows and reports its own failures.
"""
import logging
import traceback
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import DataAccessError
from app.db.session import SessionLocal, transaction
from app.models.cron_job_log import CronJobLog
from app.repositories.cron_logs import CronJobLogRepository

logger = logging.getLogger(__name__)

CRON_STATUSES = ("success", "error", "warning")
MAX_PAGE_SIZE = 500


def log_cron_job_execution(
    db: Session,
    job_name: str,
    status: str,
    message: Optional[str] = None,
    error_details: Optional[str] = None,
    execution_data: Optional[dict] = None,
    started_at: Optional[datetime] = None,
) -> Optional[int]:
    """Insert a cron_job_logs row. Returns its id, or None if logging failed."""
    completed_at = datetime.now()
    started_at = started_at or completed_at
    duration_ms = int((completed_at - started_at).total_seconds() * 1000)

    log = CronJobLog(
        job_name=job_name,
        status=status,
        started_at=started_at,
        completed_at=completed_at,
        duration_ms=duration_ms,
        message=message,
        error_details=error_details,
        execution_data=execution_data or {},
    )
    try:
        with transaction(db, "cron_job_logs"):
            CronJobLogRepository(db).insert([log])
        return log.id
    except DataAccessError as e:
        logger.error("[Cron] Failed to log execution of %s: %s", job_name, e)
        return None


def execute_with_logging(
    job_name: str,
    job: Callable[[], Any],
    session_factory: Callable[[], Session] = SessionLocal,
) -> Any:
    """
    Run `job` and record the outcome. A result exposing `status` and
    `to_dict()` (e.g. BillingRunSummary) supplies the log status and execution
    data. Exceptions are logged as errors and re-raised.
    """
    started_at = datetime.now()
    execution_data = {"started_at": started_at.isoformat()}

    try:
        result = job()
    except Exception as e:
        logger.error("[Cron] Job %s failed: %s", job_name, e)
        db = session_factory()
        try:
            log_cron_job_execution(
                db,
                job_name,
                "error",
                message="Job execution failed",
                error_details=f"{e}\n{traceback.format_exc()}",
                execution_data=execution_data,
                started_at=started_at,
            )
        finally:
            db.close()
        raise

    status = getattr(result, "status", None)
    if status not in CRON_STATUSES:
        status = "success"
    if hasattr(result, "to_dict"):
        execution_data.update(result.to_dict())
    message = getattr(result, "message", None) or "Job completed successfully"
    error_details = None
    errors = execution_data.get("errors")
    if status != "success" and errors:
        error_details = "; ".join(
            f"{err.get('phase')}: {err.get('message')}" for err in errors if isinstance(err, dict)
        )

    db = session_factory()
    try:
        log_cron_job_execution(
            db,
            job_name,
            status,
            message=message,
            error_details=error_details,
            execution_data=execution_data,
            started_at=started_at,
        )
    finally:
        db.close()
    logger.info("[Cron] Job %s finished with status %s", job_name, status)
    return result


def list_cron_job_logs(
    db: Session,
    job_name: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
):
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)
    return CronJobLogRepository(db).page(job_name=job_name, status=status, limit=limit, offset=offset)
