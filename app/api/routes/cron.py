"""
Scheduled job endpoints.

The scheduler calls these once a day, e.g.:
    GET /api/cron/billing-process   (0 2 * * *)
with header "Authorization: Bearer <CRON_SECRET>".
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.exceptions import BillingRunError
from app.dependencies.auth import verify_cron_secret
from app.services import billing_processor
from app.services.cron_logger import execute_with_logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/billing-process", dependencies=[Depends(verify_cron_secret)])
def run_billing_process():
    """Sync every billable user, archive due charges and finalize pending cancellations."""
    try:
        summary = execute_with_logging(billing_processor.JOB_NAME, billing_processor.process_nightly_billing)
    except BillingRunError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Billing run failed", "phase": e.phase, "details": e.message},
        )
    return summary.to_dict()
