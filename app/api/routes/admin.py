from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.exceptions import DataAccessError, InvalidSubscriptionStateError, SubscriptionNotFoundError
from app.db.session import SessionLocal, get_db
from app.dependencies.auth import require_superadmin
from app.models.subscription import STATUS_ACTIVE, STATUS_TRIAL
from app.repositories.subscriptions import SubscriptionRepository
from app.schemas.billing import (
    CronJobLogResponse,
    CronJobLogsResponse,
    Pagination,
    SubscriptionResponse,
    SubscriptionStatusUpdate,
    SyncAllResponse,
)
from app.services.billing_sync import sync_user_billing_active, sync_users_billing_active
from app.services.cron_logger import list_cron_job_logs
from app.services.subscription_lifecycle import set_subscription_status

router = APIRouter(dependencies=[Depends(require_superadmin)])


@router.get("/billing/sync-all", response_model=SyncAllResponse)
def sync_all_billing(
    user_id: Optional[int] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
):
    """
    Rebuild billing_active for one user (?userId=) or for every user with an
    active or trial subscription.
    """
    if user_id is not None:
        result = sync_user_billing_active(db, user_id)
        if not result.success:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"error": "Failed to sync user", "details": result.error},
            )
        return {"message": "User billing synced successfully", "user_id": user_id, "total": 1, "successful": 1}

    try:
        user_ids = SubscriptionRepository(db).user_ids_with_status((STATUS_ACTIVE, STATUS_TRIAL))
    except DataAccessError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to fetch users", "details": str(e)},
        )
    db.rollback()

    if not user_ids:
        return {"message": "No users with active tools found", "total": 0}

    batch = sync_users_billing_active(user_ids, SessionLocal)
    return {"message": "Sync completed", **batch.to_dict()}


@router.get("/cron-logs", response_model=CronJobLogsResponse)
def get_cron_logs(
    job_name: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    """Cron job execution logs, newest first (limit capped at 500)."""
    try:
        logs, total = list_cron_job_logs(db, job_name=job_name, status=status_filter, limit=limit, offset=offset)
    except DataAccessError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to fetch cron logs", "details": str(e)},
        )
    effective_limit = max(1, min(limit, 500))
    effective_offset = max(0, offset)
    return CronJobLogsResponse(
        logs=[CronJobLogResponse.model_validate(log) for log in logs],
        pagination=Pagination(
            total=total,
            limit=effective_limit,
            offset=effective_offset,
            hasMore=total > effective_offset + effective_limit,
        ),
    )


@router.put("/users/{user_id}/subscriptions", response_model=SubscriptionResponse)
def update_user_subscription_status(
    user_id: int,
    payload: SubscriptionStatusUpdate,
    db: Session = Depends(get_db),
):
    try:
        return set_subscription_status(db, user_id, payload.subscription_id, payload.status)
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidSubscriptionStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DataAccessError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
