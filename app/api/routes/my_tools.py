import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.exceptions import DataAccessError, InvalidSubscriptionStateError, SubscriptionNotFoundError
from app.db.session import get_db
from app.dependencies.auth import get_current_user_id
from app.schemas.billing import CancelSubscriptionRequest, StartSubscriptionRequest, SubscriptionResponse
from app.services.subscription_lifecycle import (
    cancel_subscription,
    expire_trials,
    list_user_subscriptions,
    start_subscription,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[SubscriptionResponse])
def get_my_tools(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """The user's live subscriptions. Expired trials are converted to active first."""
    try:
        expire_trials(db, user_id=user_id)
    except DataAccessError as e:
        logger.error("[Subscriptions] Error expiring trials for user %s: %s", user_id, e)
    try:
        return list_user_subscriptions(db, user_id)
    except DataAccessError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to fetch tools: {e}")


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def buy_tool(
    payload: StartSubscriptionRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    try:
        return start_subscription(db, user_id, payload.tool_id)
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidSubscriptionStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DataAccessError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to purchase tool")


@router.put("", response_model=SubscriptionResponse)
def cancel_tool(
    payload: CancelSubscriptionRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    try:
        return cancel_subscription(db, user_id, payload.subscription_id)
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidSubscriptionStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DataAccessError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to cancel tool")
