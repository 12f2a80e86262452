import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import DEFAULT_PLATFORM_FEE
from app.core.exceptions import DataAccessError
from app.db.session import get_db
from app.schemas.billing import PlatformFeeResponse
from app.services.platform_fee import PlatformFeeProvider

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/platform-fee", response_model=PlatformFeeResponse)
def get_platform_fee(db: Session = Depends(get_db)):
    """Public: the flat per-period platform fee. Falls back to the default on any error."""
    try:
        amount = PlatformFeeProvider(db).get_amount()
    except DataAccessError as e:
        logger.error("[Billing] Error fetching platform fee setting: %s", e)
        amount = DEFAULT_PLATFORM_FEE
    return {"amount": float(amount)}
