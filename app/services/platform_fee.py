"""
Platform fee lookup.

The fee lives in the settings table as {"amount": <number>} under the
"platform_fee" key. A missing or malformed value falls back to the default;
database errors propagate so the caller can fail the unit of work.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import DEFAULT_PLATFORM_FEE, PLATFORM_FEE_SETTING_KEY
from app.repositories.settings import SettingsRepository

logger = logging.getLogger(__name__)


def parse_fee_amount(value, default: Decimal = DEFAULT_PLATFORM_FEE) -> Decimal:
    if not isinstance(value, dict) or "amount" not in value:
        return default
    try:
        amount = Decimal(str(value["amount"]))
    except (InvalidOperation, TypeError, ValueError):
        logger.warning("[Billing] Malformed platform fee setting %r, using default %s", value, default)
        return default
    if not amount.is_finite() or amount < 0:
        logger.warning("[Billing] Invalid platform fee amount %s, using default %s", amount, default)
        return default
    return amount.quantize(Decimal("0.01"))


class PlatformFeeProvider:
    """Reads the flat per-period platform fee from settings."""

    def __init__(self, db: Session, default: Decimal = DEFAULT_PLATFORM_FEE, key: str = PLATFORM_FEE_SETTING_KEY):
        self.settings = SettingsRepository(db)
        self.default = default
        self.key = key

    def get_amount(self) -> Decimal:
        return parse_fee_amount(self.settings.get_value(self.key), self.default)


class StaticPlatformFeeProvider:
    """Fixed fee, for scripts and tests that bypass the settings table."""

    def __init__(self, amount: Optional[Decimal] = None):
        self.amount = DEFAULT_PLATFORM_FEE if amount is None else Decimal(amount)

    def get_amount(self) -> Decimal:
        return self.amount
