from sqlalchemy import Column, String, JSON, DateTime
from datetime import datetime
from app.db.base import Base


class Setting(Base):
    """Global key/value settings, e.g. platform_fee -> {"amount": 5.00}."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
