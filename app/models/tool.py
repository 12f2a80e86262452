from sqlalchemy import Column, Integer, String, DateTime, Numeric, Text
from datetime import datetime
from app.db.base import Base


class Tool(Base):
    """A purchasable household tool (calendar events, pet care, documents...)."""

    __tablename__ = "tools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    short_name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    # Monthly price in major units (e.g. 2.99)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String, nullable=False, default="available")  # available | active | retired
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
