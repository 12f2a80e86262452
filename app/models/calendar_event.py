from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Boolean, JSON, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from app.db.base import Base


class CalendarCategory(Base):
    __tablename__ = "calendar_categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    card_color = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class CalendarEvent(Base):
    """
    A recurrence definition. Occurrences are expanded per month on read and
    never stored.
    """

    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tool_id = Column(Integer, ForeignKey("tools.id", ondelete="CASCADE"), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("calendar_categories.id", ondelete="SET NULL"), nullable=True)
    title = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    date = Column(Date, nullable=False)  # Anchor date
    end_date = Column(Date, nullable=True)
    time = Column(String, nullable=True)  # "HH:MM", local
    frequency = Column(String, nullable=False)  # One Time | Weekly | Monthly | Annual
    days_of_week = Column(JSON, nullable=True)  # [0-6], 0 = Sunday
    day_of_month = Column(Integer, nullable=True)
    add_to_dashboard = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    category = relationship("CalendarCategory", lazy="joined")

    def __repr__(self):
        return f"<CalendarEvent(id={self.id}, title={self.title!r}, frequency={self.frequency}, date={self.date})>"
