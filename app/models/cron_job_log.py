"""
Model for recording each scheduled job execution (nightly billing, etc.).
"""
from sqlalchemy import Column, Integer, String, JSON, DateTime, Text
from datetime import datetime
from app.db.base import Base


class CronJobLog(Base):
    __tablename__ = "cron_job_logs"

    id = Column(Integer, primary_key=True, index=True)
    job_name = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, index=True)  # success | error | warning
    started_at = Column(DateTime, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    message = Column(Text, nullable=True)
    error_details = Column(Text, nullable=True)
    execution_data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    def __repr__(self):
        return f"<CronJobLog(id={self.id}, job={self.job_name}, status={self.status}, started_at={self.started_at})>"
