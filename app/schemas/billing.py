from pydantic import BaseModel
from typing import Optional, List, Any, Dict
from datetime import date, datetime


class PlatformFeeResponse(BaseModel):
    amount: float


class ToolSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class SubscriptionResponse(BaseModel):
    id: int
    tool_id: int
    status: str
    price: float
    trial_start_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    cancellation_effective_date: Optional[date] = None
    created_at: Optional[datetime] = None
    tool: Optional[ToolSummary] = None

    class Config:
        from_attributes = True


class StartSubscriptionRequest(BaseModel):
    tool_id: int


class CancelSubscriptionRequest(BaseModel):
    subscription_id: int


class SubscriptionStatusUpdate(BaseModel):
    subscription_id: int
    status: str


class SyncAllResponse(BaseModel):
    message: str
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = []
    user_id: Optional[int] = None


class CronJobLogResponse(BaseModel):
    id: int
    job_name: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    message: Optional[str] = None
    error_details: Optional[str] = None
    execution_data: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    hasMore: bool


class CronJobLogsResponse(BaseModel):
    logs: List[CronJobLogResponse]
    pagination: Pagination
