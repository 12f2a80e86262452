from pydantic import BaseModel
from typing import Optional, List, Any, Dict


class CalendarOccurrenceItem(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    type: str = "calendar_event"
    scheduled_date: str  # Local date-time, no UTC offset
    status: str = "pending"
    metadata: Dict[str, Any] = {}
    tools: Optional[Dict[str, Any]] = None


class CalendarOccurrencesResponse(BaseModel):
    items: List[CalendarOccurrenceItem]
