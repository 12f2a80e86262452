import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.dependencies.auth import get_current_user_id
from app.models.calendar_event import CalendarEvent
from app.schemas.calendar import CalendarOccurrencesResponse
from app.services.calendar_expander import expand_events

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_month_param(month: str) -> tuple[int, int]:
    """Parse "YYYY-MM" into (year, month)."""
    try:
        year_str, month_str = month.split("-")
        year, month_number = int(year_str), int(month_str)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid month format. Use YYYY-MM")
    if not 1 <= month_number <= 12 or not 1 <= year <= 9999:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid month format. Use YYYY-MM")
    return year, month_number


@router.get("/calendar-events", response_model=CalendarOccurrencesResponse)
def get_calendar_event_occurrences(
    month: str = Query(..., description="YYYY-MM"),
    tool_id: Optional[int] = Query(None, alias="toolId"),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """The user's dashboard calendar events for one month, with recurring events expanded."""
    year, month_number = parse_month_param(month)

    try:
        query = db.query(CalendarEvent).filter(
            CalendarEvent.user_id == user_id,
            CalendarEvent.add_to_dashboard == True,  # noqa: E712
            CalendarEvent.is_active == True,  # noqa: E712
        )
        if tool_id is not None:
            query = query.filter(CalendarEvent.tool_id == tool_id)
        events = query.all()
    except SQLAlchemyError as e:
        logger.error("[Calendar] Error fetching calendar events for user %s: %s", user_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch calendar events")

    if not events:
        return {"items": []}

    events_by_id = {event.id: event for event in events}
    items = []
    for occurrence in expand_events(events, year, month_number):
        event = events_by_id[occurrence.metadata["referenceId"]]
        scheduled = occurrence.scheduled_at.isoformat()
        metadata = dict(occurrence.metadata)
        metadata["categoryName"] = event.category.name if event.category else None
        metadata["categoryColor"] = event.category.card_color if event.category else None
        items.append({
            "id": f"{event.id}-{scheduled}",
            "title": occurrence.title,
            "description": occurrence.description,
            "type": "calendar_event",
            "scheduled_date": scheduled,
            "status": "pending",
            "metadata": metadata,
            "tools": {"id": event.tool_id, "name": "Calendar Events"} if event.tool_id else None,
        })

    logger.info(
        "[Calendar] Expanded %s event(s) into %s occurrence(s) for %04d-%02d",
        len(events), len(items), year, month_number,
    )
    return {"items": items}
