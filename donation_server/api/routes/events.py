"""
Diagnostics endpoint exposing the recent step event log.

Requires the X-Admin-Key header. Payment fields are redacted at write time.
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from donation_server.api.deps import Events, require_admin_key

router = APIRouter(
    prefix="/events",
    tags=["diagnostics"],
    dependencies=[Depends(require_admin_key)],
)


class EventLogEntryOut(BaseModel):
    """Event log entry response model."""
    timestamp: datetime
    correlation_id: str | None
    step: str
    data: str | None
    error: str | None


class EventLogOut(BaseModel):
    """Event log response model."""
    capacity: int
    count: int
    entries: list[EventLogEntryOut]


@router.get("", response_model=EventLogOut)
@router.get("/", response_model=EventLogOut)
async def list_events(events: Events) -> EventLogOut:
    """Recent steps, oldest first."""
    entries = [EventLogEntryOut(**entry.to_dict()) for entry in events.entries()]
    return EventLogOut(
        capacity=events.capacity,
        count=len(entries),
        entries=entries,
    )
