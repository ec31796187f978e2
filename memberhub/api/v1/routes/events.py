from fastapi import APIRouter, Depends, HTTPException, Query, status
from memberhub.schemas import (
    EventCreate, EventUpdate, EventOut, PaginatedResponse, PaginationMetadata,
    EventOccurrencesOut, CalendarEntry, EventPricingUpdate, EventPricingOut,
    AttendeeCountsOut,
)
from memberhub.db.session import get_session
from memberhub.services.event_service import EventService
from memberhub.services.attendee_service import AttendeeService
from memberhub.auth import get_current_user, role_required
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import datetime
from uuid import UUID

router = APIRouter(prefix="/events", tags=["events"])


def get_event_service(session: AsyncSession = Depends(get_session)) -> EventService:
    """
    Dependency to get event service instance.

    Args:
        session: Database session

    Returns:
        EventService instance
    """
    return EventService(session)


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    payload: EventCreate,
    user=Depends(role_required("admin")),
    event_service: EventService = Depends(get_event_service)
):
    """
    Create an event (admin only).

    Args:
        payload: Event details and recurrence
        user: Current admin user
        event_service: Event service instance

    Returns:
        Created event

    Raises:
        RecurrenceError: The recurrence rule or time zone is invalid
    """
    return await event_service.create_event(payload, user.id)


@router.get("/", response_model=PaginatedResponse[EventOut])
async def get_events(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(20, ge=1, le=100, description="Number of items per page"),
    created_by: Optional[UUID] = Query(None, description="Filter by creator user ID"),
    starts_after: Optional[datetime] = Query(None, description="Filter events starting after this datetime"),
    starts_before: Optional[datetime] = Query(None, description="Filter events starting before this datetime"),
    search: Optional[str] = Query(None, description="Search in event title and description"),
    event_service: EventService = Depends(get_event_service)
):
    """
    List events with pagination, filtering, and search support.
    - page: Page number, 1-indexed (default: 1)
    - per_page: Number of items per page (default: 20, max: 100)
    - created_by: Filter by creator user ID
    - starts_after / starts_before: start time window (ISO format)
    - search: case-insensitive match on title and description
    """
    skip = (page - 1) * per_page
    total_count, events = await event_service.list_events_paginated(
        skip=skip,
        limit=per_page,
        created_by=created_by,
        starts_after=starts_after,
        starts_before=starts_before,
        search=search,
    )
    total_pages = (total_count + per_page - 1) // per_page  # Ceiling division

    return PaginatedResponse(
        items=events,
        pagination=PaginationMetadata(
            total=total_count,
            page=page,
            per_page=per_page,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1
        )
    )


@router.get("/calendar", response_model=List[CalendarEntry])
async def get_calendar(
    range_start: datetime = Query(..., description="Window start (inclusive)"),
    range_end: datetime = Query(..., description="Window end (inclusive)"),
    event_service: EventService = Depends(get_event_service)
):
    """Expanded occurrences of every event in the window, recurring ones included."""
    return await event_service.calendar(range_start, range_end)


@router.get("/{event_id}", response_model=EventOut)
async def get_event_detail(
    event_id: UUID,
    event_service: EventService = Depends(get_event_service)
):
    """
    Get a single event by id.

    Raises:
        HTTPException: If the event does not exist
    """
    ev = await event_service.get_event(event_id)
    if not ev:
        raise HTTPException(status_code=404, detail="Event not found")
    return ev


@router.patch("/{event_id}", response_model=EventOut)
async def update_event_endpoint(
    event_id: UUID,
    payload: EventUpdate,
    user=Depends(role_required("admin")),
    event_service: EventService = Depends(get_event_service)
):
    """
    Update an event (admin only). Only fields present in the payload change.

    Args:
        event_id: Event to update
        payload: Fields to change
        user: Current admin user
        event_service: Event service instance

    Returns:
        Updated event

    Raises:
        HTTPException: 404 if not found
        DomainError: The event would end before it starts
    """
    return await event_service.update_event(event_id, payload)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: UUID,
    user=Depends(role_required("admin")),
    event_service: EventService = Depends(get_event_service)
):
    await event_service.delete_event(event_id)
    return None


@router.get("/{event_id}/occurrences", response_model=EventOccurrencesOut)
async def get_event_occurrences(
    event_id: UUID,
    range_start: datetime = Query(...),
    range_end: datetime = Query(...),
    event_service: EventService = Depends(get_event_service)
):
    occurrences = await event_service.list_occurrences(event_id, range_start, range_end)
    return {"event_id": event_id, "occurrences": occurrences}


@router.get("/{event_id}/counts", response_model=AttendeeCountsOut)
async def get_event_counts(
    event_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    return await AttendeeService(session).get_attendee_counts(event_id)


@router.get("/{event_id}/pricing", response_model=EventPricingOut)
async def get_event_pricing(
    event_id: UUID,
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.get_pricing(event_id)


@router.put("/{event_id}/pricing", response_model=EventPricingOut)
async def update_event_pricing(
    event_id: UUID,
    payload: EventPricingUpdate,
    user=Depends(role_required("admin")),
    event_service: EventService = Depends(get_event_service)
):
    """Replace the event's age-group prices and refund policy (admin only)."""
    return await event_service.update_pricing(event_id, payload)
