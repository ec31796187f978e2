"""RSVP routes: a member's household on an event plus admin views."""
from fastapi import APIRouter, Depends, Query, status
from memberhub.schemas import (
    AttendeeCreate, AttendeeBulkCreate, AttendeeUpdate, AttendeeOut, AttendeeCountOut,
)
from memberhub.db.models.attendee import AttendeeStatus
from memberhub.db.session import get_session
from memberhub.services.attendee_service import AttendeeService
from memberhub.auth import get_current_user, role_required, approved_member_required
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

router = APIRouter(prefix="/events/{event_id}/attendees", tags=["attendees"])


def get_attendee_service(session: AsyncSession = Depends(get_session)) -> AttendeeService:
    """
    Dependency to get attendee service instance.

    Args:
        session: Database session

    Returns:
        AttendeeService instance
    """
    return AttendeeService(session)


@router.get("/", response_model=List[AttendeeOut])
async def list_my_attendees(
    event_id: UUID,
    user=Depends(get_current_user),
    service: AttendeeService = Depends(get_attendee_service),
):
    """The caller's own household for this event."""
    return await service.list_attendees(event_id, user.id)


@router.get("/all", response_model=List[AttendeeOut])
async def list_all_attendees(
    event_id: UUID,
    rsvp_status: Optional[AttendeeStatus] = Query(None, alias="status"),
    user=Depends(role_required("admin")),
    service: AttendeeService = Depends(get_attendee_service),
):
    return await service.list_all_attendees(event_id, rsvp_status)


@router.post("/", response_model=AttendeeOut, status_code=status.HTTP_201_CREATED)
async def add_attendee(
    event_id: UUID,
    payload: AttendeeCreate,
    user=Depends(approved_member_required),
    service: AttendeeService = Depends(get_attendee_service),
):
    """
    RSVP the caller or one of their family members/guests.

    The stored status may differ from the requested one: a full event puts
    the attendee on the waitlist and a family member follows its primary.

    Args:
        event_id: Event to RSVP to
        payload: Attendee type, name, age group and requested status
        user: Current approved member
        service: Attendee service instance

    Returns:
        Created attendee

    Raises:
        HTTPException: 400 for an ended event, 409 for a duplicate primary
        CapacityError: The event is full and the waitlist cannot take them
    """
    return await service.create_attendee(event_id, user, payload)


@router.post("/bulk", response_model=List[AttendeeOut], status_code=status.HTTP_201_CREATED)
async def add_attendees_bulk(
    event_id: UUID,
    payload: AttendeeBulkCreate,
    user=Depends(approved_member_required),
    service: AttendeeService = Depends(get_attendee_service),
):
    return await service.bulk_add_attendees(event_id, user, payload.attendees)


@router.post("/recalculate-count", response_model=AttendeeCountOut)
async def recalculate_count(
    event_id: UUID,
    user=Depends(role_required("admin")),
    service: AttendeeService = Depends(get_attendee_service),
):
    count = await service.recalculate_event_attendee_count(event_id)
    return {"event_id": event_id, "attending_count": count}


@router.patch("/{attendee_id}", response_model=AttendeeOut)
async def update_attendee(
    event_id: UUID,
    attendee_id: UUID,
    payload: AttendeeUpdate,
    user=Depends(get_current_user),
    service: AttendeeService = Depends(get_attendee_service),
):
    """
    Update an attendee's details or RSVP status.

    Args:
        event_id: Event the attendee belongs to
        attendee_id: Attendee to update
        payload: Fields to change; unset fields are left alone
        user: Current user; must own the attendee or be an admin
        service: Attendee service instance

    Returns:
        The updated attendee, whose status may be ``waitlisted`` when
        ``going`` was requested on a full event

    Raises:
        HTTPException: 403 for someone else's attendee, 404 if not found
        CapacityError: The event is full and the waitlist cannot take them
    """
    if payload.model_dump(exclude_unset=True).keys() == {"rsvp_status"}:
        return await service.set_attendee_status(event_id, attendee_id, user, payload.rsvp_status)
    return await service.update_attendee(event_id, attendee_id, user, payload)


@router.delete("/{attendee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attendee(
    event_id: UUID,
    attendee_id: UUID,
    user=Depends(get_current_user),
    service: AttendeeService = Depends(get_attendee_service),
):
    await service.delete_attendee(event_id, attendee_id, user)
    return None
