from typing import List, Optional, Sequence
from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from memberhub.db.models.attendee import Attendee, AttendeeStatus


async def list_household(db: AsyncSession, event_id, user_id) -> List[Attendee]:
    """Every attendee row one user holds for an event, oldest first."""
    q = (
        select(Attendee)
        .where(Attendee.event_id == event_id, Attendee.user_id == user_id)
        .order_by(Attendee.created_at.asc(), Attendee.id)
    )
    res = await db.execute(q)
    return list(res.scalars().all())


async def list_event_attendees(
    db: AsyncSession, event_id, statuses: Optional[Sequence[AttendeeStatus]] = None
) -> List[Attendee]:
    q = select(Attendee).where(Attendee.event_id == event_id)
    if statuses:
        q = q.where(Attendee.rsvp_status.in_(list(statuses)))
    q = q.order_by(Attendee.created_at.asc(), Attendee.id)
    res = await db.execute(q)
    return list(res.scalars().all())


async def get_attendee_or_404(db: AsyncSession, event_id, attendee_id) -> Attendee:
    q = select(Attendee).where(Attendee.id == attendee_id, Attendee.event_id == event_id)
    res = await db.execute(q)
    attendee = res.scalars().first()
    if not attendee:
        raise HTTPException(status_code=404, detail="Attendee not found")
    return attendee


async def get_by_family_member(db: AsyncSession, event_id, family_member_id) -> Optional[Attendee]:
    q = select(Attendee).where(
        Attendee.event_id == event_id, Attendee.family_member_id == family_member_id
    )
    res = await db.execute(q)
    return res.scalars().first()


async def count_going(db: AsyncSession, event_id) -> int:
    """Going attendees of every type; the value ``attending_count`` mirrors."""
    q = select(func.count(Attendee.id)).where(
        Attendee.event_id == event_id, Attendee.rsvp_status == AttendeeStatus.going
    )
    res = await db.execute(q)
    return res.scalar() or 0
