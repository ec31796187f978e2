"""
Event queries, including the cached list/detail reads.

Cached reads return plain dicts so they can round-trip through Redis.
"""
from datetime import datetime
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession
from memberhub.cache.cache_decorators import cached, event_detail_key, EVENTS_LIST_PREFIX, EVENTS_COUNT_PREFIX
from memberhub.cache.redis_client import cache
from memberhub.core.config import settings
from memberhub.db.models.event import Event, EventAgeGroupPrice
from memberhub.db.models.attendee import Attendee, AttendeeStatus, AttendeeType


async def get_event_or_404(db: AsyncSession, event_id, lock: bool = False) -> Event:
    """
    Load an event row, optionally taking a row lock for the rest of the
    transaction (``SELECT ... FOR UPDATE`` where the backend supports it).
    """
    q = select(Event).where(Event.id == event_id)
    if lock:
        q = q.with_for_update()
    res = await db.execute(q)
    ev = res.scalars().first()
    if not ev:
        raise HTTPException(status_code=404, detail="Event not found")
    return ev


async def count_primaries(db: AsyncSession, event_id, status: AttendeeStatus) -> int:
    q = select(func.count(Attendee.id)).where(
        Attendee.event_id == event_id,
        Attendee.attendee_type == AttendeeType.primary,
        Attendee.rsvp_status == status,
    )
    res = await db.execute(q)
    return res.scalar() or 0


def event_to_dict(ev: Event, going_primaries: int) -> dict:
    available_spots = None
    if ev.has_capacity_limit:
        available_spots = max(0, ev.capacity - going_primaries)
    return {
        'id': str(ev.id),
        'title': ev.title,
        'description': ev.description,
        'location': ev.location,
        'start_at': ev.start_at.isoformat(),
        'end_at': ev.end_at.isoformat(),
        'capacity': ev.capacity,
        'waitlist_enabled': ev.waitlist_enabled,
        'waitlist_limit': ev.waitlist_limit,
        'attending_count': ev.attending_count or 0,
        'recurrence_rule': ev.recurrence_rule,
        'recurrence_timezone': ev.recurrence_timezone,
        'recurrence_exdates': ev.recurrence_exdates,
        'is_free': ev.is_free,
        'requires_payment': ev.requires_payment,
        'adult_price': ev.adult_price,
        'currency': ev.currency,
        'created_by': str(ev.created_by),
        'created_at': ev.created_at.isoformat() if ev.created_at else None,
        'available_spots': available_spots,
    }


def _filtered(q, created_by=None, starts_after=None, starts_before=None, search=None):
    if created_by:
        q = q.where(Event.created_by == created_by)
    if starts_after:
        q = q.where(Event.start_at >= starts_after)
    if starts_before:
        q = q.where(Event.start_at <= starts_before)
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(Event.title.ilike(pattern), Event.description.ilike(pattern)))
    return q


@cached(EVENTS_LIST_PREFIX)
async def list_events(
    db: AsyncSession,
    limit: int = 20,
    offset: int = 0,
    created_by=None,
    starts_after: Optional[datetime] = None,
    starts_before: Optional[datetime] = None,
    search: Optional[str] = None,
) -> List[dict]:
    """List events ordered by start time, as dicts for caching."""
    q = _filtered(select(Event), created_by, starts_after, starts_before, search)
    q = q.order_by(Event.start_at.asc(), Event.id).limit(limit).offset(offset)
    res = await db.execute(q)
    result = []
    for ev in res.scalars().all():
        going = await count_primaries(db, ev.id, AttendeeStatus.going)
        result.append(event_to_dict(ev, going))
    return result


@cached(EVENTS_COUNT_PREFIX)
async def count_events(
    db: AsyncSession,
    created_by=None,
    starts_after: Optional[datetime] = None,
    starts_before: Optional[datetime] = None,
    search: Optional[str] = None,
) -> int:
    q = _filtered(select(func.count(Event.id)), created_by, starts_after, starts_before, search)
    res = await db.execute(q)
    return res.scalar() or 0


async def get_event(db: AsyncSession, event_id) -> Optional[dict]:
    """Event detail as a dict, served from the cache when present."""
    key = event_detail_key(event_id)
    hit = await cache.get(key)
    if hit is not None:
        return hit
    res = await db.execute(select(Event).where(Event.id == event_id))
    ev = res.scalars().first()
    if not ev:
        return None
    going = await count_primaries(db, ev.id, AttendeeStatus.going)
    data = event_to_dict(ev, going)
    await cache.set(key, data, settings.EVENTS_CACHE_TTL)
    return data


async def list_events_in_range(db: AsyncSession, range_start: datetime, range_end: datetime) -> List[Event]:
    """Single events overlapping the range plus every recurring event begun by its end."""
    recurring = and_(Event.recurrence_rule.isnot(None), Event.recurrence_rule != "")
    q = select(Event).where(
        or_(
            and_(recurring, Event.start_at <= range_end),
            and_(~recurring, Event.start_at <= range_end, Event.end_at >= range_start),
        )
    ).order_by(Event.start_at.asc())
    res = await db.execute(q)
    return list(res.scalars().all())


async def replace_age_group_prices(db: AsyncSession, event: Event, prices: dict) -> None:
    event.age_group_prices.clear()
    await db.flush()
    for age_group, price in prices.items():
        event.age_group_prices.append(EventAgeGroupPrice(age_group=age_group, price=price))
    await db.flush()
