from datetime import datetime
from typing import List, Optional, Tuple
from fastapi import HTTPException
from memberhub.cache.cache_decorators import invalidate_event_cache
from memberhub.core.config import settings
from memberhub.core.errors import DomainError
from memberhub.core.logging import logger
from memberhub.db.models.attendee import AttendeeStatus
from memberhub.db.models.event import Event
from memberhub.db.repositories.events import (
    get_event_or_404,
    get_event as db_get_event,
    list_events as db_list_events,
    count_events as db_count_events,
    list_events_in_range,
    count_primaries,
    event_to_dict,
    replace_age_group_prices,
)
from memberhub.domain.payments import default_age_group_prices
from memberhub.domain.recurrence import Occurrence, as_utc, occurrences_for_event, validate_rule, expand_recurrence, Recurrence
from memberhub.schemas import EventCreate, EventUpdate, EventPricingUpdate
from memberhub.services.base import BaseService
from memberhub.services.waitlist_service import WaitlistService


def _check_recurrence(event: Event) -> None:
    if event.recurrence_rule and event.recurrence_rule.strip():
        validate_rule(event.recurrence_rule, event.start_at, event.recurrence_timezone)
        # Exception dates are only parsed during expansion
        expand_recurrence(
            event.start_at, event.end_at,
            Recurrence(event.recurrence_rule, event.recurrence_timezone, tuple(event.recurrence_exdates or ())),
            event.start_at, event.start_at, max_occurrences=1,
        )


class EventService(BaseService):

    async def create_event(self, payload: EventCreate, user_id) -> dict:
        ev = Event(
            **payload.model_dump(),
            created_by=user_id,
            attending_count=0,
            currency=settings.DEFAULT_CURRENCY,
            age_group_prices=[],
        )
        _check_recurrence(ev)
        self.session.add(ev)
        await self.session.flush()
        self.emit("event.created", {"event_id": str(ev.id), "created_by": str(user_id)})
        await self.commit()
        await invalidate_event_cache()
        logger.info(f"Event {ev.id} created by {user_id}")
        return event_to_dict(ev, 0)

    async def get_event(self, event_id) -> Optional[dict]:
        return await db_get_event(self.session, event_id)

    async def list_events_paginated(
        self,
        skip: int,
        limit: int,
        created_by: Optional[str],
        starts_after: Optional[datetime],
        starts_before: Optional[datetime],
        search: Optional[str],
    ) -> Tuple[int, List[dict]]:
        """
        List events with pagination support.
        Returns tuple of (total_count, events).
        """
        total = await db_count_events(
            self.session,
            created_by=created_by,
            starts_after=starts_after,
            starts_before=starts_before,
            search=search,
        )
        events = await db_list_events(
            self.session,
            limit=limit,
            offset=skip,
            created_by=created_by,
            starts_after=starts_after,
            starts_before=starts_before,
            search=search,
        )
        return total, events

    async def update_event(self, event_id, payload: EventUpdate) -> dict:
        """
        Apply a partial update. Raising or removing the capacity limit
        promotes waitlisted attendees into the new seats.
        """
        ev = await get_event_or_404(self.session, event_id, lock=True)
        old_capacity = ev.capacity or 0
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(ev, field, value)
        if ev.end_at is None or as_utc(ev.end_at) < as_utc(ev.start_at):
            raise DomainError("end_at must not be before start_at")
        _check_recurrence(ev)

        new_capacity = ev.capacity or 0
        if old_capacity > 0 and (new_capacity == 0 or new_capacity > old_capacity):
            await WaitlistService(self.session, self.outbox).promote(ev)

        self.emit("event.updated", {"event_id": str(ev.id)})
        await self.commit()
        await invalidate_event_cache(ev.id)
        going = await count_primaries(self.session, ev.id, AttendeeStatus.going)
        return event_to_dict(ev, going)

    async def delete_event(self, event_id) -> None:
        ev = await get_event_or_404(self.session, event_id)
        await self.session.delete(ev)
        self.emit("event.deleted", {"event_id": str(event_id)})
        await self.commit()
        await invalidate_event_cache(event_id)
        logger.info(f"Event {event_id} deleted")

    async def list_occurrences(self, event_id, range_start: datetime, range_end: datetime) -> List[Occurrence]:
        ev = await get_event_or_404(self.session, event_id)
        return occurrences_for_event(ev, range_start, range_end)

    async def calendar(self, range_start: datetime, range_end: datetime) -> List[dict]:
        """Every occurrence of every event in the range, in start order."""
        if as_utc(range_end) < as_utc(range_start):
            raise DomainError("Range end is before range start")
        entries = []
        for ev in await list_events_in_range(self.session, range_start, range_end):
            for occ in occurrences_for_event(ev, range_start, range_end):
                entries.append({
                    "event_id": ev.id,
                    "title": ev.title,
                    "location": ev.location,
                    "start": occ.start,
                    "end": occ.end,
                })
        entries.sort(key=lambda e: e["start"])
        return entries[: settings.MAX_RECURRENCE_OCCURRENCES]

    @staticmethod
    def pricing_to_dict(ev: Event) -> dict:
        return {
            "event_id": ev.id,
            "is_free": ev.is_free,
            "requires_payment": ev.requires_payment,
            "adult_price": ev.adult_price,
            "age_group_prices": ev.price_map(),
            "currency": ev.currency,
            "payment_deadline": ev.payment_deadline,
            "refund_allowed": ev.refund_allowed,
            "refund_deadline": ev.refund_deadline,
            "refund_fee_percentage": ev.refund_fee_percentage,
        }

    async def get_pricing(self, event_id) -> dict:
        return self.pricing_to_dict(await get_event_or_404(self.session, event_id))

    async def update_pricing(self, event_id, payload: EventPricingUpdate) -> dict:
        """
        Replace an event's pricing. A paid event without explicit age-group
        prices is priced from the adult price.
        """
        ev = await get_event_or_404(self.session, event_id, lock=True)
        if payload.is_free and payload.requires_payment:
            raise HTTPException(status_code=400, detail="A free event cannot require payment")

        ev.is_free = payload.is_free
        ev.requires_payment = payload.requires_payment
        ev.adult_price = 0 if payload.is_free else payload.adult_price
        ev.currency = (payload.currency or ev.currency or settings.DEFAULT_CURRENCY).upper()
        ev.payment_deadline = payload.payment_deadline
        ev.refund_allowed = payload.refund_allowed
        ev.refund_deadline = payload.refund_deadline
        ev.refund_fee_percentage = payload.refund_fee_percentage

        if payload.is_free or not payload.requires_payment:
            prices = {}
        else:
            prices = default_age_group_prices(payload.adult_price, payload.age_group_prices)
        await replace_age_group_prices(self.session, ev, prices)

        self.emit("event.updated", {"event_id": str(ev.id)})
        await self.commit()
        await invalidate_event_cache(ev.id)
        return self.pricing_to_dict(ev)
