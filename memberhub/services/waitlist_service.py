from datetime import datetime
from typing import Optional
from memberhub.cache.cache_decorators import invalidate_event_cache
from memberhub.core.logging import logger
from memberhub.db.models.attendee import Attendee, AttendeeStatus, AttendeeType
from memberhub.db.models.event import Event
from memberhub.db.repositories.attendees import list_event_attendees
from memberhub.db.repositories.events import get_event_or_404, count_primaries
from memberhub.db.session import utcnow
from memberhub.domain.waitlist import (
    PromotionResult,
    next_position,
    order_waitlist,
    plan_promotions,
    recalculate_positions,
)
from memberhub.services.base import BaseService


class WaitlistService(BaseService):
    """
    Waitlist positions and promotion for one event.

    Methods taking an ``Event`` row run inside the caller's transaction and
    expect the row to be locked already; the ``*_for_event`` style entry
    points taking an id lock it themselves and commit.
    """

    async def _waitlisted(self, event_id):
        return await list_event_attendees(self.session, event_id, [AttendeeStatus.waitlisted])

    async def _renumber(self, event_id) -> int:
        await self.session.flush()
        waitlisted = await self._waitlisted(event_id)
        positions = recalculate_positions(waitlisted)
        for a in waitlisted:
            if a.attendee_type == AttendeeType.primary:
                a.waitlist_position = positions[a.id]
            else:
                a.waitlist_position = None
        return len(positions)

    async def join_waitlist(self, event: Event, attendee: Attendee, now: Optional[datetime] = None) -> Attendee:
        """
        Put an attendee on the waitlist. Only primaries take a position; the
        first join time survives later leave/rejoin cycles, so a returning
        primary is slotted back by that time rather than at the end.
        """
        now = now or utcnow()
        await self.session.flush()
        attendee.rsvp_status = AttendeeStatus.waitlisted
        attendee.waitlist_joined_at = now
        if attendee.original_waitlist_joined_at is None:
            attendee.original_waitlist_joined_at = now
        if attendee.attendee_type == AttendeeType.primary:
            await self._renumber(event.id)
            logger.info(f"Attendee {attendee.id} joined waitlist for event {event.id} at position {attendee.waitlist_position}")
            self.emit("waitlist.joined", {
                "event_id": str(event.id),
                "user_id": str(attendee.user_id),
                "attendee_id": str(attendee.id),
                "position": attendee.waitlist_position,
            })
        return attendee

    async def leave_waitlist(self, event: Event, attendee: Attendee, new_status: AttendeeStatus) -> Attendee:
        attendee.rsvp_status = new_status
        attendee.waitlist_position = None
        if attendee.attendee_type == AttendeeType.primary:
            await self._renumber(event.id)
            logger.info(f"Attendee {attendee.id} left waitlist for event {event.id}")
        return attendee

    async def promote(self, event: Event, now: Optional[datetime] = None) -> PromotionResult:
        """Fill free primary seats from the waitlist; runs in the caller's transaction."""
        now = now or utcnow()
        await self.session.flush()
        going = await count_primaries(self.session, event.id, AttendeeStatus.going)
        plan = plan_promotions(event, going, await self._waitlisted(event.id))
        if not plan.records:
            return PromotionResult(success=True, errors=plan.errors)

        for record in plan.records:
            a = record.attendee
            a.rsvp_status = AttendeeStatus.going
            a.waitlist_position = None
            a.promoted_from_waitlist = True
            a.promoted_at = now
            a.promotion_number = record.promotion_number
            event.attending_count = (event.attending_count or 0) + 1
            self.emit("waitlist.promoted", {
                "event_id": str(event.id),
                "event_title": event.title,
                "user_id": str(a.user_id),
                "attendee_id": str(a.id),
                "name": a.name,
                "promoted_from_position": record.promoted_from_position,
            })
        await self._renumber(event.id)
        logger.info(f"Promoted {len(plan.records)} attendee(s) from waitlist for event {event.id}")
        return PromotionResult(
            success=True,
            promotions_count=len(plan.records),
            promoted_users=[r.to_dict() for r in plan.records],
            errors=plan.errors,
        )

    async def trigger_automatic_promotions(self, event_id) -> PromotionResult:
        event = await get_event_or_404(self.session, event_id, lock=True)
        try:
            result = await self.promote(event)
            await self.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Auto-promotion failed for event {event_id}: {e}")
            return PromotionResult(success=False, errors=[str(e)])
        await invalidate_event_cache(event_id)
        return result

    async def recalculate_waitlist_positions(self, event_id) -> int:
        """Renumber waitlisted primaries 1..n by first join time."""
        await get_event_or_404(self.session, event_id, lock=True)
        updated = await self._renumber(event_id)
        await self.commit()
        logger.info(f"Recalculated {updated} waitlist position(s) for event {event_id}")
        return updated

    async def assign_missing_positions(self, event_id) -> int:
        """Number waitlisted primaries that lack a position, after the highest existing one."""
        await get_event_or_404(self.session, event_id, lock=True)
        waitlisted = order_waitlist(await self._waitlisted(event_id))
        position = next_position(waitlisted)
        assigned = 0
        for a in waitlisted:
            if a.waitlist_position is None:
                a.waitlist_position = position
                position += 1
                assigned += 1
        await self.commit()
        return assigned

    async def get_positions(self, event_id, user_id=None) -> dict:
        await get_event_or_404(self.session, event_id)
        primaries = [a for a in await self._waitlisted(event_id) if a.attendee_type == AttendeeType.primary]
        positions = {str(a.user_id): a.waitlist_position for a in primaries if a.waitlist_position is not None}
        return {
            "positions": positions,
            "my_position": positions.get(str(user_id)) if user_id is not None else None,
            "waitlist_count": len(primaries),
        }
