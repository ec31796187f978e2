from datetime import datetime
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from memberhub.cache.cache_decorators import invalidate_event_cache
from memberhub.core.config import settings
from memberhub.core.logging import logger
from memberhub.db.models.attendee import Attendee, AttendeeStatus, AttendeeType, Relationship, AgeGroup
from memberhub.db.models.event import Event
from memberhub.db.models.user import User
from memberhub.db.repositories.attendees import (
    list_household,
    list_event_attendees,
    get_attendee_or_404,
    get_by_family_member,
    count_going,
)
from memberhub.db.repositories.events import get_event_or_404, count_primaries
from memberhub.db.repositories.family import get_family_member_or_404
from memberhub.db.session import utcnow
from memberhub.domain.attendee_policy import (
    SEATED,
    AttendeeCounts,
    CapacityState,
    StatusChange,
    attending_delta,
    calculate_attendee_counts,
    capacity_state,
    find_primary,
    plan_status_change,
    validate_household_size,
)
from memberhub.domain.family import validate_family_member_name
from memberhub.domain.recurrence import as_utc
from memberhub.schemas import AttendeeCreate, AttendeeUpdate
from memberhub.services.base import BaseService
from memberhub.services.waitlist_service import WaitlistService


class AttendeeService(BaseService):
    """
    RSVPs for primaries, family members and guests.

    Every mutation locks the event row, applies the household's planned
    status changes, keeps ``attending_count`` in step and refills freed
    seats from the waitlist, all in one transaction.
    """

    def __init__(self, session, outbox=None):
        super().__init__(session, outbox)
        self.waitlist = WaitlistService(session, self.outbox)

    async def _capacity(self, event: Event) -> CapacityState:
        await self.session.flush()
        going = await count_primaries(self.session, event.id, AttendeeStatus.going)
        waiting = await count_primaries(self.session, event.id, AttendeeStatus.waitlisted)
        return capacity_state(event, going, waiting)

    @staticmethod
    def _ensure_open(event: Event, now: datetime) -> None:
        if not event.is_recurring and as_utc(event.end_at) < now:
            raise HTTPException(status_code=400, detail="Cannot RSVP to an event that has already ended")

    @staticmethod
    def _ensure_approved(user: User) -> None:
        if not (user.is_approved or user.is_admin):
            raise HTTPException(status_code=403, detail="Your account must be approved before you can RSVP")

    @staticmethod
    def _ensure_can_manage(attendee: Attendee, user: User) -> None:
        if attendee.user_id != user.id and not user.is_admin:
            raise HTTPException(status_code=403, detail="Forbidden")

    async def _apply(self, event: Event, changes: List[StatusChange], now: datetime) -> None:
        frees_seat = False
        for change in changes:
            attendee = change.attendee
            event.attending_count = max(0, (event.attending_count or 0) + attending_delta(change.previous, change.new))
            if change.joins_waitlist:
                await self.waitlist.join_waitlist(event, attendee, now)
            elif change.leaves_waitlist:
                await self.waitlist.leave_waitlist(event, attendee, change.new)
            else:
                attendee.rsvp_status = change.new
            frees_seat = frees_seat or change.frees_seat
        if frees_seat:
            await self.waitlist.promote(event, now)

    def _new_row(self, event: Event, user: User, attendee_type: AttendeeType, **fields) -> Attendee:
        attendee = Attendee(
            event_id=event.id,
            user_id=user.id,
            attendee_type=attendee_type,
            rsvp_status=AttendeeStatus.pending,
            **fields,
        )
        self.session.add(attendee)
        return attendee

    async def _add(self, event: Event, user: User, household: List[Attendee], data: AttendeeCreate, now: datetime) -> Attendee:
        if data.attendee_type == AttendeeType.primary:
            if find_primary(household):
                raise HTTPException(
                    status_code=409,
                    detail="You have already RSVP'd to this event. Please update your existing RSVP instead.",
                )
            target = self._new_row(
                event, user, AttendeeType.primary,
                relationship_type=Relationship.self,
                name=(data.name or "").strip() or user.display_name,
                age_group=data.age_group or AgeGroup.adult,
            )
        else:
            validate_household_size(household, 1, settings.MAX_FAMILY_MEMBERS_PER_RSVP)
            name, age_group = data.name, data.age_group
            if data.family_member_id:
                member = await get_family_member_or_404(self.session, data.family_member_id, user.id)
                if await get_by_family_member(self.session, event.id, member.id):
                    raise HTTPException(status_code=409, detail="This family member is already on the RSVP")
                name = name or member.name
                age_group = age_group or member.age_group
            relationship = data.relationship
            if relationship == Relationship.self:
                relationship = Relationship.guest if data.attendee_type == AttendeeType.guest else Relationship.child
            if data.rsvp_status in SEATED and find_primary(household) is None:
                household.append(self._new_row(
                    event, user, AttendeeType.primary,
                    relationship_type=Relationship.self,
                    name=user.display_name,
                    age_group=AgeGroup.adult,
                ))
            target = self._new_row(
                event, user, data.attendee_type,
                relationship_type=relationship,
                name=validate_family_member_name(name),
                age_group=age_group,
                family_member_id=data.family_member_id,
            )
        household.append(target)

        state = await self._capacity(event)
        changes = plan_status_change(household, target, data.rsvp_status, state, event.id)
        await self._apply(event, changes, now)
        self.emit("rsvp.created", {
            "event_id": str(event.id),
            "user_id": str(user.id),
            "attendee_id": str(target.id),
            "rsvp_status": target.rsvp_status.value,
        })
        return target

    async def _commit_or_conflict(self) -> None:
        try:
            await self.commit()
        except IntegrityError:
            await self.session.rollback()
            raise HTTPException(status_code=409, detail="This RSVP conflicts with an existing one")

    async def create_attendee(self, event_id, user: User, data: AttendeeCreate) -> Attendee:
        self._ensure_approved(user)
        now = utcnow()
        event = await get_event_or_404(self.session, event_id, lock=True)
        self._ensure_open(event, now)
        household = await list_household(self.session, event.id, user.id)
        attendee = await self._add(event, user, household, data, now)
        await self._commit_or_conflict()
        await invalidate_event_cache(event.id)
        logger.info(f"User {user.id} added {attendee.attendee_type.value} attendee {attendee.id} to event {event.id} as {attendee.rsvp_status.value}")
        return attendee

    async def bulk_add_attendees(self, event_id, user: User, items: List[AttendeeCreate]) -> List[Attendee]:
        """Add several attendees at once; any failure leaves none of them behind."""
        self._ensure_approved(user)
        now = utcnow()
        event = await get_event_or_404(self.session, event_id, lock=True)
        self._ensure_open(event, now)
        household = await list_household(self.session, event.id, user.id)
        adding = sum(1 for item in items if item.attendee_type != AttendeeType.primary)
        validate_household_size(household, adding, settings.MAX_FAMILY_MEMBERS_PER_RSVP)

        # Primaries first so family rows attach to the requested primary row
        ordered = sorted(items, key=lambda item: item.attendee_type != AttendeeType.primary)
        created = []
        try:
            for item in ordered:
                created.append(await self._add(event, user, household, item, now))
        except Exception:
            await self.session.rollback()
            raise
        await self._commit_or_conflict()
        await invalidate_event_cache(event.id)
        return created

    async def update_attendee(self, event_id, attendee_id, user: User, update: AttendeeUpdate) -> Attendee:
        now = utcnow()
        event = await get_event_or_404(self.session, event_id, lock=True)
        attendee = await get_attendee_or_404(self.session, event.id, attendee_id)
        self._ensure_can_manage(attendee, user)

        if update.name is not None:
            if attendee.attendee_type == AttendeeType.primary:
                attendee.name = update.name.strip() or attendee.name
            else:
                attendee.name = validate_family_member_name(update.name)
        if update.age_group is not None:
            attendee.age_group = update.age_group
        if update.relationship is not None and attendee.attendee_type != AttendeeType.primary:
            attendee.relationship_type = update.relationship

        previous = attendee.rsvp_status
        if update.rsvp_status is not None and update.rsvp_status != previous:
            if update.rsvp_status in SEATED:
                self._ensure_open(event, now)
            household = await list_household(self.session, event.id, attendee.user_id)
            state = await self._capacity(event)
            changes = plan_status_change(household, attendee, update.rsvp_status, state, event.id)
        else:
            changes = []
        if changes:
            await self._apply(event, changes, now)
            self.emit("rsvp.updated", {
                "event_id": str(event.id),
                "user_id": str(attendee.user_id),
                "attendee_id": str(attendee.id),
                "previous_status": previous.value,
                "rsvp_status": attendee.rsvp_status.value,
            })
            logger.info(f"Attendee {attendee.id} moved from {previous.value} to {attendee.rsvp_status.value}")

        await self.commit()
        await invalidate_event_cache(event.id)
        return attendee

    async def set_attendee_status(self, event_id, attendee_id, user: User, status: AttendeeStatus) -> Attendee:
        return await self.update_attendee(event_id, attendee_id, user, AttendeeUpdate(rsvp_status=status))

    async def delete_attendee(self, event_id, attendee_id, user: User) -> None:
        """
        Remove an attendee row. A seated attendee is first moved to
        ``not_going`` so its family follows and the waitlist refills.
        """
        now = utcnow()
        event = await get_event_or_404(self.session, event_id, lock=True)
        attendee = await get_attendee_or_404(self.session, event.id, attendee_id)
        self._ensure_can_manage(attendee, user)

        if attendee.rsvp_status in SEATED:
            household = await list_household(self.session, event.id, attendee.user_id)
            changes = plan_status_change(household, attendee, AttendeeStatus.not_going)
            await self._apply(event, changes, now)
        await self.session.delete(attendee)
        self.emit("rsvp.deleted", {
            "event_id": str(event.id),
            "user_id": str(attendee.user_id),
            "attendee_id": str(attendee.id),
        })
        await self.commit()
        await invalidate_event_cache(event.id)

    async def list_attendees(self, event_id, user_id) -> List[Attendee]:
        await get_event_or_404(self.session, event_id)
        return await list_household(self.session, event_id, user_id)

    async def list_all_attendees(self, event_id, status: Optional[AttendeeStatus] = None) -> List[Attendee]:
        await get_event_or_404(self.session, event_id)
        return await list_event_attendees(self.session, event_id, [status] if status else None)

    async def get_attendee_counts(self, event_id) -> AttendeeCounts:
        await get_event_or_404(self.session, event_id)
        return calculate_attendee_counts(await list_event_attendees(self.session, event_id))

    async def recalculate_event_attendee_count(self, event_id) -> int:
        """Repair ``attending_count`` from the attendee rows."""
        event = await get_event_or_404(self.session, event_id, lock=True)
        event.attending_count = await count_going(self.session, event.id)
        await self.commit()
        await invalidate_event_cache(event.id)
        logger.info(f"Event {event.id} attending count recalculated to {event.attending_count}")
        return event.attending_count
