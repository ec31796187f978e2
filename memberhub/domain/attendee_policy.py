"""
RSVP rules for one user's household at one event.

A household is every attendee row a user holds for an event: their own
``primary`` row plus the family members and guests they answered for.
Family members never hold a seat of their own; they follow their primary,
so no family member is ever ``going`` while the primary is not.

Capacity counts primary attendees only.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from memberhub.core.errors import AttendeeRuleError, CapacityError
from memberhub.db.models.attendee import AttendeeStatus, AttendeeType

SEATED = (AttendeeStatus.going, AttendeeStatus.waitlisted)


@dataclass
class AttendeeCounts:
    going: int = 0
    not_going: int = 0
    pending: int = 0
    waitlisted: int = 0
    going_primaries: int = 0
    waitlisted_primaries: int = 0
    going_by_age_group: Dict[str, int] = field(default_factory=dict)

    @property
    def total_going(self) -> int:
        return self.going


@dataclass
class CapacityState:
    capacity: Optional[int]
    going_primaries: int
    waitlisted_primaries: int
    waitlist_enabled: bool
    waitlist_limit: Optional[int] = None

    @property
    def has_capacity_limit(self) -> bool:
        return bool(self.capacity and self.capacity > 0)

    @property
    def available_spots(self) -> Optional[int]:
        if not self.has_capacity_limit:
            return None
        return max(0, self.capacity - self.going_primaries)

    @property
    def is_full(self) -> bool:
        return self.has_capacity_limit and self.going_primaries >= self.capacity

    @property
    def waitlist_full(self) -> bool:
        return bool(self.waitlist_limit) and self.waitlisted_primaries >= self.waitlist_limit

    @property
    def can_waitlist(self) -> bool:
        return self.waitlist_enabled and not self.waitlist_full

    @property
    def reason(self) -> Optional[str]:
        if not self.is_full:
            return None
        if not self.waitlist_enabled:
            return CapacityError.WAITLIST_DISABLED
        if self.waitlist_full:
            return CapacityError.WAITLIST_FULL
        return CapacityError.CAPACITY_EXCEEDED


@dataclass
class StatusChange:
    attendee: object
    previous: AttendeeStatus
    new: AttendeeStatus

    @property
    def joins_waitlist(self) -> bool:
        return self.new == AttendeeStatus.waitlisted and self.previous != AttendeeStatus.waitlisted

    @property
    def leaves_waitlist(self) -> bool:
        return self.previous == AttendeeStatus.waitlisted and self.new != AttendeeStatus.waitlisted

    @property
    def frees_seat(self) -> bool:
        """A primary leaving ``going`` opens a seat for the waitlist."""
        return (
            self.attendee.attendee_type == AttendeeType.primary
            and self.previous == AttendeeStatus.going
            and self.new != AttendeeStatus.going
        )


def _age_key(age_group) -> str:
    if age_group is None:
        return "unknown"
    return getattr(age_group, "value", age_group)


def calculate_attendee_counts(attendees: Iterable) -> AttendeeCounts:
    counts = AttendeeCounts()
    for a in attendees:
        status = a.rsvp_status
        is_primary = a.attendee_type == AttendeeType.primary
        if status == AttendeeStatus.going:
            counts.going += 1
            if is_primary:
                counts.going_primaries += 1
            key = _age_key(a.age_group)
            counts.going_by_age_group[key] = counts.going_by_age_group.get(key, 0) + 1
        elif status == AttendeeStatus.not_going:
            counts.not_going += 1
        elif status == AttendeeStatus.pending:
            counts.pending += 1
        elif status == AttendeeStatus.waitlisted:
            counts.waitlisted += 1
            if is_primary:
                counts.waitlisted_primaries += 1
    return counts


def attending_delta(previous: Optional[AttendeeStatus], new: Optional[AttendeeStatus]) -> int:
    """Change in ``attending_count`` caused by moving from ``previous`` to ``new``."""
    was_going = previous == AttendeeStatus.going
    is_going = new == AttendeeStatus.going
    if is_going and not was_going:
        return 1
    if was_going and not is_going:
        return -1
    return 0


def capacity_state(event, going_primaries: int, waitlisted_primaries: int) -> CapacityState:
    return CapacityState(
        capacity=event.capacity,
        going_primaries=going_primaries,
        waitlisted_primaries=waitlisted_primaries,
        waitlist_enabled=bool(event.waitlist_enabled),
        waitlist_limit=event.waitlist_limit,
    )


def resolve_requested_status(
    requested: AttendeeStatus,
    attendee_type: AttendeeType,
    state: Optional[CapacityState],
    event_id=None,
) -> AttendeeStatus:
    """
    Turn a requested status into the one that is actually granted.

    A primary asking for ``going`` on a full event is waitlisted when the
    waitlist can take them.

    Raises:
        CapacityError: The event is full and the waitlist is disabled or full
    """
    if requested != AttendeeStatus.going or attendee_type != AttendeeType.primary:
        return requested
    if state is None or not state.is_full:
        return AttendeeStatus.going
    if state.can_waitlist:
        return AttendeeStatus.waitlisted
    raise CapacityError(
        "Event is at full capacity" if state.waitlist_enabled else "Event is at full capacity and has no waitlist",
        event_id=str(event_id) if event_id is not None else None,
        current_count=state.going_primaries,
        capacity=state.capacity or 0,
        waitlist_enabled=state.waitlist_enabled,
        can_waitlist=False,
        reason=state.reason,
    )


def find_primary(household: Sequence):
    for a in household:
        if a.attendee_type == AttendeeType.primary:
            return a
    return None


def _family(household: Sequence, exclude=None) -> List:
    return [a for a in household if a.attendee_type != AttendeeType.primary and a is not exclude]


def _change(attendee, new: AttendeeStatus) -> Optional[StatusChange]:
    if attendee.rsvp_status == new:
        return None
    return StatusChange(attendee, attendee.rsvp_status, new)


def _follow(family: Iterable, primary_status: AttendeeStatus) -> List[StatusChange]:
    """Bring seated family members in line with their primary's status."""
    changes = []
    for member in family:
        if member.rsvp_status not in SEATED:
            continue
        if primary_status in SEATED:
            target = primary_status
        else:
            target = AttendeeStatus.not_going
        change = _change(member, target)
        if change:
            changes.append(change)
    return changes


def plan_status_change(
    household: Sequence,
    target,
    new_status: AttendeeStatus,
    state: Optional[CapacityState] = None,
    event_id=None,
) -> List[StatusChange]:
    """
    Plan every row change needed to move ``target`` to ``new_status``.

    The primary's own request is resolved against ``state`` first; the family
    then follows it. A family member asking for a seat pulls the primary in
    with them, so the primary's request is resolved against capacity too.
    A waitlisted primary asking for ``going`` while the event is still full
    keeps their place in line.
    Returns an empty list for a no-op.

    Raises:
        AttendeeRuleError: A family member asks for a seat with no primary row
        CapacityError: The primary cannot be seated or waitlisted
    """
    if target.attendee_type == AttendeeType.primary:
        granted = new_status
        if new_status == AttendeeStatus.going and target.rsvp_status != AttendeeStatus.going:
            if target.rsvp_status == AttendeeStatus.waitlisted and state is not None and state.is_full:
                return []
            granted = resolve_requested_status(new_status, AttendeeType.primary, state, event_id)
        own = _change(target, granted)
        if own is None:
            return []
        return [own] + _follow(_family(household), granted)

    if new_status not in SEATED:
        own = _change(target, new_status)
        return [own] if own else []

    primary = find_primary(household)
    if primary is None:
        raise AttendeeRuleError("A family member cannot RSVP before the primary attendee")

    changes: List[StatusChange] = []
    primary_status = primary.rsvp_status
    if primary_status not in SEATED:
        primary_status = resolve_requested_status(AttendeeStatus.going, AttendeeType.primary, state, event_id)
        changes.append(StatusChange(primary, primary.rsvp_status, primary_status))

    own = _change(target, primary_status)
    if own:
        changes.append(own)
    return changes


def validate_household_size(household: Sequence, adding: int, limit: int) -> None:
    """Raise AttendeeRuleError when more than ``limit`` family members would be attached."""
    current = len(_family(household))
    if current + adding > limit:
        raise AttendeeRuleError(
            f"A maximum of {limit} family members can be added per RSVP"
        )
