"""
Waitlist ordering and promotion planning.

Only primary attendees hold waitlist positions. Positions are contiguous
from 1, ordered by when the attendee first joined the waitlist, so leaving
and rejoining does not reset anyone's place in line.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from memberhub.db.models.attendee import AttendeeStatus, AttendeeType
from memberhub.domain.recurrence import as_utc

NO_SPOTS = "No primary spots available for promotion"
NO_WAITLIST = "No waitlisted users to promote"

_LAST = datetime.max.replace(tzinfo=timezone.utc)


@dataclass
class PromotionRecord:
    attendee: object
    promoted_from_position: int
    promotion_number: int
    is_family: bool = False

    @property
    def message(self) -> str:
        if self.is_family:
            return f"{self.attendee.name} (family member) promoted"
        return f"{self.attendee.name} promoted from waitlist position {self.promoted_from_position}"

    def to_dict(self) -> dict:
        return {
            "user_id": str(self.attendee.user_id),
            "attendee_id": str(self.attendee.id),
            "name": self.attendee.name,
            "promoted_from_position": self.promoted_from_position,
            "promotion_number": self.promotion_number,
            "message": self.message,
        }


@dataclass
class PromotionPlan:
    records: List[PromotionRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class PromotionResult:
    success: bool
    promotions_count: int = 0
    promoted_users: List[dict] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _is_waitlisted_primary(a) -> bool:
    return a.attendee_type == AttendeeType.primary and a.rsvp_status == AttendeeStatus.waitlisted


def _join_key(a):
    joined = a.original_waitlist_joined_at or a.waitlist_joined_at or a.created_at
    return (as_utc(joined) if joined else _LAST, str(a.id))


def order_waitlist(attendees: Sequence) -> List:
    """Waitlisted primaries in first-joined order."""
    return sorted((a for a in attendees if _is_waitlisted_primary(a)), key=_join_key)


def recalculate_positions(attendees: Sequence) -> Dict:
    """Map attendee id to its contiguous 1-based waitlist position."""
    return {a.id: i for i, a in enumerate(order_waitlist(attendees), start=1)}


def next_position(attendees: Sequence) -> int:
    positions = [a.waitlist_position for a in attendees if _is_waitlisted_primary(a) and a.waitlist_position]
    return max(positions, default=0) + 1


def _position_key(a):
    return (a.waitlist_position is None, a.waitlist_position or 0) + _join_key(a)


def available_primary_spots(capacity: Optional[int], going_primaries: int, waiting: int) -> int:
    """Seats open to waitlisted primaries; everyone fits when capacity is unlimited."""
    if not capacity or capacity <= 0:
        return waiting
    return max(0, capacity - going_primaries)


def plan_promotions(event, going_primaries: int, waitlisted: Sequence) -> PromotionPlan:
    """
    Decide who leaves the waitlist.

    Primaries are promoted in position order while primary seats remain;
    each brings their waitlisted family members along without using a seat.
    Promotion numbers run consecutively across primaries and family.
    """
    primaries = sorted((a for a in waitlisted if _is_waitlisted_primary(a)), key=_position_key)
    spots = available_primary_spots(event.capacity, going_primaries, len(primaries))
    if spots <= 0 and event.capacity and event.capacity > 0:
        return PromotionPlan(errors=[NO_SPOTS])
    if not primaries:
        return PromotionPlan(errors=[NO_WAITLIST])

    plan = PromotionPlan()
    number = 1
    for primary in primaries[:spots]:
        plan.records.append(PromotionRecord(primary, primary.waitlist_position or 0, number))
        number += 1
        family = [
            a for a in waitlisted
            if a.user_id == primary.user_id
            and a.attendee_type != AttendeeType.primary
            and a.rsvp_status == AttendeeStatus.waitlisted
        ]
        for member in sorted(family, key=_join_key):
            plan.records.append(PromotionRecord(member, member.waitlist_position or 0, number, is_family=True))
            number += 1
    return plan
