"""
Unit tests for waitlist ordering and promotion planning.
"""
import uuid
import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from memberhub.db.models.attendee import AttendeeStatus, AttendeeType
from memberhub.domain.waitlist import (
    NO_SPOTS,
    NO_WAITLIST,
    available_primary_spots,
    next_position,
    order_waitlist,
    plan_promotions,
    recalculate_positions,
)

T0 = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def attendee(name, minutes=0, position=None, user_id=None, kind=AttendeeType.primary,
             status=AttendeeStatus.waitlisted, original=None):
    joined = T0 + timedelta(minutes=minutes)
    return SimpleNamespace(
        id=uuid.uuid4(),
        user_id=user_id or uuid.uuid4(),
        name=name,
        attendee_type=kind,
        rsvp_status=status,
        waitlist_position=position,
        waitlist_joined_at=joined,
        original_waitlist_joined_at=original or joined,
        created_at=joined,
    )


def event(capacity):
    return SimpleNamespace(capacity=capacity)


@pytest.mark.unit
class TestPositions:
    """Position numbering."""

    def test_order_by_first_join(self):
        """Original join time wins over a later rejoin."""
        early = attendee("Early", minutes=30, original=T0)
        late = attendee("Late", minutes=10)

        assert order_waitlist([late, early]) == [early, late]

    def test_family_and_non_waitlisted_ignored(self):
        primary = attendee("Primary")
        child = attendee("Child", kind=AttendeeType.family_member, user_id=primary.user_id)
        going = attendee("Going", status=AttendeeStatus.going)

        assert order_waitlist([primary, child, going]) == [primary]

    def test_recalculate_is_contiguous(self):
        a, b, c = attendee("A", 0, 1), attendee("B", 5, 4), attendee("C", 10, 9)

        positions = recalculate_positions([c, a, b])

        assert [positions[x.id] for x in (a, b, c)] == [1, 2, 3]

    def test_next_position_after_highest(self):
        assert next_position([attendee("A", position=2), attendee("B", position=5)]) == 6
        assert next_position([]) == 1


@pytest.mark.unit
class TestPlanPromotions:
    """Promotion planning against primary capacity."""

    def test_promotes_in_position_order(self):
        first = attendee("First", 0, 1)
        second = attendee("Second", 5, 2)

        plan = plan_promotions(event(capacity=3), going_primaries=2, waitlisted=[second, first])

        assert [r.attendee for r in plan.records] == [first]
        assert plan.records[0].promoted_from_position == 1
        assert plan.records[0].promotion_number == 1
        assert plan.errors == []

    def test_family_promoted_with_primary(self):
        """Family rows follow their primary without taking a seat."""
        primary = attendee("Parent", 0, 1)
        kid = attendee("Kid", 1, kind=AttendeeType.family_member, user_id=primary.user_id)
        stranger = attendee("Stranger", 2, 2)

        plan = plan_promotions(event(capacity=1), 0, [primary, kid, stranger])

        assert [r.attendee.name for r in plan.records] == ["Parent", "Kid"]
        assert [r.promotion_number for r in plan.records] == [1, 2]
        assert plan.records[1].is_family
        assert "family member" in plan.records[1].message

    def test_no_spots(self):
        plan = plan_promotions(event(capacity=2), 2, [attendee("A", position=1)])

        assert plan.records == []
        assert plan.errors == [NO_SPOTS]

    def test_empty_waitlist(self):
        plan = plan_promotions(event(capacity=5), 1, [])

        assert plan.errors == [NO_WAITLIST]

    def test_unlimited_capacity_promotes_everyone(self):
        waiting = [attendee("A", 0, 1), attendee("B", 1, 2)]

        plan = plan_promotions(event(capacity=0), 10, waiting)

        assert len(plan.records) == 2

    def test_unlimited_capacity_empty_waitlist(self):
        plan = plan_promotions(event(capacity=None), 3, [])

        assert plan.errors == [NO_WAITLIST]

    def test_record_to_dict(self):
        a = attendee("Alex", position=3)
        plan = plan_promotions(event(capacity=4), 0, [a])

        data = plan.records[0].to_dict()
        assert data["attendee_id"] == str(a.id)
        assert data["promoted_from_position"] == 3
        assert data["message"] == "Alex promoted from waitlist position 3"


@pytest.mark.unit
def test_available_primary_spots():
    assert available_primary_spots(10, 7, 5) == 3
    assert available_primary_spots(10, 12, 5) == 0
    assert available_primary_spots(None, 3, 4) == 4
