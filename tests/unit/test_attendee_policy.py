"""
Unit tests for household RSVP rules: capacity, waitlisting and family
members following their primary.
"""
import uuid
import pytest
from types import SimpleNamespace

from memberhub.core.errors import AttendeeRuleError, CapacityError
from memberhub.db.models.attendee import AttendeeStatus, AttendeeType, AgeGroup
from memberhub.domain.attendee_policy import (
    CapacityState,
    StatusChange,
    attending_delta,
    calculate_attendee_counts,
    plan_status_change,
    resolve_requested_status,
    validate_household_size,
)

GOING = AttendeeStatus.going
NOT_GOING = AttendeeStatus.not_going
PENDING = AttendeeStatus.pending
WAITLISTED = AttendeeStatus.waitlisted

USER = uuid.uuid4()


def row(kind=AttendeeType.primary, status=PENDING, age_group=AgeGroup.adult, name="Row"):
    return SimpleNamespace(id=uuid.uuid4(), user_id=USER, attendee_type=kind, rsvp_status=status, age_group=age_group, name=name)


def family(status=PENDING, age_group=AgeGroup.child):
    return row(AttendeeType.family_member, status, age_group)


def state(capacity=0, going=0, waitlist=False, waiting=0, limit=None):
    return CapacityState(capacity, going, waiting, waitlist, limit)


def by_row(changes):
    return {id(c.attendee): c.new for c in changes}


@pytest.mark.unit
class TestResolveRequestedStatus:
    """Turning a requested status into the granted one."""

    def test_seat_available(self):
        assert resolve_requested_status(GOING, AttendeeType.primary, state(capacity=5, going=4)) == GOING

    def test_unlimited(self):
        assert resolve_requested_status(GOING, AttendeeType.primary, state(capacity=0, going=999)) == GOING

    def test_full_with_waitlist(self):
        assert resolve_requested_status(GOING, AttendeeType.primary, state(capacity=2, going=2, waitlist=True)) == WAITLISTED

    def test_full_without_waitlist(self):
        """A full event without a waitlist refuses with structured context."""
        with pytest.raises(CapacityError) as exc:
            resolve_requested_status(GOING, AttendeeType.primary, state(capacity=2, going=2), event_id="ev-1")

        data = exc.value.to_dict()
        assert data["reason"] == CapacityError.WAITLIST_DISABLED
        assert data["capacity"] == 2
        assert data["current_count"] == 2
        assert data["event_id"] == "ev-1"
        assert exc.value.status_code == 409

    def test_full_waitlist(self):
        with pytest.raises(CapacityError) as exc:
            resolve_requested_status(GOING, AttendeeType.primary, state(capacity=1, going=1, waitlist=True, waiting=3, limit=3))

        assert exc.value.reason == CapacityError.WAITLIST_FULL

    def test_non_going_requests_pass_through(self):
        assert resolve_requested_status(NOT_GOING, AttendeeType.primary, state(capacity=1, going=1)) == NOT_GOING


@pytest.mark.unit
class TestPlanStatusChange:
    """Planning a household's row changes."""

    def test_primary_goes(self):
        primary = row()
        changes = plan_status_change([primary], primary, GOING, state())

        assert len(changes) == 1
        assert changes[0].previous == PENDING
        assert changes[0].new == GOING

    def test_primary_waitlisted_pulls_family(self):
        """Going family members follow a primary onto the waitlist."""
        primary, kid = row(status=NOT_GOING), family(status=GOING)
        changes = plan_status_change([primary, kid], primary, GOING, state(capacity=1, going=1, waitlist=True))

        assert by_row(changes) == {id(primary): WAITLISTED, id(kid): WAITLISTED}

    def test_primary_not_going_cascades(self):
        primary, kid, guest = row(status=GOING), family(status=GOING), row(AttendeeType.guest, status=WAITLISTED)
        changes = plan_status_change([primary, kid, guest], primary, NOT_GOING)

        assert by_row(changes) == {id(primary): NOT_GOING, id(kid): NOT_GOING, id(guest): NOT_GOING}

    def test_unseated_family_left_alone(self):
        primary, kid = row(status=GOING), family(status=PENDING)
        changes = plan_status_change([primary, kid], primary, NOT_GOING)

        assert by_row(changes) == {id(primary): NOT_GOING}

    def test_family_follows_going_primary(self):
        primary, kid = row(status=GOING), family()
        changes = plan_status_change([primary, kid], kid, GOING, state(capacity=1, going=1))

        assert by_row(changes) == {id(kid): GOING}

    def test_family_joins_waitlisted_primary(self):
        """A family member cannot be going while the primary waits."""
        primary, kid = row(status=WAITLISTED), family()
        changes = plan_status_change([primary, kid], kid, GOING, state())

        assert by_row(changes) == {id(kid): WAITLISTED}

    def test_family_request_resolves_primary(self):
        primary, kid = row(status=NOT_GOING), family()
        changes = plan_status_change([primary, kid], kid, GOING, state(capacity=3, going=1))

        assert by_row(changes) == {id(primary): GOING, id(kid): GOING}

    def test_family_without_primary(self):
        kid = family()
        with pytest.raises(AttendeeRuleError):
            plan_status_change([kid], kid, GOING, state())

    def test_family_can_always_decline(self):
        kid = family(status=GOING)
        changes = plan_status_change([kid], kid, NOT_GOING)

        assert by_row(changes) == {id(kid): NOT_GOING}

    def test_waitlisted_primary_keeps_place_when_full(self):
        """Asking for a seat again on a full event is not a new waitlist request."""
        primary, kid = row(status=WAITLISTED), family(status=WAITLISTED)
        full = state(capacity=1, going=1, waitlist=True, waiting=1, limit=1)

        assert plan_status_change([primary, kid], primary, GOING, full) == []

    def test_waitlisted_primary_seated_when_spot_opens(self):
        primary = row(status=WAITLISTED)
        changes = plan_status_change([primary], primary, GOING, state(capacity=2, going=1, waitlist=True, waiting=1))

        assert by_row(changes) == {id(primary): GOING}

    def test_noop(self):
        primary = row(status=GOING)
        assert plan_status_change([primary], primary, GOING, state(capacity=1, going=1)) == []


@pytest.mark.unit
class TestCounts:

    def test_counts_by_status_and_age_group(self):
        rows = [
            row(status=GOING),
            family(status=GOING, age_group=AgeGroup.infant),
            family(status=GOING, age_group=AgeGroup.infant),
            row(status=WAITLISTED),
            family(status=WAITLISTED),
            row(status=NOT_GOING),
            row(status=PENDING),
        ]
        counts = calculate_attendee_counts(rows)

        assert counts.going == 3
        assert counts.total_going == 3
        assert counts.going_primaries == 1
        assert counts.waitlisted == 2
        assert counts.waitlisted_primaries == 1
        assert counts.not_going == 1
        assert counts.pending == 1
        assert counts.going_by_age_group == {"adult": 1, "0-2": 2}

    def test_attending_delta(self):
        assert attending_delta(PENDING, GOING) == 1
        assert attending_delta(GOING, WAITLISTED) == -1
        assert attending_delta(GOING, GOING) == 0
        assert attending_delta(None, NOT_GOING) == 0


@pytest.mark.unit
class TestHouseholdSize:

    def test_within_limit(self):
        validate_household_size([row(), family(), family()], 2, 4)

    def test_over_limit(self):
        with pytest.raises(AttendeeRuleError, match="maximum of 4"):
            validate_household_size([row()] + [family() for _ in range(4)], 1, 4)


@pytest.mark.unit
def test_status_change_flags():
    primary = row(status=GOING)
    change = StatusChange(primary, GOING, WAITLISTED)

    assert change.joins_waitlist
    assert not change.leaves_waitlist
    assert change.frees_seat
    assert not StatusChange(family(), GOING, NOT_GOING).frees_seat
