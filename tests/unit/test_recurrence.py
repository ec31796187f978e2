"""
Unit tests for recurring event expansion.
"""
import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from memberhub.core.errors import RecurrenceError
from memberhub.domain.recurrence import (
    Recurrence,
    as_utc,
    expand_recurrence,
    occurrences_for_event,
    validate_rule,
)

UTC = timezone.utc
# Monday 5 January 2026, 10:00 UTC
START = datetime(2026, 1, 5, 10, 0, tzinfo=UTC)
END = START + timedelta(hours=2)
JANUARY = (datetime(2026, 1, 1, tzinfo=UTC), datetime(2026, 1, 31, 23, 59, tzinfo=UTC))


@pytest.mark.unit
class TestExpandRecurrence:
    """Expansion of rules into concrete occurrences."""

    def test_weekly_rule_in_month(self):
        """A weekly rule yields every Monday of the range."""
        occ = expand_recurrence(START, END, Recurrence("FREQ=WEEKLY;COUNT=10"), *JANUARY)

        assert [o.start.day for o in occ] == [5, 12, 19, 26]
        assert all(o.end - o.start == timedelta(hours=2) for o in occ)
        assert all(o.start.tzinfo is not None for o in occ)

    def test_exception_dates_are_skipped(self):
        """Occurrences on an exception date's calendar day are dropped."""
        rec = Recurrence("FREQ=WEEKLY;COUNT=10", exdates=("2026-01-12", "2026-01-26T10:00:00Z"))
        occ = expand_recurrence(START, END, rec, *JANUARY)

        assert [o.start.day for o in occ] == [5, 19]

    def test_range_bounds_are_inclusive(self):
        occ = expand_recurrence(
            START, END, Recurrence("FREQ=DAILY;COUNT=5"),
            START + timedelta(days=1), START + timedelta(days=3),
        )

        assert [o.start for o in occ] == [START + timedelta(days=d) for d in (1, 2, 3)]

    def test_max_occurrences_caps_open_ended_rule(self):
        occ = expand_recurrence(
            START, END, Recurrence("FREQ=DAILY"), START, START + timedelta(days=365), max_occurrences=5,
        )

        assert len(occ) == 5

    def test_wall_time_kept_across_dst(self):
        """A 10:00 New York event stays at 10:00 local after clocks change."""
        start = datetime(2026, 3, 2, 15, 0, tzinfo=UTC)  # 10:00 EST
        occ = expand_recurrence(
            start, start + timedelta(hours=1),
            Recurrence("FREQ=WEEKLY;COUNT=2", timezone="America/New_York"),
            start, start + timedelta(days=14),
        )

        assert [o.start.hour for o in occ] == [15, 14]
        assert all(o.start.tzinfo == UTC for o in occ)

    def test_single_event_inside_range(self):
        """Without a rule the base window is returned when it overlaps the range."""
        occ = expand_recurrence(START, END, None, *JANUARY)

        assert len(occ) == 1
        assert occ[0].start == START
        assert occ[0].end == END

    def test_single_event_outside_range(self):
        occ = expand_recurrence(
            START, END, None, datetime(2026, 2, 1, tzinfo=UTC), datetime(2026, 2, 28, tzinfo=UTC),
        )

        assert occ == []

    def test_naive_datetimes_read_as_utc(self):
        occ = expand_recurrence(
            START.replace(tzinfo=None), END.replace(tzinfo=None),
            Recurrence("FREQ=WEEKLY;COUNT=2"), *JANUARY,
        )

        assert occ[0].start == START

    def test_reversed_range_rejected(self):
        with pytest.raises(RecurrenceError, match="Range end"):
            expand_recurrence(START, END, None, JANUARY[1], JANUARY[0])

    def test_malformed_rule_rejected(self):
        with pytest.raises(RecurrenceError, match="Invalid recurrence rule"):
            expand_recurrence(START, END, Recurrence("FREQ=SOMETIMES"), *JANUARY)

    def test_unknown_timezone_rejected(self):
        with pytest.raises(RecurrenceError, match="Unknown time zone"):
            expand_recurrence(START, END, Recurrence("FREQ=DAILY", timezone="Mars/Olympus"), *JANUARY)

    def test_bad_exception_date_rejected(self):
        with pytest.raises(RecurrenceError, match="exception date"):
            expand_recurrence(START, END, Recurrence("FREQ=DAILY;COUNT=3", exdates=("not-a-date",)), *JANUARY)


@pytest.mark.unit
class TestValidateRule:

    def test_valid_rule(self):
        validate_rule("FREQ=MONTHLY;BYMONTHDAY=1", START)

    def test_empty_rule(self):
        with pytest.raises(RecurrenceError, match="empty"):
            validate_rule("  ", START)

    def test_garbage_rule(self):
        with pytest.raises(RecurrenceError):
            validate_rule("every other tuesday", START)


@pytest.mark.unit
def test_occurrences_for_event_reads_row_fields():
    """Event rows are expanded with their rule, zone and exception dates."""
    event = SimpleNamespace(
        start_at=START,
        end_at=END,
        recurrence_rule="FREQ=WEEKLY;COUNT=4",
        recurrence_timezone=None,
        recurrence_exdates=["2026-01-19"],
    )

    occ = occurrences_for_event(event, *JANUARY)

    assert [o.start.day for o in occ] == [5, 12, 26]


@pytest.mark.unit
def test_as_utc_converts_offsets():
    nairobi = timezone(timedelta(hours=3))
    assert as_utc(datetime(2026, 1, 1, 13, 0, tzinfo=nairobi)) == datetime(2026, 1, 1, 10, 0, tzinfo=UTC)
