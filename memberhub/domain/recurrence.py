"""
Recurring event expansion.

Rules are RFC 5545 RRULE strings anchored at the event's first start. When a
time zone is attached the rule is expanded in that zone's wall time, so a
weekly 10:00 event stays at 10:00 local across daylight-saving changes.
All datetimes leaving this module are timezone-aware UTC.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Sequence, Union

from dateutil import tz
from dateutil.parser import isoparse
from dateutil.rrule import rrulestr

from memberhub.core.config import settings
from memberhub.core.errors import RecurrenceError


@dataclass(frozen=True)
class Recurrence:
    rrule: str
    timezone: Optional[str] = None
    exdates: Sequence[Union[str, date, datetime]] = field(default_factory=tuple)


@dataclass(frozen=True)
class Occurrence:
    start: datetime
    end: datetime


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _zone(name: Optional[str]):
    if not name:
        return timezone.utc
    zone = tz.gettz(name)
    if zone is None:
        raise RecurrenceError(f"Unknown time zone: {name}")
    return zone


def _exdate_days(exdates: Iterable, zone) -> set:
    days = set()
    for raw in exdates or ():
        if isinstance(raw, datetime):
            days.add(as_utc(raw).astimezone(zone).date())
        elif isinstance(raw, date):
            days.add(raw)
        else:
            try:
                parsed = isoparse(str(raw))
            except ValueError:
                raise RecurrenceError(f"Invalid exception date: {raw}")
            # A bare date string parses to midnight; keep its calendar day as written
            if parsed.tzinfo is None and len(str(raw)) <= 10:
                days.add(parsed.date())
            else:
                days.add(as_utc(parsed).astimezone(zone).date())
    return days


def _parse(rule: str, anchor: datetime):
    try:
        return rrulestr(rule.strip(), dtstart=anchor, forceset=True)
    except (ValueError, TypeError) as e:
        raise RecurrenceError(f"Invalid recurrence rule: {e}")


def validate_rule(rule: str, start: datetime, timezone_name: Optional[str] = None) -> None:
    """Raise RecurrenceError unless ``rule`` parses and can be expanded from ``start``."""
    if not rule or not rule.strip():
        raise RecurrenceError("Recurrence rule is empty")
    anchor = as_utc(start).astimezone(_zone(timezone_name))
    parsed = _parse(rule, anchor)
    try:
        parsed.after(anchor, inc=True)
    except TypeError:
        raise RecurrenceError("Recurrence rule must not carry a floating DTSTART")


def expand_recurrence(
    start: datetime,
    end: datetime,
    recurrence: Optional[Recurrence],
    range_start: datetime,
    range_end: datetime,
    max_occurrences: Optional[int] = None,
) -> List[Occurrence]:
    """
    Expand an event window into the concrete occurrences starting inside
    ``[range_start, range_end]`` (both bounds inclusive).

    Without a rule the base window is returned when it intersects the range.
    Occurrences falling on the calendar day of an exception date are dropped
    and every occurrence keeps the base duration.

    Raises:
        RecurrenceError: On a malformed rule, time zone or range
    """
    start, end = as_utc(start), as_utc(end)
    range_start, range_end = as_utc(range_start), as_utc(range_end)
    if range_end < range_start:
        raise RecurrenceError("Range end is before range start")
    if end < start:
        raise RecurrenceError("Event end is before its start")

    if recurrence is None or not (recurrence.rrule or "").strip():
        if start <= range_end and end >= range_start:
            return [Occurrence(start, end)]
        return []

    zone = _zone(recurrence.timezone)
    duration = end - start
    anchor = start.astimezone(zone)
    rule = _parse(recurrence.rrule, anchor)
    skipped = _exdate_days(recurrence.exdates, zone)

    occurrences: List[Occurrence] = []
    try:
        for occ in rule.xafter(range_start.astimezone(zone), inc=True):
            if occ > range_end:
                break
            if occ.astimezone(zone).date() in skipped:
                continue
            occ_start = as_utc(occ)
            occurrences.append(Occurrence(occ_start, occ_start + duration))
            if max_occurrences is not None and len(occurrences) >= max_occurrences:
                break
    except TypeError:
        raise RecurrenceError("Recurrence rule must not carry a floating DTSTART")
    return occurrences


def occurrences_for_event(
    event,
    range_start: datetime,
    range_end: datetime,
    max_occurrences: Optional[int] = None,
) -> List[Occurrence]:
    """Expand an Event row; caps at ``MAX_RECURRENCE_OCCURRENCES`` by default."""
    recurrence = None
    if event.recurrence_rule:
        recurrence = Recurrence(
            rrule=event.recurrence_rule,
            timezone=event.recurrence_timezone,
            exdates=tuple(event.recurrence_exdates or ()),
        )
    return expand_recurrence(
        event.start_at,
        event.end_at,
        recurrence,
        range_start,
        range_end,
        max_occurrences=max_occurrences or settings.MAX_RECURRENCE_OCCURRENCES,
    )
