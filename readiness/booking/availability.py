"""
Module: availability
Purpose: Pure slot computation for an investor's booking page.

Candidate slots start at the beginning of the day's window and step by
BOOKING_SLOT_STEP_MINUTES while the meeting still fits before the window
ends. A candidate is free when its buffered window
[start - buffer_before, end + buffer_after) overlaps no booking and no busy
calendar period. All arithmetic is in UTC.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from readiness.booking.models import DateOverride, EventType, WeeklyAvailability, parse_clock, to_iso
from readiness.config import BOOKING_SLOT_STEP_MINUTES


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    def overlaps(self, other: TimeRange) -> bool:
        return self.start < other.end and self.end > other.start

    def to_dict(self) -> dict[str, str]:
        return {"start": to_iso(self.start), "end": to_iso(self.end)}


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def day_window(
    day: date,
    weekly: list[WeeklyAvailability],
    overrides: dict[str, DateOverride],
) -> tuple[timedelta, timedelta] | None:
    """
    Bookable hours for day as offsets from midnight, or None when the day is
    blocked or has no hours.

    An unavailable override blocks the day. An available override with both
    times replaces the weekly hours; otherwise the first active weekly rule
    for the weekday applies.
    """
    override = overrides.get(day.isoformat())
    if override is not None and not override.is_available:
        return None

    if override is not None and override.start_time and override.end_time:
        return parse_clock(override.start_time), parse_clock(override.end_time)

    weekday = day_of_week(day)
    for rule in weekly:
        if rule.is_active and rule.day_of_week == weekday:
            return parse_clock(rule.start_time), parse_clock(rule.end_time)
    return None


def _free_slots_for_day(
    day: date,
    window: tuple[timedelta, timedelta],
    event_type: EventType,
    blocked: list[TimeRange],
    now: datetime,
) -> Iterator[TimeRange]:
    duration = timedelta(minutes=event_type.duration_minutes)
    before = timedelta(minutes=event_type.buffer_before_minutes)
    after = timedelta(minutes=event_type.buffer_after_minutes)
    step = timedelta(minutes=BOOKING_SLOT_STEP_MINUTES)

    midnight = datetime.combine(day, time.min, tzinfo=UTC)
    slot_start = midnight + window[0]
    day_end = midnight + window[1]

    while slot_start + duration <= day_end:
        slot = TimeRange(slot_start, slot_start + duration)
        if slot_start >= now:
            buffered = TimeRange(slot.start - before, slot.end + after)
            if not any(buffered.overlaps(b) for b in blocked):
                yield slot
        slot_start += step


def generate_slots(
    event_type: EventType,
    weekly: list[WeeklyAvailability],
    overrides: list[DateOverride],
    blocked: list[TimeRange],
    start_date: date,
    end_date: date,
    now: datetime,
) -> list[TimeRange]:
    """
    Every free slot between start_date and end_date inclusive.

    Args:
        event_type: Supplies duration and buffers
        weekly: Recurring hours
        overrides: Date overrides in the range
        blocked: Existing bookings and busy calendar periods
        start_date, end_date: Inclusive UTC date range
        now: Slots starting before now are skipped
    """
    by_date = {o.date: o for o in overrides}
    slots: list[TimeRange] = []
    for day in iter_days(start_date, end_date):
        window = day_window(day, weekly, by_date)
        if window is not None:
            slots.extend(_free_slots_for_day(day, window, event_type, blocked, now))
    return slots


def summarize_days(
    event_type: EventType,
    weekly: list[WeeklyAvailability],
    overrides: list[DateOverride],
    blocked: list[TimeRange],
    start_date: date,
    end_date: date,
    now: datetime,
) -> list[dict[str, object]]:
    """[{"date": "YYYY-MM-DD", "hasSlots": bool}] for each day in the range."""
    by_date = {o.date: o for o in overrides}
    today = now.astimezone(UTC).date()
    days: list[dict[str, object]] = []
    for day in iter_days(start_date, end_date):
        has_slots = False
        if day >= today:
            window = day_window(day, weekly, by_date)
            if window is not None:
                first = next(_free_slots_for_day(day, window, event_type, blocked, now), None)
                has_slots = first is not None
        days.append({"date": day.isoformat(), "hasSlots": has_slots})
    return days
