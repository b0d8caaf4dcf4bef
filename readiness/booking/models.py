"""
Booking domain models.

Times are timezone-aware UTC datetimes in Python and ISO-8601 strings with
millisecond precision and a trailing "Z" in the database and on the wire, so
stored values sort and compare as text.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def to_iso(value: datetime) -> str:
    """UTC ISO string, e.g. 2025-03-04T09:30:00.000Z"""
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_datetime(value: str) -> datetime:
    """
    Parse an ISO datetime; naive values are taken as UTC.

    Raises:
        ValueError: Not an ISO datetime
    """
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_date(value: str) -> date:
    """A date from "YYYY-MM-DD" or from the date part of an ISO datetime."""
    if len(value) == 10:
        return date.fromisoformat(value)
    return parse_datetime(value).date()


def parse_clock(value: str) -> timedelta:
    """
    "HH:MM" or "HH:MM:SS" as an offset from midnight; "24:00" is end of day.

    Raises:
        ValueError: Malformed or out of range
    """
    parts = value.split(":")
    if len(parts) not in (2, 3) or not all(len(p) == 2 and p.isdigit() for p in parts):
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes, seconds = (int(p) for p in [*parts, "00"][:3])
    if minutes > 59 or seconds > 59 or hours > 24 or (hours == 24 and (minutes or seconds)):
        raise ValueError(f"Invalid time of day: {value!r}")
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


def _validate_clock(value: str | None) -> str | None:
    if value is not None:
        parse_clock(value)
    return value


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class EventType(BaseModel):
    """A kind of meeting an investor offers, e.g. "30 min intro call"."""

    id: str
    investor_id: str
    name: str
    description: str | None = None
    duration_minutes: int = Field(..., gt=0)
    buffer_before_minutes: int = Field(default=0, ge=0)
    buffer_after_minutes: int = Field(default=0, ge=0)
    is_active: bool = True
    created_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> EventType:
        return cls(**{**row, "is_active": bool(row.get("is_active", 1))})


class WeeklyAvailability(BaseModel):
    """Recurring hours for one weekday; day_of_week 0 is Sunday."""

    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str
    end_time: str
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def check_clock(cls, value: str | None) -> str | None:
        return _validate_clock(value)


class DateOverride(BaseModel):
    """Blocks a date, or replaces its weekly hours when available with times."""

    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    is_available: bool = False
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_clock(cls, value: str | None) -> str | None:
        return _validate_clock(value)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> DateOverride:
        return cls(
            date=row["date"],
            is_available=bool(row["is_available"]),
            start_time=row.get("start_time"),
            end_time=row.get("end_time"),
        )


class Booking(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    investor_id: str
    event_type_id: str
    start_time: str
    end_time: str
    booker_name: str
    booker_email: str
    booker_company: str | None = None
    notes: str | None = None
    status: BookingStatus = BookingStatus.CONFIRMED
    google_event_id: str | None = None
    created_at: str | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Booking:
        return cls(**row)


class LinkedCalendar(BaseModel):
    """An investor's Google calendar with its OAuth tokens."""

    id: str
    investor_id: str
    calendar_id: str | None = None
    access_token: str
    refresh_token: str | None = None
    expires_at: str
    include_in_availability: bool = True
    is_primary: bool = False

    @property
    def google_calendar_id(self) -> str:
        return self.calendar_id or "primary"

    def is_expired(self, now: datetime | None = None) -> bool:
        return parse_datetime(self.expires_at) < (now or utc_now())

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> LinkedCalendar:
        return cls(
            **{
                **row,
                "include_in_availability": bool(row["include_in_availability"]),
                "is_primary": bool(row["is_primary"]),
            }
        )
