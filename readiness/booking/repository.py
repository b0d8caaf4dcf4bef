"""
Booking repository - event types, availability, overrides, bookings,
linked calendars and investor profiles.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from readiness.booking.availability import TimeRange
from readiness.booking.models import (
    Booking,
    BookingStatus,
    DateOverride,
    EventType,
    LinkedCalendar,
    WeeklyAvailability,
    parse_datetime,
    to_iso,
    utc_now,
)
from readiness.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from readiness.observability.logging import get_logger

logger = get_logger(__name__)


class SlotTakenError(Exception):
    """Another booking overlaps the requested (buffered) window."""


class BookingRepository:
    """
    Persistence for the booking tables.

    Booking times are stored as to_iso() strings so range filters compare as text.
    """

    # ------------------------------------------------------------------
    # Event types
    # ------------------------------------------------------------------

    @staticmethod
    def get_active_event_type(event_type_id: str) -> EventType | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM booking_event_types WHERE id = ? AND is_active = 1",
                (event_type_id,),
            ).fetchone()
        return EventType.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_event_types(investor_id: str, active_only: bool = True) -> list[EventType]:
        query = "SELECT * FROM booking_event_types WHERE investor_id = ?"
        if active_only:
            query += " AND is_active = 1"
        with get_db_connection() as conn:
            rows = conn.execute(query + " ORDER BY created_at", (investor_id,)).fetchall()
        return [EventType.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def create_event_type(
        investor_id: str,
        name: str,
        duration_minutes: int,
        description: str | None = None,
        buffer_before_minutes: int = 0,
        buffer_after_minutes: int = 0,
    ) -> EventType:
        event_type = EventType(
            id=str(uuid.uuid4()),
            investor_id=investor_id,
            name=name,
            description=description,
            duration_minutes=duration_minutes,
            buffer_before_minutes=buffer_before_minutes,
            buffer_after_minutes=buffer_after_minutes,
            created_at=utc_now(),
        )
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO booking_event_types (
                    id, investor_id, name, description, duration_minutes,
                    buffer_before_minutes, buffer_after_minutes, is_active, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?)
                """,
                (
                    event_type.id,
                    investor_id,
                    name,
                    description,
                    duration_minutes,
                    buffer_before_minutes,
                    buffer_after_minutes,
                    to_iso(event_type.created_at),
                ),
            )
        logger.info("Created event type %s for investor %s", event_type.id, investor_id)
        return event_type

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    @staticmethod
    def list_availability(investor_id: str) -> list[WeeklyAvailability]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT day_of_week, start_time, end_time, is_active
                FROM booking_availability
                WHERE investor_id = ? AND is_active = 1
                ORDER BY id
                """,
                (investor_id,),
            ).fetchall()
        return [WeeklyAvailability(**{**dict(r), "is_active": bool(r["is_active"])}) for r in rows]

    @staticmethod
    @retry_on_db_lock()
    def replace_availability(investor_id: str, rules: list[WeeklyAvailability]) -> None:
        """Replace the investor's weekly hours with rules."""
        with db_transaction() as conn:
            conn.execute("DELETE FROM booking_availability WHERE investor_id = ?", (investor_id,))
            conn.executemany(
                """
                INSERT INTO booking_availability (investor_id, day_of_week, start_time, end_time, is_active)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (investor_id, r.day_of_week, r.start_time, r.end_time, int(r.is_active))
                    for r in rules
                ],
            )

    @staticmethod
    def list_overrides(investor_id: str, start_date: str, end_date: str) -> list[DateOverride]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM booking_slot_overrides
                WHERE investor_id = ? AND date >= ? AND date <= ?
                """,
                (investor_id, start_date, end_date),
            ).fetchall()
        return [DateOverride.from_db_row(dict(r)) for r in rows]

    @staticmethod
    @retry_on_db_lock()
    def upsert_override(investor_id: str, override: DateOverride) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO booking_slot_overrides (investor_id, date, is_available, start_time, end_time)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(investor_id, date) DO UPDATE SET
                    is_available = excluded.is_available,
                    start_time = excluded.start_time,
                    end_time = excluded.end_time
                """,
                (
                    investor_id,
                    override.date,
                    int(override.is_available),
                    override.start_time,
                    override.end_time,
                ),
            )

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    @staticmethod
    def list_busy_bookings(investor_id: str, window: TimeRange) -> list[TimeRange]:
        """Non-cancelled bookings overlapping window."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT start_time, end_time FROM bookings
                WHERE investor_id = ? AND status != ?
                  AND start_time < ? AND end_time > ?
                """,
                (investor_id, BookingStatus.CANCELLED.value, to_iso(window.end), to_iso(window.start)),
            ).fetchall()
        return [TimeRange(parse_datetime(r["start_time"]), parse_datetime(r["end_time"])) for r in rows]

    @staticmethod
    @retry_on_db_lock()
    def create_if_free(
        investor_id: str,
        event_type_id: str,
        start: datetime,
        end: datetime,
        check_window: TimeRange,
        booker_name: str,
        booker_email: str,
        booker_company: str | None = None,
        notes: str | None = None,
    ) -> Booking:
        """
        Insert a confirmed booking unless check_window overlaps another booking.

        The check and the insert share one write transaction.

        Raises:
            SlotTakenError: An active booking overlaps check_window
        """
        booking = Booking(
            id=str(uuid.uuid4()),
            investor_id=investor_id,
            event_type_id=event_type_id,
            start_time=to_iso(start),
            end_time=to_iso(end),
            booker_name=booker_name,
            booker_email=booker_email,
            booker_company=booker_company or None,
            notes=notes or None,
            status=BookingStatus.CONFIRMED,
            created_at=to_iso(utc_now()),
        )

        with db_transaction() as conn:
            conn.execute("BEGIN IMMEDIATE")
            clash = conn.execute(
                """
                SELECT id FROM bookings
                WHERE investor_id = ? AND status != ?
                  AND start_time < ? AND end_time > ?
                LIMIT 1
                """,
                (
                    investor_id,
                    BookingStatus.CANCELLED.value,
                    to_iso(check_window.end),
                    to_iso(check_window.start),
                ),
            ).fetchone()
            if clash:
                raise SlotTakenError(clash["id"])

            conn.execute(
                """
                INSERT INTO bookings (
                    id, investor_id, event_type_id, start_time, end_time, booker_name,
                    booker_email, booker_company, notes, status, created_at
                ) VALUES (
                    :id, :investor_id, :event_type_id, :start_time, :end_time, :booker_name,
                    :booker_email, :booker_company, :notes, :status, :created_at
                )
                """,
                booking.model_dump(exclude={"google_event_id"}),
            )

        logger.info("Created booking %s for investor %s", booking.id, investor_id)
        return booking

    @staticmethod
    def get_booking(booking_id: str) -> Booking | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return Booking.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def set_google_event_id(booking_id: str, google_event_id: str) -> None:
        with db_transaction() as conn:
            conn.execute(
                "UPDATE bookings SET google_event_id = ? WHERE id = ?",
                (google_event_id, booking_id),
            )

    @staticmethod
    @retry_on_db_lock()
    def cancel(booking_id: str) -> bool:
        """Mark cancelled; False when no such booking."""
        with db_transaction() as conn:
            cursor = conn.execute(
                "UPDATE bookings SET status = ? WHERE id = ?",
                (BookingStatus.CANCELLED.value, booking_id),
            )
            updated = cursor.rowcount > 0
        if updated:
            logger.info("Cancelled booking %s", booking_id)
        return updated

    # ------------------------------------------------------------------
    # Linked calendars
    # ------------------------------------------------------------------

    @staticmethod
    def list_availability_calendars(investor_id: str) -> list[LinkedCalendar]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM linked_calendars WHERE investor_id = ? AND include_in_availability = 1",
                (investor_id,),
            ).fetchall()
        return [LinkedCalendar.from_db_row(dict(r)) for r in rows]

    @staticmethod
    def get_primary_calendar(investor_id: str) -> LinkedCalendar | None:
        """The primary linked calendar, else any linked calendar."""
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM linked_calendars WHERE investor_id = ? ORDER BY is_primary DESC LIMIT 1",
                (investor_id,),
            ).fetchone()
        return LinkedCalendar.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def update_calendar_token(calendar_id: str, access_token: str, expires_at: datetime) -> None:
        with db_transaction() as conn:
            conn.execute(
                "UPDATE linked_calendars SET access_token = ?, expires_at = ? WHERE id = ?",
                (access_token, to_iso(expires_at), calendar_id),
            )

    @staticmethod
    @retry_on_db_lock()
    def link_calendar(
        investor_id: str,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime,
        calendar_id: str | None = None,
        include_in_availability: bool = True,
        is_primary: bool = False,
    ) -> LinkedCalendar:
        calendar = LinkedCalendar(
            id=str(uuid.uuid4()),
            investor_id=investor_id,
            calendar_id=calendar_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=to_iso(expires_at),
            include_in_availability=include_in_availability,
            is_primary=is_primary,
        )
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO linked_calendars (
                    id, investor_id, calendar_id, access_token, refresh_token, expires_at,
                    include_in_availability, is_primary
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    calendar.id,
                    investor_id,
                    calendar_id,
                    access_token,
                    refresh_token,
                    calendar.expires_at,
                    int(include_in_availability),
                    int(is_primary),
                ),
            )
        return calendar

    # ------------------------------------------------------------------
    # Investor profiles
    # ------------------------------------------------------------------

    @staticmethod
    def get_investor_profile(investor_id: str) -> dict[str, Any] | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM investor_profiles WHERE id = ?", (investor_id,)
            ).fetchone()
        return dict(row) if row else None

    @staticmethod
    @retry_on_db_lock()
    def save_investor_profile(
        investor_id: str,
        full_name: str | None,
        organization_name: str | None = None,
        email: str | None = None,
    ) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO investor_profiles (id, full_name, organization_name, email)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    full_name = excluded.full_name,
                    organization_name = excluded.organization_name,
                    email = excluded.email
                """,
                (investor_id, full_name, organization_name, email),
            )
