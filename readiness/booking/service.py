"""
Booking service.

Combines stored availability, existing bookings and linked Google calendars
into bookable slots, and creates bookings with a calendar event and an ICS
invitation.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from readiness.booking.availability import TimeRange, generate_slots, summarize_days
from readiness.booking.calendar import GoogleCalendarClient, build_event_body
from readiness.booking.ics import generate_ics
from readiness.booking.models import EventType, parse_date, parse_datetime, utc_now
from readiness.booking.repository import BookingRepository, SlotTakenError
from readiness.infrastructure.retry import AdapterError
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter, log_event

logger = get_logger(__name__)

DEFAULT_INVESTOR_NAME = "Investor"
DEFAULT_ORGANIZER_EMAIL = "noreply@readiness.app"
MAX_RANGE_DAYS = 62


class BookingError(Exception):
    """Base exception for booking operations."""

    status_code = 400


class MissingParametersError(BookingError):
    pass


class EventTypeNotFoundError(BookingError):
    status_code = 404


class SlotUnavailableError(BookingError):
    status_code = 409


class BookingNotFoundError(BookingError):
    status_code = 404


class BookingService:
    """Slot search and booking lifecycle for investor calendars."""

    def __init__(self, calendar_client: GoogleCalendarClient | None = None):
        self.calendar = calendar_client or GoogleCalendarClient()

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def _load_event_type(self, event_type_id: str, message: str) -> EventType:
        event_type = BookingRepository.get_active_event_type(event_type_id)
        if event_type is None:
            raise EventTypeNotFoundError(message)
        return event_type

    def _date_range(self, start_date: str, end_date: str) -> tuple[date, date]:
        try:
            start, end = parse_date(start_date), parse_date(end_date)
        except ValueError as e:
            raise BookingError(f"Invalid date: {e}") from None
        if end < start:
            raise BookingError("endDate must not be before startDate")
        if (end - start).days > MAX_RANGE_DAYS:
            raise BookingError(f"Date range is limited to {MAX_RANGE_DAYS} days")
        return start, end

    def collect_busy_periods(self, investor_id: str, window: TimeRange) -> list[TimeRange]:
        """
        Busy periods from every linked calendar that counts towards availability.

        Expired tokens are refreshed and persisted first. A calendar whose
        refresh or query fails is logged and skipped.
        """
        busy: list[TimeRange] = []
        for calendar in BookingRepository.list_availability_calendars(investor_id):
            try:
                access_token = calendar.access_token
                if calendar.is_expired():
                    access_token, expires_at = self.calendar.refresh_access_token(calendar.refresh_token)
                    BookingRepository.update_calendar_token(calendar.id, access_token, expires_at)
                busy.extend(
                    self.calendar.get_busy_periods(
                        access_token, calendar.google_calendar_id, window.start, window.end
                    )
                )
            except (AdapterError, KeyError, ValueError) as e:
                counter("booking.calendar_skipped")
                logger.warning("Skipping calendar %s: %s", calendar.id, e)
        return busy

    def _blocked_periods(self, investor_id: str, start: date, end: date) -> list[TimeRange]:
        window = TimeRange(
            datetime.combine(start, time.min, tzinfo=UTC),
            datetime.combine(end + timedelta(days=1), time.min, tzinfo=UTC),
        )
        return BookingRepository.list_busy_bookings(investor_id, window) + self.collect_busy_periods(
            investor_id, window
        )

    def get_available_slots(
        self,
        investor_id: str,
        event_type_id: str,
        start_date: str,
        end_date: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Returns:
            {"slots": [{"start", "end"}], "eventType": {"name", "duration", "description"}}

        Raises:
            MissingParametersError, EventTypeNotFoundError, BookingError
        """
        if not (investor_id and event_type_id and start_date and end_date):
            raise MissingParametersError("Missing required parameters")
        event_type = self._load_event_type(event_type_id, "Event type not found or inactive")
        start, end = self._date_range(start_date, end_date)

        slots = generate_slots(
            event_type,
            BookingRepository.list_availability(investor_id),
            BookingRepository.list_overrides(investor_id, start.isoformat(), end.isoformat()),
            self._blocked_periods(investor_id, start, end),
            start,
            end,
            now or utc_now(),
        )
        return {
            "slots": [s.to_dict() for s in slots],
            "eventType": {
                "name": event_type.name,
                "duration": event_type.duration_minutes,
                "description": event_type.description,
            },
        }

    def get_available_days(
        self,
        investor_id: str,
        event_type_id: str,
        start_date: str,
        end_date: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """{"days": [{"date", "hasSlots"}]} for a month-view calendar."""
        if not (investor_id and event_type_id and start_date and end_date):
            raise MissingParametersError("Missing required parameters")
        event_type = self._load_event_type(event_type_id, "Event type not found or inactive")
        start, end = self._date_range(start_date, end_date)

        days = summarize_days(
            event_type,
            BookingRepository.list_availability(investor_id),
            BookingRepository.list_overrides(investor_id, start.isoformat(), end.isoformat()),
            self._blocked_periods(investor_id, start, end),
            start,
            end,
            now or utc_now(),
        )
        return {"days": days}

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def _create_calendar_event(self, booking_id: str, investor_id: str, event: dict[str, Any]) -> str | None:
        calendar = BookingRepository.get_primary_calendar(investor_id)
        if calendar is None:
            return None
        try:
            access_token = calendar.access_token
            if calendar.is_expired():
                access_token, expires_at = self.calendar.refresh_access_token(calendar.refresh_token)
                BookingRepository.update_calendar_token(calendar.id, access_token, expires_at)
            event_id = self.calendar.create_event(access_token, calendar.google_calendar_id, event)
        except (AdapterError, KeyError) as e:
            counter("booking.calendar_event_failed")
            logger.error("Failed to create calendar event for booking %s: %s", booking_id, e)
            return None

        BookingRepository.set_google_event_id(booking_id, event_id)
        return event_id

    def create_booking(
        self,
        investor_id: str,
        event_type_id: str,
        start_time: str,
        booker_name: str,
        booker_email: str,
        booker_company: str | None = None,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """
        Book a slot.

        The end time comes from the event type duration. A calendar failure
        does not fail the booking.

        Returns:
            {"success", "booking", "eventType": {"name", "duration"}, "ics"}

        Raises:
            MissingParametersError: Required field missing
            EventTypeNotFoundError: Event type missing or inactive
            SlotUnavailableError: The buffered window overlaps another booking
        """
        if not (investor_id and event_type_id and start_time and booker_name and booker_email):
            raise MissingParametersError("Missing required fields")
        event_type = self._load_event_type(event_type_id, "Event type not found")

        try:
            start = parse_datetime(start_time)
        except ValueError:
            raise BookingError("Invalid startTime") from None
        end = start + timedelta(minutes=event_type.duration_minutes)
        check_window = TimeRange(
            start - timedelta(minutes=event_type.buffer_before_minutes),
            end + timedelta(minutes=event_type.buffer_after_minutes),
        )

        try:
            booking = BookingRepository.create_if_free(
                investor_id,
                event_type_id,
                start,
                end,
                check_window,
                booker_name,
                booker_email,
                booker_company,
                notes,
            )
        except SlotTakenError:
            counter("booking.slot_conflict")
            raise SlotUnavailableError("This time slot is no longer available") from None

        event = build_event_body(
            event_type.name, start, end, booker_name, booker_email, booker_company, notes
        )
        booking.google_event_id = self._create_calendar_event(booking.id, investor_id, event)

        profile = BookingRepository.get_investor_profile(investor_id) or {}
        investor_name = profile.get("full_name") or DEFAULT_INVESTOR_NAME
        description = f"Meeting with {investor_name}"
        if profile.get("organization_name"):
            description += f" from {profile['organization_name']}"
        if notes:
            description += f"\n\nNotes: {notes}"
        ics = generate_ics(
            title=f"{event_type.name} with {investor_name}",
            start=start,
            end=end,
            description=description,
            organizer_name=investor_name,
            organizer_email=profile.get("email") or DEFAULT_ORGANIZER_EMAIL,
            attendee_email=booker_email,
            attendee_name=booker_name,
            uid=booking.id,
        )

        log_event("booking.created", booking_id=booking.id, investor_id=investor_id)
        return {
            "success": True,
            "booking": booking.model_dump(),
            "eventType": {"name": event_type.name, "duration": event_type.duration_minutes},
            "ics": ics,
        }

    def cancel_booking(self, booking_id: str) -> dict[str, Any]:
        if not BookingRepository.cancel(booking_id):
            raise BookingNotFoundError("Booking not found")
        booking = BookingRepository.get_booking(booking_id)
        return {"success": True, "booking": booking.model_dump() if booking else None}


_booking_service: BookingService | None = None


def get_booking_service() -> BookingService:
    global _booking_service
    if _booking_service is None:
        _booking_service = BookingService()
    return _booking_service
