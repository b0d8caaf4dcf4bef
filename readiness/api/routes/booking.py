"""
Booking API endpoints for investor meeting scheduling.

Public (founders booking a call):
- Available slots and days for an event type
- Creating a booking

Investor-only (the signed-in user is the investor):
- Event types, weekly availability, date overrides and profile
- Cancelling their bookings
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from readiness.api.middleware.user_auth import AuthenticatedUser, get_current_user
from readiness.booking.models import DateOverride, WeeklyAvailability, parse_clock
from readiness.booking.repository import BookingRepository
from readiness.booking.service import BookingError, get_booking_service
from readiness.observability.logging import get_logger
from readiness.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/booking", tags=["booking"])
logger = get_logger(__name__)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# ============================================================================
# Request Models
# ============================================================================


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SlotQuery(_CamelRequest):
    investor_id: str
    event_type_id: str
    start_date: str
    end_date: str


class CreateBookingRequest(_CamelRequest):
    investor_id: str
    event_type_id: str
    start_time: str
    booker_name: str = Field(..., min_length=1)
    booker_email: str = Field(..., pattern=EMAIL_PATTERN)
    booker_company: str | None = None
    notes: str | None = Field(default=None, max_length=2000)


class EventTypeRequest(_CamelRequest):
    name: str = Field(..., min_length=1)
    duration_minutes: int = Field(..., gt=0, le=480)
    description: str | None = None
    buffer_before_minutes: int = Field(default=0, ge=0)
    buffer_after_minutes: int = Field(default=0, ge=0)


class AvailabilityRequest(BaseModel):
    rules: list[WeeklyAvailability]


class ProfileRequest(_CamelRequest):
    full_name: str | None = None
    organization_name: str | None = None
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)


def _booking_error(error: BookingError) -> HTTPException:
    return HTTPException(
        status_code=error.status_code,
        detail=sanitize_error_message(str(error), 400) if error.status_code == 400 else str(error),
    )


def _internal_error(action: str, error: Exception) -> HTTPException:
    logger.error("Failed to %s: %s", action, error)
    return HTTPException(status_code=500, detail=sanitize_error_message(str(error), 500))


# ============================================================================
# Public Endpoints
# ============================================================================


@router.post("/slots")
def available_slots(query: SlotQuery) -> dict[str, Any]:
    """Free slots for an event type between two dates (inclusive, UTC)."""
    try:
        return get_booking_service().get_available_slots(
            query.investor_id, query.event_type_id, query.start_date, query.end_date
        )
    except BookingError as e:
        raise _booking_error(e) from None
    except Exception as e:
        raise _internal_error("calculate slots", e) from None


@router.post("/days")
def available_days(query: SlotQuery) -> dict[str, Any]:
    """Which days in a range have at least one free slot."""
    try:
        return get_booking_service().get_available_days(
            query.investor_id, query.event_type_id, query.start_date, query.end_date
        )
    except BookingError as e:
        raise _booking_error(e) from None
    except Exception as e:
        raise _internal_error("calculate available days", e) from None


@router.get("/investors/{investor_id}/event-types")
def list_event_types(investor_id: str) -> dict[str, Any]:
    event_types = BookingRepository.list_event_types(investor_id)
    return {"eventTypes": [e.model_dump(mode="json") for e in event_types]}


@router.post("/bookings", status_code=201)
def create_booking(request: CreateBookingRequest) -> dict[str, Any]:
    """
    Book a slot. Returns the booking and an ICS invite.

    409 when the slot was taken in the meantime.
    """
    try:
        return get_booking_service().create_booking(
            investor_id=request.investor_id,
            event_type_id=request.event_type_id,
            start_time=request.start_time,
            booker_name=request.booker_name,
            booker_email=request.booker_email,
            booker_company=request.booker_company,
            notes=request.notes,
        )
    except BookingError as e:
        raise _booking_error(e) from None
    except Exception as e:
        raise _internal_error("create booking", e) from None


# ============================================================================
# Investor Endpoints
# ============================================================================


@router.post("/bookings/{booking_id}/cancel")
def cancel_booking(
    booking_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    booking = BookingRepository.get_booking(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.investor_id != user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    try:
        return get_booking_service().cancel_booking(booking_id)
    except BookingError as e:
        raise _booking_error(e) from None


@router.post("/event-types", status_code=201)
def create_event_type(
    request: EventTypeRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    event_type = BookingRepository.create_event_type(
        user.id,
        request.name,
        request.duration_minutes,
        description=request.description,
        buffer_before_minutes=request.buffer_before_minutes,
        buffer_after_minutes=request.buffer_after_minutes,
    )
    return event_type.model_dump(mode="json")


@router.get("/availability")
def get_availability(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    rules = BookingRepository.list_availability(user.id)
    return {"rules": [r.model_dump() for r in rules]}


@router.put("/availability")
def set_availability(
    request: AvailabilityRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """Replace the investor's weekly hours."""
    for rule in request.rules:
        if parse_clock(rule.start_time) >= parse_clock(rule.end_time):
            raise HTTPException(status_code=400, detail="start_time must be before end_time")
    BookingRepository.replace_availability(user.id, request.rules)
    return {"success": True, "count": len(request.rules)}


@router.put("/overrides")
def set_override(
    override: DateOverride,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """Block a date, or give it custom hours."""
    if override.is_available and bool(override.start_time) != bool(override.end_time):
        raise HTTPException(status_code=400, detail="Custom hours need both start_time and end_time")
    if (
        override.start_time
        and override.end_time
        and parse_clock(override.start_time) >= parse_clock(override.end_time)
    ):
        raise HTTPException(status_code=400, detail="start_time must be before end_time")
    BookingRepository.upsert_override(user.id, override)
    return {"success": True, "override": override.model_dump()}


@router.put("/profile")
def save_profile(
    request: ProfileRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    BookingRepository.save_investor_profile(
        user.id,
        request.full_name,
        organization_name=request.organization_name,
        email=request.email or user.email or None,
    )
    return {"success": True, "profile": BookingRepository.get_investor_profile(user.id)}
