"""
iCalendar (RFC 5545) invitation for a confirmed booking.

Content lines are folded at 75 octets and joined with CRLF. Free text goes
through escape_text(); names in CN parameters are quoted with param_value().
"""

from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime

from readiness.booking.models import utc_now

PRODID = "-//Readiness//Booking Calendar//EN"
UID_DOMAIN = "readiness.app"
MAX_LINE_OCTETS = 75

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")


def format_ics_datetime(value: datetime) -> str:
    """UTC basic format, e.g. 20250304T093000Z"""
    return value.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def escape_text(value: str) -> str:
    """TEXT value escaping; newlines become a literal \\n."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def param_value(value: str) -> str:
    """Quoted parameter value; DQUOTE and control characters are dropped."""
    return '"' + _CONTROL_CHARS.sub("", value).replace('"', "") + '"'


def fold_line(line: str) -> str:
    """Split a content line into 75-octet chunks without breaking a UTF-8 character."""
    chunks: list[str] = []
    current = ""
    limit = MAX_LINE_OCTETS
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            chunks.append(current)
            current = ""
            # continuation lines start with a space
            limit = MAX_LINE_OCTETS - 1
        current += char
    chunks.append(current)
    return "\r\n ".join(chunks)


def generate_ics(
    title: str,
    start: datetime,
    end: datetime,
    description: str,
    organizer_name: str,
    organizer_email: str,
    attendee_email: str,
    attendee_name: str,
    now: datetime | None = None,
    uid: str | None = None,
) -> str:
    """
    VCALENDAR with METHOD:REQUEST and a single confirmed VEVENT.

    Args:
        uid: Stable event id, normally the booking id; a random one when omitted
    """
    stamp = now or utc_now()
    event_uid = f"booking-{uid or uuid.uuid4()}@{UID_DOMAIN}"
    organizer = _CONTROL_CHARS.sub("", organizer_email)
    attendee = _CONTROL_CHARS.sub("", attendee_email)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{event_uid}",
        f"DTSTAMP:{format_ics_datetime(stamp)}",
        f"DTSTART:{format_ics_datetime(start)}",
        f"DTEND:{format_ics_datetime(end)}",
        f"SUMMARY:{escape_text(title)}",
        f"DESCRIPTION:{escape_text(description)}",
        f"ORGANIZER;CN={param_value(organizer_name)}:mailto:{organizer}",
        "ATTENDEE;CUTYPE=INDIVIDUAL;ROLE=REQ-PARTICIPANT;PARTSTAT=ACCEPTED;"
        f"CN={param_value(attendee_name)}:mailto:{attendee}",
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(fold_line(line) for line in lines) + "\r\n"
