"""
Google Calendar client for booking availability and invitations.

Token refresh goes through google-auth; freeBusy and event inserts go through
the Calendar v3 discovery client. In mock mode (READINESS_CALENDAR_MOCK=true)
no calls are made: calendars report no busy periods, token refreshes succeed
with a placeholder token and created events get a generated id.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import httplib2
import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from readiness.booking.availability import TimeRange
from readiness.booking.models import parse_datetime, to_iso, utc_now
from readiness.config import (
    CALENDAR_MOCK,
    CALENDAR_TIMEOUT_SECONDS,
    GOOGLE_CALENDAR_CLIENT_ID,
    GOOGLE_CALENDAR_CLIENT_SECRET,
)
from readiness.infrastructure.retry import AdapterError, RetryPolicy
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import log_event

logger = get_logger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]

# Reminder overrides on created events: email a day ahead, popup 30 minutes ahead
EVENT_REMINDERS = {
    "useDefault": False,
    "overrides": [
        {"method": "email", "minutes": 24 * 60},
        {"method": "popup", "minutes": 30},
    ],
}


class CalendarError(AdapterError):
    """Google Calendar or OAuth call failed."""


class GoogleCalendarClient:
    """
    Calendar v3 access with an investor's stored OAuth tokens.

    service_factory(access_token) returns a Calendar v3 resource; tests pass a
    fake one.
    """

    def __init__(
        self,
        mock_mode: bool | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout: float = CALENDAR_TIMEOUT_SECONDS,
        service_factory: Callable[[str], Any] | None = None,
        session: requests.Session | None = None,
    ):
        self.mock_mode = CALENDAR_MOCK if mock_mode is None else mock_mode
        self.retry_policy = retry_policy or RetryPolicy(stage="google_calendar")
        self.timeout = timeout
        self.service_factory = service_factory or self._build_service
        self.session = session or requests.Session()

        if self.mock_mode:
            logger.info("GoogleCalendarClient initialized in MOCK mode")

    def _build_service(self, access_token: str) -> Any:
        credentials = Credentials(token=access_token, scopes=CALENDAR_SCOPES)
        http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=self.timeout))
        return build("calendar", "v3", http=http, cache_discovery=False)

    def _execute(self, request: Any, operation: str) -> dict[str, Any]:
        try:
            return request.execute(num_retries=0)
        except HttpError as e:
            log_event("calendar.api_error", operation=operation, status=e.resp.status)
            raise CalendarError(f"Calendar API returned {e.resp.status}", status_code=e.resp.status) from e
        except (httplib2.HttpLib2Error, OSError) as e:
            raise CalendarError(f"Calendar request failed: {e}") from e

    def refresh_access_token(self, refresh_token: str | None) -> tuple[str, datetime]:
        """
        Exchange a refresh token for a new access token.

        Returns:
            (access_token, expires_at)

        Raises:
            CalendarError: No refresh token, or the exchange failed
        """
        if self.mock_mode:
            return f"mock_token_{uuid4().hex[:12]}", utc_now() + timedelta(hours=1)
        if not refresh_token:
            raise CalendarError("Calendar has no refresh token", status_code=401)

        credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=TOKEN_URL,
            client_id=GOOGLE_CALENDAR_CLIENT_ID,
            client_secret=GOOGLE_CALENDAR_CLIENT_SECRET,
            scopes=CALENDAR_SCOPES,
        )
        try:
            credentials.refresh(Request(session=self.session))
        except GoogleAuthError as e:
            raise CalendarError(f"Token refresh failed: {e}", status_code=401) from e

        # google-auth keeps expiry as naive UTC
        if credentials.expiry:
            expires_at = credentials.expiry.replace(tzinfo=UTC)
        else:
            expires_at = utc_now() + timedelta(hours=1)
        return credentials.token, expires_at

    def get_busy_periods(
        self, access_token: str, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> list[TimeRange]:
        """Busy periods of one calendar between time_min and time_max."""
        if self.mock_mode:
            return []

        service = self.service_factory(access_token)
        request = service.freebusy().query(
            body={
                "timeMin": to_iso(time_min),
                "timeMax": to_iso(time_max),
                "items": [{"id": calendar_id}],
            }
        )
        data = self.retry_policy.execute(self._execute, request, "freebusy")
        busy = (data.get("calendars") or {}).get(calendar_id, {}).get("busy") or []
        return [TimeRange(parse_datetime(b["start"]), parse_datetime(b["end"])) for b in busy]

    def create_event(self, access_token: str, calendar_id: str, event: dict[str, Any]) -> str:
        """
        Insert an event and email invitations to attendees.

        Returns:
            Google event id
        """
        if self.mock_mode:
            return f"mock_event_{uuid4().hex[:12]}"

        service = self.service_factory(access_token)
        request = service.events().insert(calendarId=calendar_id, body=event, sendUpdates="all")
        data = self.retry_policy.execute(self._execute, request, "events.insert")
        return data["id"]


def build_event_body(
    event_name: str,
    start: datetime,
    end: datetime,
    booker_name: str,
    booker_email: str,
    booker_company: str | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    """Calendar v3 event resource for a new booking."""
    description = f"Meeting booked via investor calendar\n\nBooker: {booker_name}\nEmail: {booker_email}"
    if booker_company:
        description += f"\nCompany: {booker_company}"
    if notes:
        description += f"\n\nNotes: {notes}"

    return {
        "summary": f"{event_name} with {booker_name}",
        "description": description,
        "start": {"dateTime": to_iso(start), "timeZone": "UTC"},
        "end": {"dateTime": to_iso(end), "timeZone": "UTC"},
        "attendees": [{"email": booker_email, "displayName": booker_name}],
        "reminders": EVENT_REMINDERS,
    }
