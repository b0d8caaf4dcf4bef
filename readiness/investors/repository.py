"""
Investor contact repository - CRUD for the investor_contacts table.
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime

from readiness.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from readiness.investors.models import LIST_FIELDS, ExistingContact, ParsedContact
from readiness.observability.logging import get_logger

logger = get_logger(__name__)

_COLUMNS = (
    "name", "organization_name", "entity_type", "city", "country", "city_lat", "city_lng",
    "email", "linkedin_url", "stages", "investment_focus", "ticket_size_min",
    "ticket_size_max", "fund_size", "thesis_keywords", "notable_investments",
)


def _to_db_dict(contact: ParsedContact) -> dict:
    data = contact.model_dump(include=set(_COLUMNS))
    for name in LIST_FIELDS:
        data[name] = json.dumps(data[name])
    return data


class InvestorContactRepository:
    """investor_contacts persistence."""

    @staticmethod
    def list_all() -> list[ExistingContact]:
        with get_db_connection() as conn:
            rows = conn.execute("SELECT * FROM investor_contacts ORDER BY created_at").fetchall()
        return [ExistingContact.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def create(contact: ParsedContact) -> ExistingContact:
        contact_id = str(uuid.uuid4())
        now = datetime.now(UTC).isoformat()
        data = _to_db_dict(contact)
        data.update(id=contact_id, created_at=now, updated_at=now)

        columns = ", ".join(("id", *_COLUMNS, "created_at", "updated_at"))
        placeholders = ", ".join(f":{c}" for c in ("id", *_COLUMNS, "created_at", "updated_at"))
        with db_transaction() as conn:
            conn.execute(f"INSERT INTO investor_contacts ({columns}) VALUES ({placeholders})", data)

        logger.debug("Created investor contact %s", contact_id)
        return ExistingContact(id=contact_id, **contact.model_dump())

    @staticmethod
    @retry_on_db_lock()
    def apply_merge(merged: ExistingContact) -> None:
        """Overwrite the stored contact with merged data and count one more contributor."""
        data = _to_db_dict(merged)
        data.update(id=merged.id, updated_at=datetime.now(UTC).isoformat())
        assignments = ", ".join(f"{c} = :{c}" for c in _COLUMNS)
        with db_transaction() as conn:
            conn.execute(
                f"""
                UPDATE investor_contacts
                SET {assignments}, contributor_count = contributor_count + 1, updated_at = :updated_at
                WHERE id = :id
                """,
                data,
            )
        logger.debug("Merged import into investor contact %s", merged.id)
