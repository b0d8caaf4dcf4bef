"""
Cohort repository - accelerators, cohorts and cohort membership.
"""

from __future__ import annotations

import uuid
from typing import Any

from readiness.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from readiness.memos.models import utc_now
from readiness.observability.logging import get_logger

logger = get_logger(__name__)


class CohortRepository:
    """Persistence for accelerators, cohorts and cohort_members."""

    @staticmethod
    def get_accelerator_for_owner(owner_id: str) -> dict[str, Any] | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM accelerators WHERE owner_id = ? ORDER BY created_at LIMIT 1",
                (owner_id,),
            ).fetchone()
        return dict(row) if row else None

    @staticmethod
    @retry_on_db_lock()
    def create_accelerator(owner_id: str, name: str) -> dict[str, Any]:
        accelerator = {
            "id": str(uuid.uuid4()),
            "owner_id": owner_id,
            "name": name,
            "created_at": utc_now().isoformat(),
        }
        with db_transaction() as conn:
            conn.execute(
                "INSERT INTO accelerators (id, owner_id, name, created_at) VALUES (:id, :owner_id, :name, :created_at)",
                accelerator,
            )
        logger.info("Created accelerator %s", accelerator["id"])
        return accelerator

    @staticmethod
    @retry_on_db_lock()
    def create_cohort(accelerator_id: str, name: str) -> dict[str, Any]:
        cohort = {
            "id": str(uuid.uuid4()),
            "accelerator_id": accelerator_id,
            "name": name,
            "created_at": utc_now().isoformat(),
        }
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO cohorts (id, accelerator_id, name, created_at)
                VALUES (:id, :accelerator_id, :name, :created_at)
                """,
                cohort,
            )
        logger.info("Created cohort %s", cohort["id"])
        return cohort

    @staticmethod
    def get_cohort(cohort_id: str) -> dict[str, Any] | None:
        """Cohort row joined with its accelerator's owner_id."""
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT c.*, a.owner_id AS owner_id, a.name AS accelerator_name
                FROM cohorts c JOIN accelerators a ON a.id = c.accelerator_id
                WHERE c.id = ?
                """,
                (cohort_id,),
            ).fetchone()
        return dict(row) if row else None

    @staticmethod
    @retry_on_db_lock()
    def add_member(cohort_id: str, company_id: str) -> bool:
        """False when the company is already a member."""
        with db_transaction() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO cohort_members (cohort_id, company_id, added_at)
                VALUES (?, ?, ?)
                """,
                (cohort_id, company_id, utc_now().isoformat()),
            )
            return cursor.rowcount > 0

    @staticmethod
    @retry_on_db_lock()
    def remove_member(cohort_id: str, company_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM cohort_members WHERE cohort_id = ? AND company_id = ?",
                (cohort_id, company_id),
            )
            return cursor.rowcount > 0

    @staticmethod
    def list_member_ids(cohort_id: str) -> list[str]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT company_id FROM cohort_members WHERE cohort_id = ? ORDER BY added_at",
                (cohort_id,),
            ).fetchall()
        return [row["company_id"] for row in rows]
