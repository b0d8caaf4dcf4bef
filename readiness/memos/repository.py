"""
Memo repository - companies, questionnaire responses, memos and generation jobs.
"""

from __future__ import annotations

import json
import uuid
from typing import Any

from readiness.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from readiness.memos.models import (
    IN_FLIGHT_STATUSES,
    Company,
    JobStatus,
    Memo,
    MemoJob,
    MemoResponse,
    MemoStatus,
    utc_now,
)
from readiness.observability.logging import get_logger

logger = get_logger(__name__)


class CompanyRepository:
    """Persistence for companies and their questionnaire answers."""

    @staticmethod
    @retry_on_db_lock()
    def create(
        founder_id: str,
        name: str,
        stage: str = "Pre-Seed",
        category: str | None = None,
        description: str | None = None,
        company_id: str | None = None,
    ) -> Company:
        now = utc_now()
        company = Company(
            id=company_id or str(uuid.uuid4()),
            founder_id=founder_id,
            name=name,
            stage=stage,
            category=category,
            description=description,
            created_at=now,
            updated_at=now,
        )
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO companies (
                    id, founder_id, name, stage, category, description,
                    memo_content_generated, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    company.id,
                    founder_id,
                    name,
                    stage,
                    category,
                    description,
                    now.isoformat(),
                    now.isoformat(),
                ),
            )
        logger.info("Created company %s", company.id)
        return company

    @staticmethod
    def get(company_id: str) -> Company | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM companies WHERE id = ?", (company_id,)).fetchone()
        return Company.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_many(company_ids: list[str]) -> list[Company]:
        if not company_ids:
            return []
        placeholders = ",".join("?" for _ in company_ids)
        with get_db_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM companies WHERE id IN ({placeholders}) ORDER BY name",
                tuple(company_ids),
            ).fetchall()
        return [Company.from_db_row(dict(r)) for r in rows]

    @staticmethod
    @retry_on_db_lock()
    def record_memo_generated(company_id: str, public_score: int | None) -> None:
        """Flag the company as having a generated memo and store its overall score."""
        with db_transaction() as conn:
            conn.execute(
                """
                UPDATE companies
                SET memo_content_generated = 1, public_score = ?, updated_at = ?
                WHERE id = ?
                """,
                (public_score, utc_now().isoformat(), company_id),
            )

    @staticmethod
    def list_responses(company_id: str) -> list[MemoResponse]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT question_key, answer FROM memo_responses
                WHERE company_id = ?
                ORDER BY id
                """,
                (company_id,),
            ).fetchall()
        return [MemoResponse(**dict(r)) for r in rows]

    @staticmethod
    @retry_on_db_lock()
    def upsert_responses(company_id: str, responses: list[MemoResponse]) -> int:
        """Insert or replace answers keyed by question_key; returns the count written."""
        now = utc_now().isoformat()
        with db_transaction() as conn:
            conn.executemany(
                """
                INSERT INTO memo_responses (company_id, question_key, answer, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(company_id, question_key) DO UPDATE SET
                    answer = excluded.answer,
                    updated_at = excluded.updated_at
                """,
                [(company_id, r.question_key, r.answer, now) for r in responses],
            )
        return len(responses)


class MemoRepository:
    """Persistence for memos and memo generation jobs."""

    # ------------------------------------------------------------------
    # Memos
    # ------------------------------------------------------------------

    @staticmethod
    def get_latest(company_id: str) -> Memo | None:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM memos WHERE company_id = ?
                ORDER BY updated_at DESC, created_at DESC
                LIMIT 1
                """,
                (company_id,),
            ).fetchone()
        return Memo.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_latest_for_companies(company_ids: list[str]) -> dict[str, Memo]:
        """Latest memo per company, keyed by company id."""
        if not company_ids:
            return {}
        placeholders = ",".join("?" for _ in company_ids)
        with get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM memos WHERE company_id IN ({placeholders})
                ORDER BY updated_at, created_at
                """,
                tuple(company_ids),
            ).fetchall()
        # Ascending order, so later rows overwrite earlier ones
        return {row["company_id"]: Memo.from_db_row(dict(row)) for row in rows}

    @staticmethod
    @retry_on_db_lock()
    def save_structured_content(company_id: str, content: dict[str, Any]) -> str:
        """
        Store content on the company's latest memo, or insert a memo.

        Returns:
            The memo id
        """
        now = utc_now().isoformat()
        payload = json.dumps(content)
        with db_transaction() as conn:
            row = conn.execute(
                """
                SELECT id FROM memos WHERE company_id = ?
                ORDER BY updated_at DESC, created_at DESC LIMIT 1
                """,
                (company_id,),
            ).fetchone()
            if row:
                memo_id = row["id"]
                conn.execute(
                    """
                    UPDATE memos SET structured_content = ?, status = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (payload, MemoStatus.COMPLETED.value, now, memo_id),
                )
            else:
                memo_id = str(uuid.uuid4())
                conn.execute(
                    """
                    INSERT INTO memos (id, company_id, status, structured_content, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (memo_id, company_id, MemoStatus.COMPLETED.value, payload, now, now),
                )
        return memo_id

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    @staticmethod
    @retry_on_db_lock()
    def create_job(company_id: str) -> MemoJob:
        job = MemoJob(
            id=str(uuid.uuid4()),
            company_id=company_id,
            status=JobStatus.PROCESSING,
            started_at=utc_now(),
        )
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO memo_generation_jobs (id, company_id, status, started_at)
                VALUES (?, ?, ?, ?)
                """,
                (job.id, company_id, job.status, job.started_at.isoformat()),
            )
        logger.info("Created memo job %s for company %s", job.id, company_id)
        return job

    @staticmethod
    def get_job(job_id: str) -> MemoJob | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM memo_generation_jobs WHERE id = ?", (job_id,)
            ).fetchone()
        return MemoJob.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_in_flight_job(company_id: str) -> MemoJob | None:
        """Most recently started pending/processing job for the company."""
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM memo_generation_jobs
                WHERE company_id = ? AND status IN (?, ?)
                ORDER BY started_at DESC
                LIMIT 1
                """,
                (company_id, *(s.value for s in IN_FLIGHT_STATUSES)),
            ).fetchone()
        return MemoJob.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def finish_job(job_id: str, error_message: str | None = None) -> None:
        """Mark completed, or failed when error_message is given."""
        status = JobStatus.FAILED if error_message is not None else JobStatus.COMPLETED
        with db_transaction() as conn:
            conn.execute(
                """
                UPDATE memo_generation_jobs
                SET status = ?, error_message = ?, completed_at = ?
                WHERE id = ?
                """,
                (status.value, error_message, utc_now().isoformat(), job_id),
            )
        logger.info("Memo job %s marked %s", job_id, status.value)
