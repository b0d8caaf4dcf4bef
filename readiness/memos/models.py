"""
Memo domain models.

Timestamps are stored as ISO strings; JSON columns (structured_content) are
decoded in from_db_row().
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


IN_FLIGHT_STATUSES = (JobStatus.PENDING, JobStatus.PROCESSING)


class MemoStatus(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"


class Company(BaseModel):
    """A founder's startup."""

    id: str
    founder_id: str | None = None
    name: str = Field(..., min_length=1)
    stage: str = "Pre-Seed"
    category: str | None = None
    description: str | None = None
    public_score: int | None = None
    memo_content_generated: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Company:
        return cls(
            **{
                **row,
                "memo_content_generated": bool(row.get("memo_content_generated")),
                "created_at": parse_timestamp(row["created_at"]),
                "updated_at": parse_timestamp(row["updated_at"]),
            }
        )

    def summary(self) -> dict[str, Any]:
        """Fields shown next to a finished memo."""
        return {
            "name": self.name,
            "stage": self.stage,
            "category": self.category,
            "description": self.description,
        }


class MemoResponse(BaseModel):
    """One questionnaire answer."""

    question_key: str = Field(..., min_length=1)
    answer: str | None = None


class Memo(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    company_id: str
    status: MemoStatus = MemoStatus.DRAFT
    structured_content: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Memo:
        content = row.get("structured_content")
        return cls(
            **{
                **row,
                "structured_content": json.loads(content) if content else None,
                "created_at": parse_timestamp(row["created_at"]),
                "updated_at": parse_timestamp(row["updated_at"]),
            }
        )


class MemoJob(BaseModel):
    """A background memo generation run."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    company_id: str
    status: JobStatus = JobStatus.PENDING
    started_at: datetime
    completed_at: datetime | None = None
    error_message: str | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> MemoJob:
        return cls(
            **{
                **row,
                "started_at": parse_timestamp(row["started_at"]),
                "completed_at": parse_timestamp(row.get("completed_at")),
            }
        )
