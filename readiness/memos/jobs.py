"""
Memo job status view.

While a job runs, the client polls for a progress message picked from
elapsed time; the pipeline itself does not report intermediate steps.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from readiness.memos.models import Company, JobStatus, Memo, MemoJob, utc_now
from readiness.utils.rounding import round_int

# (upper bound in seconds, message); the last entry has no bound
PROGRESS_MESSAGES: list[tuple[float | None, str]] = [
    (10, "Initializing analysis..."),
    (25, "Extracting market context..."),
    (45, "Researching competitors..."),
    (65, "Generating Problem & Solution sections..."),
    (85, "Generating Market & Competition sections..."),
    (105, "Generating Team & Business Model sections..."),
    (125, "Generating Traction & Vision sections..."),
    (145, "Creating Investment Thesis..."),
    (165, "Generating VC Quick Take..."),
    (None, "Finalizing your memo..."),
]


def progress_message(elapsed_seconds: float) -> str:
    for bound, message in PROGRESS_MESSAGES:
        if bound is None or elapsed_seconds < bound:
            return message
    return PROGRESS_MESSAGES[-1][1]


def describe_job(
    job: MemoJob,
    company: Company,
    memo: Memo | None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Wire payload for a job poll.

    completed -> {status, structuredContent, company, memoId, generationTime}
    failed    -> {status, error}
    otherwise -> {status, elapsedSeconds, message}
    """
    if job.status == JobStatus.COMPLETED.value:
        if memo is None:
            return {"status": "failed", "error": "Memo not found after generation"}
        generation_time = None
        if job.completed_at is not None:
            seconds = round_int((job.completed_at - job.started_at).total_seconds())
            generation_time = str(seconds) if seconds else None
        return {
            "status": "completed",
            "structuredContent": memo.structured_content,
            "company": company.summary(),
            "memoId": memo.id,
            "generationTime": generation_time,
        }

    if job.status == JobStatus.FAILED.value:
        return {"status": "failed", "error": job.error_message or "Memo generation failed"}

    elapsed = round_int(((now or utc_now()) - job.started_at).total_seconds())
    return {
        "status": job.status,
        "elapsedSeconds": elapsed,
        "message": progress_message(elapsed),
    }
