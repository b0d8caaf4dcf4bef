"""
Database schema for the Readiness backend.

JSON payloads (memo content, contact arrays) are stored as TEXT and decoded in
the repositories.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from readiness.observability.logging import get_logger

logger = get_logger(__name__)


def init_database(db_path: Path) -> None:
    """
    Create all tables and indexes (idempotent).

    Side Effects:
        - Creates the parent directory if needed
        - Runs CREATE TABLE / CREATE INDEX IF NOT EXISTS statements
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)

    conn.executescript("""
        CREATE TABLE IF NOT EXISTS companies (
            id TEXT PRIMARY KEY,
            founder_id TEXT,
            name TEXT NOT NULL,
            stage TEXT NOT NULL DEFAULT 'Pre-Seed',
            category TEXT,
            description TEXT,
            public_score INTEGER,
            memo_content_generated INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS memo_responses (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_id TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            question_key TEXT NOT NULL,
            answer TEXT,
            updated_at TEXT NOT NULL,
            UNIQUE(company_id, question_key)
        );

        CREATE TABLE IF NOT EXISTS memos (
            id TEXT PRIMARY KEY,
            company_id TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            status TEXT NOT NULL DEFAULT 'draft',
            structured_content TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_memos_company
        ON memos(company_id, created_at);

        CREATE TABLE IF NOT EXISTS memo_generation_jobs (
            id TEXT PRIMARY KEY,
            company_id TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            status TEXT NOT NULL DEFAULT 'pending',
            started_at TEXT NOT NULL,
            completed_at TEXT,
            error_message TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_memo_jobs_company_status
        ON memo_generation_jobs(company_id, status);

        CREATE TABLE IF NOT EXISTS investor_profiles (
            id TEXT PRIMARY KEY,
            full_name TEXT,
            organization_name TEXT,
            email TEXT
        );

        CREATE TABLE IF NOT EXISTS booking_event_types (
            id TEXT PRIMARY KEY,
            investor_id TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            duration_minutes INTEGER NOT NULL,
            buffer_before_minutes INTEGER NOT NULL DEFAULT 0,
            buffer_after_minutes INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS booking_availability (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            investor_id TEXT NOT NULL,
            day_of_week INTEGER NOT NULL,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 1
        );

        CREATE INDEX IF NOT EXISTS idx_availability_investor
        ON booking_availability(investor_id, is_active);

        CREATE TABLE IF NOT EXISTS booking_slot_overrides (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            investor_id TEXT NOT NULL,
            date TEXT NOT NULL,
            is_available INTEGER NOT NULL DEFAULT 0,
            start_time TEXT,
            end_time TEXT,
            UNIQUE(investor_id, date)
        );

        CREATE TABLE IF NOT EXISTS bookings (
            id TEXT PRIMARY KEY,
            investor_id TEXT NOT NULL,
            event_type_id TEXT NOT NULL REFERENCES booking_event_types(id),
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            booker_name TEXT NOT NULL,
            booker_email TEXT NOT NULL,
            booker_company TEXT,
            notes TEXT,
            status TEXT NOT NULL DEFAULT 'confirmed',
            google_event_id TEXT,
            created_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_bookings_investor_time
        ON bookings(investor_id, start_time);

        CREATE TABLE IF NOT EXISTS linked_calendars (
            id TEXT PRIMARY KEY,
            investor_id TEXT NOT NULL,
            calendar_id TEXT,
            access_token TEXT NOT NULL,
            refresh_token TEXT,
            expires_at TEXT NOT NULL,
            include_in_availability INTEGER NOT NULL DEFAULT 1,
            is_primary INTEGER NOT NULL DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS investor_contacts (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            organization_name TEXT,
            entity_type TEXT NOT NULL DEFAULT 'investor',
            city TEXT,
            country TEXT,
            city_lat REAL,
            city_lng REAL,
            email TEXT,
            linkedin_url TEXT,
            stages TEXT NOT NULL DEFAULT '[]',
            investment_focus TEXT NOT NULL DEFAULT '[]',
            ticket_size_min REAL,
            ticket_size_max REAL,
            fund_size REAL,
            thesis_keywords TEXT NOT NULL DEFAULT '[]',
            notable_investments TEXT NOT NULL DEFAULT '[]',
            contributor_count INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS accelerators (
            id TEXT PRIMARY KEY,
            owner_id TEXT NOT NULL,
            name TEXT NOT NULL,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS cohorts (
            id TEXT PRIMARY KEY,
            accelerator_id TEXT NOT NULL REFERENCES accelerators(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS cohort_members (
            cohort_id TEXT NOT NULL REFERENCES cohorts(id) ON DELETE CASCADE,
            company_id TEXT NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            added_at TEXT NOT NULL,
            PRIMARY KEY (cohort_id, company_id)
        );

        CREATE TABLE IF NOT EXISTS llm_usage (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            call_type TEXT NOT NULL,
            call_date TEXT NOT NULL,
            call_count INTEGER NOT NULL DEFAULT 0,
            UNIQUE(user_id, call_type, call_date)
        );

        CREATE TABLE IF NOT EXISTS ai_usage_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            function_name TEXT NOT NULL,
            model TEXT NOT NULL,
            prompt_tokens INTEGER NOT NULL DEFAULT 0,
            completion_tokens INTEGER NOT NULL DEFAULT 0,
            total_tokens INTEGER NOT NULL DEFAULT 0,
            estimated_cost_usd REAL NOT NULL DEFAULT 0,
            duration_ms INTEGER NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'success',
            created_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_ai_usage_created
        ON ai_usage_logs(created_at);
    """)

    conn.commit()
    conn.close()

    logger.info("Database initialized: %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Check that the core tables and columns exist.

    Raises:
        ValueError: If tables or columns are missing
    """
    required_tables = {
        "companies": ["id", "founder_id", "name", "stage"],
        "memo_responses": ["company_id", "question_key", "answer"],
        "memos": ["id", "company_id", "structured_content"],
        "memo_generation_jobs": ["id", "company_id", "status", "started_at"],
        "booking_event_types": ["id", "investor_id", "duration_minutes"],
        "bookings": ["id", "investor_id", "start_time", "end_time", "status"],
        "investor_contacts": ["id", "name", "organization_name"],
        "ai_usage_logs": ["function_name", "model", "estimated_cost_usd"],
    }

    cursor = conn.cursor()
    cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
    existing_tables = {row[0] for row in cursor.fetchall()}

    missing_tables = set(required_tables.keys()) - existing_tables
    if missing_tables:
        raise ValueError(f"Database missing tables: {missing_tables}")

    for table, required_cols in required_tables.items():
        # Table names come from the dict above; identifiers can't be parameterized
        cursor.execute(f"PRAGMA table_info({table})")
        existing_cols = {row[1] for row in cursor.fetchall()}

        missing_cols = set(required_cols) - existing_cols
        if missing_cols:
            raise ValueError(f"Table '{table}' missing columns: {missing_cols}")

    return True


def main() -> None:
    """Console entry point: create the schema at READINESS_DB_PATH."""
    from readiness.infrastructure.database import get_db_path

    init_database(get_db_path())
