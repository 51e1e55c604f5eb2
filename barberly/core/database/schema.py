"""
SQLite schema bootstrap.

PostgreSQL deployments are migrated with `python -m db.migrate`; the
SQLite schema below mirrors db/migrations/001_initial_schema.sql minus the
gist exclusion constraint, which SQLite cannot express. SQLite relies on
the conditional inserts in the appointment repository instead.
"""

import logging

from .adapter import DatabaseAdapter, DatabaseBackend

logger = logging.getLogger(__name__)

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    full_name TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'Customer',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS barber_shops (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    street TEXT NOT NULL DEFAULT '',
    city TEXT NOT NULL DEFAULT '',
    phone TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL DEFAULT '',
    open_time TEXT NOT NULL DEFAULT '09:00',
    close_time TEXT NOT NULL DEFAULT '17:00',
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS barbers (
    id TEXT PRIMARY KEY,
    barber_shop_id TEXT NOT NULL REFERENCES barber_shops(id),
    full_name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL DEFAULT '',
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS services (
    id TEXT PRIMARY KEY,
    barber_shop_id TEXT NOT NULL REFERENCES barber_shops(id),
    name TEXT NOT NULL,
    duration_minutes INTEGER NOT NULL CHECK (duration_minutes > 0),
    price NUMERIC NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS appointments (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    barber_id TEXT NOT NULL,
    service_id TEXT NOT NULL,
    start_at TEXT NOT NULL,
    end_at TEXT NOT NULL,
    idempotency_key TEXT UNIQUE,
    is_cancelled INTEGER NOT NULL DEFAULT 0,
    cancelled_at TEXT,
    created_at TEXT NOT NULL,
    version TEXT NOT NULL,
    CHECK (start_at < end_at)
);

CREATE INDEX IF NOT EXISTS ix_appointments_barber_start
    ON appointments (barber_id, start_at);
CREATE INDEX IF NOT EXISTS ix_appointments_start
    ON appointments (start_at);

CREATE TABLE IF NOT EXISTS notification_outbox (
    id TEXT PRIMARY KEY,
    event_type TEXT NOT NULL,
    recipient_email TEXT NOT NULL,
    recipient_name TEXT NOT NULL,
    subject TEXT NOT NULL,
    body TEXT NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}',
    correlation_id TEXT,
    dedupe_key TEXT UNIQUE,
    status TEXT NOT NULL DEFAULT 'Pending',
    retry_count INTEGER NOT NULL DEFAULT 0,
    max_retries INTEGER NOT NULL DEFAULT 3,
    processed_at TEXT,
    error_message TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_outbox_status_created
    ON notification_outbox (status, created_at);
CREATE INDEX IF NOT EXISTS ix_outbox_correlation
    ON notification_outbox (correlation_id);
"""


async def init_schema(db: DatabaseAdapter) -> None:
    """Create tables on SQLite. PostgreSQL is left to the migration runner."""
    if db.backend != DatabaseBackend.SQLITE:
        logger.info("Skipping schema bootstrap for PostgreSQL; run db.migrate instead")
        return

    await db.execute_script(SQLITE_SCHEMA)
    logger.info("SQLite schema ready")
