"""
SQLite storage for the Research Store API.

The schema lives in ``MIGRATIONS`` as numbered SQL scripts; ``init_db``
runs the ones newer than the highest version recorded in the
``migrations`` table.  Uniqueness rules (customer and staff e-mails,
gateway transaction ids, one entitlement per customer and report) are
table constraints, so services insert and translate the resulting
``IntegrityError`` instead of checking first.
"""

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .config import settings


MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS assets (
            key TEXT PRIMARY KEY,
            content BLOB NOT NULL,
            content_type TEXT NOT NULL,
            filename TEXT,
            size INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS user_auth (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            full_name TEXT NOT NULL,
            phone TEXT,
            nationality TEXT,
            profile_pic TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            address_line1 TEXT,
            address_line2 TEXT,
            city TEXT,
            state TEXT,
            zip_code TEXT,
            country TEXT,
            auth_provider TEXT NOT NULL DEFAULT 'local',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS manager_auth (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            full_name TEXT NOT NULL,
            last_name TEXT,
            phone TEXT,
            profile_pic TEXT,
            role TEXT NOT NULL DEFAULT 'employee' CHECK (role IN ('manager', 'employee')),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS reports (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            serial_number TEXT,
            report_name TEXT NOT NULL,
            industry TEXT NOT NULL,
            cost REAL NOT NULL CHECK (cost >= 0),
            size TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'draft' CHECK (status IN ('active', 'archived', 'draft')),
            file_type TEXT NOT NULL DEFAULT 'PDF',
            file_key TEXT NOT NULL REFERENCES assets(key),
            file_content_type TEXT NOT NULL DEFAULT 'application/pdf',
            description TEXT NOT NULL,
            thumbnail_key TEXT REFERENCES assets(key),
            thumbnail_type TEXT,
            sample_pdf_key TEXT REFERENCES assets(key),
            sample_pdf_type TEXT,
            upload_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            last_modified TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        -- Payment records are an immutable ledger: they survive deletion
        -- of the customer or the report they refer to.
        CREATE TABLE IF NOT EXISTS payment_details (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER REFERENCES user_auth(id) ON DELETE SET NULL,
            report_id INTEGER REFERENCES reports(id) ON DELETE SET NULL,
            transaction_id TEXT NOT NULL UNIQUE,
            paypal_order_id TEXT UNIQUE,
            amount REAL NOT NULL,
            payment_status TEXT NOT NULL DEFAULT 'pending'
                CHECK (payment_status IN ('pending', 'completed', 'failed')),
            payment_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            full_name TEXT NOT NULL,
            email TEXT NOT NULL,
            phone TEXT NOT NULL,
            address_line1 TEXT NOT NULL,
            address_line2 TEXT,
            city TEXT NOT NULL,
            state TEXT NOT NULL,
            zip_code TEXT NOT NULL,
            country TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS user_reports (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES user_auth(id) ON DELETE CASCADE,
            report_id INTEGER NOT NULL REFERENCES reports(id) ON DELETE CASCADE,
            purchase_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            transaction_id TEXT NOT NULL UNIQUE,
            last_access_date TIMESTAMP,
            payment_status TEXT NOT NULL DEFAULT 'pending'
                CHECK (payment_status IN ('pending', 'completed', 'failed')),
            access_count INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (user_id, report_id)
        );

        CREATE TABLE IF NOT EXISTS customer_queries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES user_auth(id) ON DELETE CASCADE,
            subject TEXT NOT NULL,
            message TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'in-progress', 'resolved')),
            priority TEXT NOT NULL DEFAULT 'medium'
                CHECK (priority IN ('high', 'medium', 'low')),
            manager_response TEXT,
            responded_at TIMESTAMP,
            responded_by INTEGER REFERENCES manager_auth(id) ON DELETE SET NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS potential_customers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            full_name TEXT NOT NULL,
            business_email TEXT NOT NULL,
            contact_number TEXT NOT NULL,
            country TEXT NOT NULL,
            job_title TEXT NOT NULL,
            company_name TEXT NOT NULL,
            report_id INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS blogs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            thumbnail_key TEXT NOT NULL REFERENCES assets(key),
            thumbnail_type TEXT NOT NULL,
            thumbnail_alt TEXT,
            author_name TEXT NOT NULL,
            published_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            content TEXT NOT NULL DEFAULT '[]',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS leaves (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            employee_id INTEGER NOT NULL REFERENCES manager_auth(id) ON DELETE CASCADE,
            full_name TEXT NOT NULL,
            email TEXT NOT NULL,
            phone TEXT NOT NULL,
            from_date DATE NOT NULL,
            to_date DATE NOT NULL,
            reason TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'approved', 'denied')),
            applied_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            response_date TIMESTAMP,
            response_by INTEGER REFERENCES manager_auth(id) ON DELETE SET NULL,
            comments TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS addresses (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES user_auth(id) ON DELETE CASCADE,
            address_line1 TEXT NOT NULL,
            address_line2 TEXT,
            locality TEXT,
            city TEXT NOT NULL,
            pin_code TEXT NOT NULL,
            country TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            manager_id INTEGER REFERENCES manager_auth(id) ON DELETE SET NULL,
            action_type TEXT NOT NULL,
            target TEXT NOT NULL,
            ip_address TEXT,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            category_name TEXT NOT NULL UNIQUE,
            description TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS engagements (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES user_auth(id) ON DELETE CASCADE,
            report_id INTEGER NOT NULL REFERENCES reports(id) ON DELETE CASCADE,
            views INTEGER NOT NULL DEFAULT 0,
            reading_progress REAL NOT NULL DEFAULT 0,
            last_accessed TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (user_id, report_id)
        );
        """,
    ),
    (
        2,
        """
        -- Lookup paths used by listings and the entitlement check.
        CREATE INDEX IF NOT EXISTS idx_reports_industry ON reports (industry);
        CREATE INDEX IF NOT EXISTS idx_user_reports_user ON user_reports (user_id, purchase_date);
        CREATE INDEX IF NOT EXISTS idx_payment_details_user ON payment_details (user_id);
        CREATE INDEX IF NOT EXISTS idx_customer_queries_user ON customer_queries (user_id, created_at);
        CREATE INDEX IF NOT EXISTS idx_leaves_employee ON leaves (employee_id);
        CREATE INDEX IF NOT EXISTS idx_audit_logs_manager ON audit_logs (manager_id, timestamp);
        """,
    ),
]


def get_database_path() -> str:
    """Absolute path of the database file.

    ``DATABASE_URL`` may be absolute or relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Open a connection with name-addressable rows and foreign keys on."""
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Cursor in its own transaction; rolled back if the block raises."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def now_timestamp() -> str:
    """Current UTC time in the format SQLite uses for ``CURRENT_TIMESTAMP``."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def init_db() -> None:
    """Bring the schema up to the newest version in ``MIGRATIONS``.

    Idempotent; runs on every startup.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) AS version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
