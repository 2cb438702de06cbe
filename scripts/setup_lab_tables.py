"""
setup_lab_tables.py
===================
Print the Supabase schema for the lab borrowing tracker, or export one
scope's borrow requests as CSV.

Usage:
    python scripts/setup_lab_tables.py                     # print SQL schema
    python scripts/setup_lab_tables.py --export admin@issacasimov.in \
        --password ralab --out requests.csv

Prerequisites:
    - Configure .streamlit/secrets.toml ([supabase] url/key) or set
      SUPABASE_URL and SUPABASE_KEY
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from lab_core.bootstrap import build_data_service
from lab_core.config import load_config
from lab_core.logging import setup_logging


SCHEMA_SQL = """
-- ============================================================================
-- LAB BORROWING TRACKER SCHEMA FOR SUPABASE
-- ============================================================================
-- Run this SQL in your Supabase SQL Editor

CREATE TABLE IF NOT EXISTS lab_scopes (
    id TEXT PRIMARY KEY,                 -- email with . # $ [ ] replaced by _
    email TEXT NOT NULL,
    users JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS lab_components (
    scope_id TEXT NOT NULL REFERENCES lab_scopes(id),
    id TEXT NOT NULL,
    name TEXT NOT NULL,
    category TEXT,
    description TEXT,
    total_quantity INTEGER NOT NULL CHECK (total_quantity >= 0),
    available_quantity INTEGER NOT NULL
        CHECK (available_quantity >= 0 AND available_quantity <= total_quantity),
    updated_at TEXT,
    PRIMARY KEY (scope_id, id)
);

CREATE TABLE IF NOT EXISTS lab_requests (
    scope_id TEXT NOT NULL REFERENCES lab_scopes(id),
    id TEXT NOT NULL,
    student_id TEXT NOT NULL,
    student_name TEXT,
    roll_no TEXT,
    mobile TEXT,
    component_id TEXT NOT NULL,
    component_name TEXT,
    quantity INTEGER NOT NULL,
    request_date TEXT NOT NULL,
    due_date TEXT NOT NULL,
    status TEXT NOT NULL
        CHECK (status IN ('pending', 'approved', 'rejected', 'returned')),
    approved_by TEXT,
    approved_at TEXT,
    returned_at TEXT,
    notes TEXT,
    updated_at TEXT,
    PRIMARY KEY (scope_id, id)
);

CREATE INDEX IF NOT EXISTS idx_lab_requests_student
    ON lab_requests(scope_id, student_id, request_date DESC);

CREATE TABLE IF NOT EXISTS lab_notifications (
    scope_id TEXT NOT NULL REFERENCES lab_scopes(id),
    id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    title TEXT,
    message TEXT,
    type TEXT CHECK (type IN ('info', 'success', 'warning', 'error')),
    read BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TEXT NOT NULL,
    updated_at TEXT,
    PRIMARY KEY (scope_id, id)
);

CREATE INDEX IF NOT EXISTS idx_lab_notifications_user
    ON lab_notifications(scope_id, user_id, created_at DESC);

-- Seed a scope and its catalog in one transaction
CREATE OR REPLACE FUNCTION seed_lab_scope(
    p_scope_id TEXT,
    p_email TEXT,
    p_users JSONB,
    p_components JSONB
) RETURNS VOID AS $$
BEGIN
    INSERT INTO lab_scopes (id, email, users, updated_at)
    VALUES (p_scope_id, p_email, p_users, NOW()::TEXT);

    INSERT INTO lab_components
        (scope_id, id, name, category, description,
         total_quantity, available_quantity, updated_at)
    SELECT p_scope_id, c->>'id', c->>'name', c->>'category', c->>'description',
           (c->>'total_quantity')::INTEGER, (c->>'available_quantity')::INTEGER,
           NOW()::TEXT
    FROM jsonb_array_elements(p_components) AS c;
END;
$$ LANGUAGE plpgsql;

-- Live change feed
ALTER PUBLICATION supabase_realtime ADD TABLE
    lab_scopes, lab_components, lab_requests, lab_notifications;
"""


def print_sql_schema():
    """Print SQL schema for the lab tables."""
    print(SCHEMA_SQL)


async def export_requests(config, email: str, password: str, out_path: str) -> bool:
    """Sign in as ``email`` and write that scope's requests to ``out_path``."""
    service = await build_data_service(config)
    try:
        user = await service.authenticate(email, password)
        if user is None:
            print(f"ERROR: Authentication failed for {email}")
            return False

        csv_text = await service.export_csv()
        Path(out_path).write_text(csv_text, encoding="utf-8")
        print(f"SUCCESS: Exported {max(len(csv_text.splitlines()) - 1, 0)} requests to {out_path}")
        return True
    finally:
        await service.cleanup()


def main():
    parser = argparse.ArgumentParser(
        description="Setup lab tracker tables in Supabase"
    )
    parser.add_argument("--export", type=str, help="Email whose scope to export")
    parser.add_argument("--password", type=str, help="Password for --export")
    parser.add_argument("--out", type=str, default="borrow_requests.csv",
                        help="CSV output path for --export")

    args = parser.parse_args()

    print("=" * 70)
    print("LAB BORROWING TRACKER SETUP FOR SUPABASE")
    print("=" * 70)

    if not args.export:
        print("\nSQL Schema (copy and run in Supabase SQL Editor):\n")
        print_sql_schema()
        return

    config = load_config()
    setup_logging(config)
    ok = asyncio.run(export_requests(config, args.export, args.password or "", args.out))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
