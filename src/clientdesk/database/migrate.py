"""Minimal SQLite migration helpers for additive schema changes."""

import sqlite3
from typing import List, Tuple


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    """Check if a column exists in a table."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [row[1] for row in cur.fetchall()]
    return column in cols


def _table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Check if a table exists."""
    cur = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?;",
        (table,)
    )
    return cur.fetchone() is not None


def ensure_client_contact_columns(sqlite_path: str) -> None:
    """
    Add optional contact columns to clients if missing.

    Databases created before phone/address were tracked only carry
    name/email/company/city.

    Args:
        sqlite_path: Path to SQLite database file
    """
    conn = sqlite3.connect(sqlite_path)
    try:
        if not _table_exists(conn, "clients"):
            return
        additions: List[Tuple[str, str]] = [
            ("phone", "TEXT"),
            ("address", "TEXT"),
        ]
        for col, coltype in additions:
            if not _column_exists(conn, "clients", col):
                conn.execute(f"ALTER TABLE clients ADD COLUMN {col} {coltype};")
        conn.commit()
    finally:
        conn.close()


def ensure_project_budget_column(sqlite_path: str) -> None:
    """
    Add status/budget columns to projects if missing.

    Args:
        sqlite_path: Path to SQLite database file
    """
    conn = sqlite3.connect(sqlite_path)
    try:
        if not _table_exists(conn, "projects"):
            return
        additions: List[Tuple[str, str]] = [
            ("status", "TEXT NOT NULL DEFAULT 'ACTIVE'"),
            ("budget", "REAL"),
        ]
        for col, coltype in additions:
            if not _column_exists(conn, "projects", col):
                conn.execute(f"ALTER TABLE projects ADD COLUMN {col} {coltype};")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_projects_client_status ON projects(client_id, status);"
        )
        conn.commit()
    finally:
        conn.close()
