"""
Schema initialization and additive migration for the insight store.

New databases get the full current schema.  Databases created by older
versions get each missing column added with a safe default; existing columns
are never altered or dropped, so initialization is safe to re-run.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import NamedTuple

from insightsync.infrastructure.database import db_transaction, get_db_connection
from insightsync.observability.logging import get_logger

logger = get_logger(__name__)

INSIGHTS_TABLE = "ai_insights"

_CREATE_INSIGHTS_TABLE = f"""
    CREATE TABLE {INSIGHTS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        activity_id TEXT UNIQUE,
        activity_name TEXT,
        insight TEXT,
        model TEXT,
        confidence REAL,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
"""


class ColumnMigration(NamedTuple):
    column: str
    ddl_type: str
    default: str | None


# Columns added after the first release, in the order they were introduced.
# SQLite rejects non-constant defaults in ADD COLUMN, so created_at is
# backfilled with an UPDATE instead.
INSIGHT_MIGRATIONS: tuple[ColumnMigration, ...] = (
    ColumnMigration("model", "TEXT", "'unknown'"),
    ColumnMigration("confidence", "REAL", "0.7"),
    ColumnMigration("created_at", "TEXT", None),
)


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name = ?",
        (table,),
    ).fetchone()
    return row is not None


def column_names(conn: sqlite3.Connection, table: str) -> set[str]:
    # Table names come from module constants, never from input
    if not table.replace("_", "").isalnum():
        raise ValueError(f"Invalid table name: {table}")
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def init_insights_table(db_path: Path | None = None) -> list[str]:
    """
    Create or migrate the ai_insights table (idempotent)

    Args:
        db_path: Database file; defaults to the configured store path

    Returns:
        Names of the columns added by this call (empty when nothing changed)

    Side Effects:
        - Creates the table and its index when absent
        - Adds missing columns with their defaults when present
    """
    added: list[str] = []

    with db_transaction(db_path) as conn:
        if not table_exists(conn, INSIGHTS_TABLE):
            conn.execute(_CREATE_INSIGHTS_TABLE)
            logger.info("Created new %s table", INSIGHTS_TABLE)
        else:
            existing = column_names(conn, INSIGHTS_TABLE)
            for migration in INSIGHT_MIGRATIONS:
                if migration.column in existing:
                    continue
                default_clause = f" DEFAULT {migration.default}" if migration.default else ""
                conn.execute(
                    f"ALTER TABLE {INSIGHTS_TABLE} ADD COLUMN "
                    f"{migration.column} {migration.ddl_type}{default_clause}"
                )
                if migration.column == "created_at":
                    conn.execute(
                        f"UPDATE {INSIGHTS_TABLE} SET created_at = datetime('now') "
                        "WHERE created_at IS NULL"
                    )
                added.append(migration.column)
                logger.info("Added column '%s' to %s table", migration.column, INSIGHTS_TABLE)

        conn.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{INSIGHTS_TABLE}_created_at "
            f"ON {INSIGHTS_TABLE}(created_at)"
        )

    return added


def validate_schema(db_path: Path | None = None) -> bool:
    """
    Validate the store has the expected table and columns

    Raises:
        ValueError: If the table or any required column is missing
    """
    required = {"activity_id", "activity_name", "insight", "model", "confidence", "created_at"}

    with get_db_connection(db_path) as conn:
        if not table_exists(conn, INSIGHTS_TABLE):
            raise ValueError(f"Database missing table: {INSIGHTS_TABLE}")
        missing = required - column_names(conn, INSIGHTS_TABLE)

    if missing:
        raise ValueError(f"Table '{INSIGHTS_TABLE}' missing columns: {sorted(missing)}")
    return True
