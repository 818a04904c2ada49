"""
Insight Store - keyed persistence for InsightRecord.

One row per activity identifier in the ai_insights table.  Writes are
single-statement last-write-wins upserts; no transaction spans more than one
statement, which assumes a single writer process.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from insightsync.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from insightsync.infrastructure.database_schema import INSIGHTS_TABLE, init_insights_table
from insightsync.insights.models import InsightRecord
from insightsync.observability.logging import get_logger

logger = get_logger(__name__)

# SQLite's default SQLITE_MAX_VARIABLE_NUMBER is 999 on older builds
_IN_CLAUSE_CHUNK = 500


class InsightRepository:
    """
    Repository for InsightRecord rows.

    Args:
        db_path: SQLite file; defaults to INSIGHTSYNC_DB_PATH / the configured path
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        self.db_path = Path(db_path) if db_path is not None else None
        self._initialized = False

    def init_table(self) -> list[str]:
        """
        Create or migrate the table (idempotent).

        Returns:
            Columns added by this call
        """
        added = init_insights_table(self.db_path)
        self._initialized = True
        return added

    def ensure_table(self) -> None:
        if not self._initialized:
            self.init_table()

    def exists(self, activity_id: str) -> bool:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                f"SELECT 1 FROM {INSIGHTS_TABLE} WHERE activity_id = ?",
                (str(activity_id),),
            ).fetchone()
        return row is not None

    def get(self, activity_id: str) -> InsightRecord | None:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                f"SELECT * FROM {INSIGHTS_TABLE} WHERE activity_id = ?",
                (str(activity_id),),
            ).fetchone()

        if not row:
            return None
        return InsightRecord.from_db_row(dict(row))

    @retry_on_db_lock()
    def upsert(self, record: InsightRecord) -> None:
        """
        Insert or fully replace the record for record.activity_id.

        Side Effects:
            - Replaces any existing row for the key (created_at reset to now)
        """
        with db_transaction(self.db_path) as conn:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO {INSIGHTS_TABLE}
                    (activity_id, activity_name, insight, model, confidence, created_at)
                VALUES
                    (:activity_id, :activity_name, :insight, :model, :confidence, datetime('now'))
                """,
                record.to_db_dict(),
            )
        logger.debug("Saved insight for activity %s", record.activity_id)

    @retry_on_db_lock()
    def delete(self, activity_id: str) -> bool:
        """
        Delete the record for ``activity_id`` (force-regeneration path).

        Returns:
            True if a row was removed
        """
        with db_transaction(self.db_path) as conn:
            cursor = conn.execute(
                f"DELETE FROM {INSIGHTS_TABLE} WHERE activity_id = ?",
                (str(activity_id),),
            )
            removed = cursor.rowcount > 0
        if removed:
            logger.info("Deleted existing insight for activity %s", activity_id)
        return removed

    def list_all(self) -> list[InsightRecord]:
        """All records, most recently created first."""
        with get_db_connection(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT * FROM {INSIGHTS_TABLE} ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [InsightRecord.from_db_row(dict(row)) for row in rows]

    def missing_among(self, activity_ids: Iterable[str]) -> list[str]:
        """Identifiers (input order) that have no stored record."""
        ids = [str(a) for a in activity_ids]
        if not ids:
            return []

        existing: set[str] = set()
        with get_db_connection(self.db_path) as conn:
            for start in range(0, len(ids), _IN_CLAUSE_CHUNK):
                chunk = ids[start : start + _IN_CLAUSE_CHUNK]
                placeholders = ",".join("?" for _ in chunk)
                rows = conn.execute(
                    f"SELECT activity_id FROM {INSIGHTS_TABLE} WHERE activity_id IN ({placeholders})",
                    chunk,
                ).fetchall()
                existing.update(row["activity_id"] for row in rows)

        return [a for a in ids if a not in existing]

    def count(self) -> int:
        with get_db_connection(self.db_path) as conn:
            return conn.execute(f"SELECT COUNT(*) AS c FROM {INSIGHTS_TABLE}").fetchone()["c"]
