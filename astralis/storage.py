"""SQLite-backed analysis history, doubling as a result cache.

Results are keyed by the SHA-256 of the source text, the verbosity mode and
whether the LLM enhancer rewrote the result, so re-analysing an unchanged
file returns the stored flowchart of the same kind.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import HISTORY_DB, HISTORY_LIMIT, ensure_base_dirs
from .models import AnalysisResult

logger = logging.getLogger(__name__)


def hash_source(source: str) -> str:
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


class AnalysisHistory:
    """Persist analyses in ``history.db``."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        if db_path is None:
            ensure_base_dirs()
            db_path = HISTORY_DB
        self.db_path = db_path
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        self.conn.close()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        cur.execute("""
            CREATE TABLE IF NOT EXISTS analyses (
                id          TEXT PRIMARY KEY,
                file_name   TEXT NOT NULL,
                file_hash   TEXT NOT NULL,
                language    TEXT NOT NULL,
                mode        TEXT NOT NULL,
                source_code TEXT NOT NULL,
                result      TEXT NOT NULL,
                enhanced    INTEGER NOT NULL DEFAULT 0,
                created_at  TEXT NOT NULL
            )
        """)
        columns = {row["name"] for row in cur.execute("PRAGMA table_info(analyses)")}
        if "enhanced" not in columns:
            cur.execute("ALTER TABLE analyses ADD COLUMN enhanced INTEGER NOT NULL DEFAULT 0")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_analyses_cache ON analyses(file_hash, mode, enhanced)")
        self.conn.commit()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_cached(self, file_hash: str, mode: str, enhanced: bool = False) -> Optional[Dict[str, Any]]:
        """Latest stored analysis of the same source, mode and enhancement state."""
        row = self.conn.execute(
            "SELECT * FROM analyses WHERE file_hash = ? AND mode = ? AND enhanced = ? "
            "ORDER BY created_at DESC LIMIT 1",
            (file_hash, mode, int(enhanced)),
        ).fetchone()
        return self._row_to_record(row) if row else None

    def save(
        self,
        file_name: str,
        language: str,
        mode: str,
        source: str,
        result: AnalysisResult,
        enhanced: bool = False,
    ) -> str:
        analysis_id = uuid.uuid4().hex
        self.conn.execute(
            """
            INSERT INTO analyses (id, file_name, file_hash, language, mode, source_code, result, enhanced, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                analysis_id,
                file_name,
                hash_source(source),
                language,
                mode,
                source,
                json.dumps(result.to_dict()),
                int(enhanced),
                datetime.now().isoformat(),
            ),
        )
        self.conn.commit()
        logger.debug("Saved analysis %s for %s", analysis_id, file_name)
        return analysis_id

    def list_history(self, limit: int = HISTORY_LIMIT) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT id, file_name, language, mode, enhanced, created_at FROM analyses "
            "ORDER BY created_at DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [dict(row, enhanced=bool(row["enhanced"])) for row in rows]

    def get(self, analysis_id: str) -> Optional[Dict[str, Any]]:
        row = self.conn.execute("SELECT * FROM analyses WHERE id = ?", (analysis_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def delete(self, analysis_id: str) -> bool:
        cur = self.conn.execute("DELETE FROM analyses WHERE id = ?", (analysis_id,))
        self.conn.commit()
        return cur.rowcount > 0

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Dict[str, Any]:
        record = dict(row)
        record["enhanced"] = bool(record["enhanced"])
        record["result"] = AnalysisResult.from_dict(json.loads(record["result"]))
        return record
