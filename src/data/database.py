"""
SQLite database initialization and connection management.

Single responsibility: own the connection and create the settings table.
All actual queries live in Repository.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Default DB lives next to the executable / repo root
DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent.parent / "eye_break.db"

SCHEMA_SQL = """
-- Settings (key/value, JSON-encoded values) ----------------------------------
CREATE TABLE IF NOT EXISTS settings (
    key         TEXT    PRIMARY KEY,
    value       TEXT    NOT NULL,
    updated_at  TEXT    NOT NULL DEFAULT (datetime('now'))
);
"""


class Database:
    """Thin wrapper around a SQLite connection."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        self.conn: Optional[sqlite3.Connection] = None

    # -- lifecycle -----------------------------------------------------------

    def connect(self) -> sqlite3.Connection:
        """Open (or return existing) connection and ensure schema exists."""
        if self.conn is not None:
            return self.conn
        logger.info("Connecting to SQLite at %s", self.db_path)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        if str(self.db_path) != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()
        return self.conn

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Database connection closed.")

    # -- internal ------------------------------------------------------------

    def _create_tables(self) -> None:
        assert self.conn is not None
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()
        logger.info("Database schema ensured.")


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Manages the SQLite connection and makes sure the settings table exists
#   on startup.
#
# Key pieces:
#   - SCHEMA_SQL: one key/value table. CREATE IF NOT EXISTS makes it
#     idempotent, safe to run every launch.
#   - Database class: holds one connection and enables WAL mode for on-disk
#     databases (in-memory ones don't support it).
#
# Interviewer-friendly talking points:
#   1. Why SQLite for a handful of settings? Atomic writes for free: a crash
#      mid-save never leaves a half-written JSON file behind.
#   2. The table stores JSON text so lists (notification thresholds) and
#      scalars share one column without a schema change per setting.
