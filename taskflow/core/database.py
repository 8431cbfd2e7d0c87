"""
Database utilities and connection management
SQLite storage for the durable per-user active-timer record

Usage:
    db = SQLiteDatabase(config.get_database_path(), create=True)
    db.init_schema()
"""

import logging
import sqlite3
from pathlib import Path
from typing import Dict, Any, Optional, Tuple
from contextlib import contextmanager

logger = logging.getLogger("taskflow.database")

SCHEMA = """
CREATE TABLE IF NOT EXISTS active_timers (
    user_id TEXT PRIMARY KEY,
    entry_id TEXT,
    project_id TEXT,
    description TEXT NOT NULL DEFAULT '',
    billable INTEGER NOT NULL DEFAULT 0,
    start_time TEXT,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""


class SQLiteDatabase:
    """SQLite database implementation"""

    def __init__(self, db_path: Path, create: bool = False):
        """
        Args:
            db_path: Path to the database file (":memory:" is not supported
                since every call opens a fresh connection)
            create: Create the file and schema if it does not exist
        """
        self.db_path = Path(db_path)

        if not self.db_path.exists():
            if not create:
                raise FileNotFoundError(
                    f"Database not found at {self.db_path}. "
                    "Run 'python scripts/init_db.py' to create it."
                )
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.init_schema()
            logger.info("Created database at %s", self.db_path)

    @contextmanager
    def get_connection(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def init_schema(self) -> None:
        """Create tables if missing"""
        with self.get_connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    def execute_one(self, query: str, params: Tuple = ()) -> Optional[Dict[str, Any]]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            row = cursor.fetchone()
            return dict(row) if row else None

    def execute_write(self, query: str, params: Tuple = ()) -> int:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            conn.commit()
            return cursor.rowcount

    def table_exists(self, table_name: str) -> bool:
        query = "SELECT name FROM sqlite_master WHERE type='table' AND name=?;"
        result = self.execute_one(query, (table_name,))
        return result is not None

    @contextmanager
    def transaction(self):
        """Connection that commits on success and rolls back on error"""
        with self.get_connection() as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
