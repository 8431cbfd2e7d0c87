"""
Persistence port for the active-timer record.

The timer state machine only needs get/set/clear of one record per user, so
the same session runs unchanged against memory, a JSON file or a database
row. Records are plain dicts in the ActiveTimerState.to_record() layout:

    {"entryId": ..., "projectId": ..., "description": ..., "billable": ...,
     "startTime": "2025-03-03T09:00:00+00:00"}
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from taskflow.core.database import SQLiteDatabase

logger = logging.getLogger("taskflow.timer.store")

Record = Dict[str, Any]


class TimerStore(ABC):
    """Key-value port keyed by user id"""

    @abstractmethod
    def get(self, user_id: str) -> Optional[Record]:
        """Persisted record for the user, or None when idle"""
        pass

    @abstractmethod
    def set(self, user_id: str, record: Record) -> None:
        """Persist the running record (last writer wins)"""
        pass

    @abstractmethod
    def clear(self, user_id: str) -> None:
        """Remove the record; a no-op when there is none"""
        pass

    def claim(self, user_id: str, record: Record) -> bool:
        """
        Persist the record only if the user has none.

        Not atomic across processes here; stores shared between processes
        override it with a single conditional write.
        """
        if self.get(user_id) is not None:
            return False
        self.set(user_id, record)
        return True


class MemoryTimerStore(TimerStore):
    """In-process store, used in tests and for ephemeral sessions"""

    def __init__(self):
        self._records: Dict[str, Record] = {}

    def get(self, user_id: str) -> Optional[Record]:
        record = self._records.get(user_id)
        return dict(record) if record is not None else None

    def set(self, user_id: str, record: Record) -> None:
        self._records[user_id] = dict(record)

    def clear(self, user_id: str) -> None:
        self._records.pop(user_id, None)


class JsonFileTimerStore(TimerStore):
    """
    One JSON document holding every user's record.

    Writes go to a temporary file that replaces the original, so a crash
    mid-write leaves the previous document intact.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Timer state file %s is unreadable: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".timer-", suffix=".json")
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except Exception:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, user_id: str) -> Optional[Record]:
        return self._load().get(user_id)

    def set(self, user_id: str, record: Record) -> None:
        data = self._load()
        data[user_id] = record
        self._save(data)

    def clear(self, user_id: str) -> None:
        data = self._load()
        if user_id in data:
            del data[user_id]
            self._save(data)


class SQLiteTimerStore(TimerStore):
    """
    One row per user in the ``active_timers`` table.

    ``claim`` is the server-side start path: a single INSERT that only
    succeeds while the user has no row, so two devices starting at once
    cannot both end up running.
    """

    def __init__(self, db: SQLiteDatabase):
        self.db = db
        if not self.db.table_exists("active_timers"):
            self.db.init_schema()

    @staticmethod
    def _params(user_id: str, record: Record):
        return (
            user_id,
            None if record.get('entryId') is None else str(record.get('entryId')),
            None if record.get('projectId') is None else str(record.get('projectId')),
            record.get('description') or '',
            1 if record.get('billable') else 0,
            record.get('startTime'),
        )

    def get(self, user_id: str) -> Optional[Record]:
        row = self.db.execute_one(
            "SELECT * FROM active_timers WHERE user_id = ?",
            (user_id,)
        )
        if row is None:
            return None
        return {
            "entryId": row['entry_id'],
            "projectId": row['project_id'],
            "description": row['description'],
            "billable": bool(row['billable']),
            "startTime": row['start_time'],
        }

    def set(self, user_id: str, record: Record) -> None:
        self.db.execute_write(
            """
            INSERT INTO active_timers (user_id, entry_id, project_id, description, billable, start_time)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                entry_id = excluded.entry_id,
                project_id = excluded.project_id,
                description = excluded.description,
                billable = excluded.billable,
                start_time = excluded.start_time,
                updated_at = CURRENT_TIMESTAMP
            """,
            self._params(user_id, record)
        )

    def claim(self, user_id: str, record: Record) -> bool:
        """
        Insert the record only if the user has no active timer.

        Returns:
            True if this call created the row
        """
        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO active_timers (user_id, entry_id, project_id, description, billable, start_time)
                SELECT ?, ?, ?, ?, ?, ?
                WHERE NOT EXISTS (SELECT 1 FROM active_timers WHERE user_id = ?)
                """,
                self._params(user_id, record) + (user_id,)
            )
            inserted = cursor.rowcount
        if inserted != 1:
            logger.debug("Claim refused for %s: a timer is already active", user_id)
        return inserted == 1

    def clear(self, user_id: str) -> None:
        self.db.execute_write("DELETE FROM active_timers WHERE user_id = ?", (user_id,))
