from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
import logging
import sqlite3

from .config import settings
from .domain.exceptions import PersistenceError

logger = logging.getLogger(__name__)

COLUMNS = (
    "id",
    "clinic_id",
    "name",
    "phone",
    "treatment",
    "appointment_type",
    "scheduled_time",
    "status",
    "arrival_time",
    "wait_time_minutes",
    "created_at",
)
UPDATABLE = ("status", "arrival_time", "wait_time_minutes")
DATETIME_COLUMNS = ("arrival_time", "created_at")


def _to_db(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def _from_db(row: sqlite3.Row) -> Dict[str, Any]:
    record = dict(row)
    for col in DATETIME_COLUMNS:
        if record.get(col):
            record[col] = datetime.fromisoformat(record[col])
    return record


class Database:
    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or settings.db_path
        self._ensure()

    def _connect(self):
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def _execute(self, sql: str, params=()) -> List[sqlite3.Row]:
        try:
            conn = self._connect()
            try:
                with conn:
                    cur = conn.execute(sql, params)
                    return cur.fetchall()
            finally:
                conn.close()
        except sqlite3.Error as err:
            logger.error("SQLite error on %s: %s", self.path, err)
            raise PersistenceError(f"Database write failed: {err}") from err

    def _ensure(self) -> None:
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS patients (
                id TEXT PRIMARY KEY,
                clinic_id TEXT NOT NULL,
                name TEXT NOT NULL,
                phone TEXT NOT NULL,
                treatment TEXT NOT NULL,
                appointment_type TEXT NOT NULL,
                scheduled_time TEXT,
                status TEXT NOT NULL,
                arrival_time TEXT,
                wait_time_minutes INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            );
            """
        )

    def insert(self, record: Dict[str, Any]) -> None:
        columns = ", ".join(COLUMNS)
        placeholders = ", ".join("?" for _ in COLUMNS)
        updates = ", ".join(f"{col}=excluded.{col}" for col in UPDATABLE)
        self._execute(
            f"""
            INSERT INTO patients ({columns})
            VALUES ({placeholders})
            ON CONFLICT(id) DO UPDATE SET {updates};
            """,
            tuple(_to_db(record.get(col)) for col in COLUMNS),
        )

    def update(self, patient_id: str, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - set(UPDATABLE)
        if unknown:
            raise PersistenceError(f"Columns cannot be updated: {', '.join(sorted(unknown))}")
        if not fields:
            return
        assignments = ", ".join(f"{col} = ?" for col in fields)
        self._execute(
            f"UPDATE patients SET {assignments} WHERE id = ?",
            tuple(_to_db(v) for v in fields.values()) + (patient_id,),
        )

    def list_for_day(self, clinic_id: str, day: date) -> List[Dict[str, Any]]:
        start = datetime.combine(day, datetime.min.time())
        end = start + timedelta(days=1)
        rows = self._execute(
            """
            SELECT * FROM patients
            WHERE clinic_id = ? AND created_at >= ? AND created_at < ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (clinic_id, start.isoformat(), end.isoformat()),
        )
        return [_from_db(r) for r in rows]
