"""
SQLite-backed stores.

Pure plumbing: SQLite is an implementation detail behind the store
interfaces in agent.memory.base.

Design:
- One database, five tables: users, conversations, conversation_messages,
  health_records, medications
- One shared connection guarded by a lock (works for ':memory:' too)
- Datetimes stored as UTC ISO-8601 strings so they sort lexicographically
- Structured payloads stored as JSON text
- sqlite3 errors are logged and re-raised as StoreError
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from agent.errors import StoreError
from agent.memory.base import (
    ConversationStore,
    HealthRecordStore,
    MedicationStore,
    UserStore,
)
from agent.memory.types import (
    ConversationMessage,
    HealthRecord,
    Medication,
    Role,
    User,
    UserPreferences,
    new_id,
    utcnow,
)

logger = logging.getLogger(__name__)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    phone_number TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL DEFAULT '',
    reminder_time TEXT NOT NULL,
    timezone TEXT NOT NULL,
    family_id TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS conversations (
    user_id TEXT PRIMARY KEY REFERENCES users(id),
    created_at TEXT NOT NULL,
    last_updated TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS conversation_messages (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES conversations(user_id),
    role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
    content TEXT NOT NULL,
    timestamp TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_messages_user ON conversation_messages(user_id, seq);

CREATE TABLE IF NOT EXISTS health_records (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL,
    record_type TEXT NOT NULL,
    date TEXT NOT NULL,
    source_type TEXT NOT NULL,
    raw_data TEXT NOT NULL,
    structured_data TEXT,
    analysis TEXT,
    file_url TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_records_user_created ON health_records(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_records_user_date ON health_records(user_id, date);

CREATE TABLE IF NOT EXISTS medications (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    medication_name TEXT NOT NULL,
    dosage TEXT NOT NULL,
    frequency TEXT NOT NULL,
    times TEXT NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT,
    active INTEGER NOT NULL DEFAULT 1,
    notes TEXT
);

CREATE INDEX IF NOT EXISTS idx_medications_user ON medications(user_id, active);
"""


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SQLiteDatabase:
    """
    Shared SQLite connection and schema.

    Args:
        db_path: Path to SQLite database file.
                 If None, uses ':memory:' (in-memory, useful for testing).
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or ":memory:"
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize SQLite store: {e}")
            raise StoreError(f"Store initialization failed: {e}") from e
        logger.debug(f"SQLite store initialized: {self.db_path}")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run statements under the lock; commit on success, roll back on error."""
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except sqlite3.Error as e:
                self._rollback()
                logger.error(f"SQLite error: {e}")
                raise StoreError(f"Store unavailable: {e}") from e
            except Exception:
                self._rollback()
                raise

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error as e:
            logger.error(f"SQLite rollback failed: {e}")

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class SQLiteUserStore(UserStore):

    def __init__(self, db: SQLiteDatabase, default_preferences: Optional[UserPreferences] = None):
        self.db = db
        self.default_preferences = default_preferences or UserPreferences()

    def get_or_create(self, phone_number: str) -> User:
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE phone_number = ?", (phone_number,)
            ).fetchone()
            if row is not None:
                return self._row_to_user(row)

            user = User(
                id=new_id(),
                phone_number=phone_number,
                preferences=UserPreferences(
                    reminder_time=self.default_preferences.reminder_time,
                    timezone=self.default_preferences.timezone,
                ),
            )
            now = _to_iso(user.created_at)
            conn.execute(
                """
                INSERT INTO users (id, phone_number, name, reminder_time, timezone, family_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user.id,
                    user.phone_number,
                    user.name,
                    user.preferences.reminder_time,
                    user.preferences.timezone,
                    user.family_id,
                    now,
                ),
            )
            conn.execute(
                "INSERT INTO conversations (user_id, created_at, last_updated) VALUES (?, ?, ?)",
                (user.id, now, now),
            )
        logger.info(f"Created new user: {phone_number}")
        return user

    def get(self, user_id: str) -> Optional[User]:
        with self.db.transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def update_name(self, user_id: str, name: str) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute("UPDATE users SET name = ? WHERE id = ?", (name, user_id))
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            phone_number=row["phone_number"],
            name=row["name"],
            preferences=UserPreferences(
                reminder_time=row["reminder_time"],
                timezone=row["timezone"],
            ),
            family_id=row["family_id"],
            created_at=_from_iso(row["created_at"]),
        )


class SQLiteConversationStore(ConversationStore):

    def __init__(self, db: SQLiteDatabase):
        self.db = db

    def append(self, user_id: str, role: Role, content: str) -> None:
        now = _to_iso(utcnow())
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT INTO conversation_messages (user_id, role, content, timestamp) VALUES (?, ?, ?, ?)",
                (user_id, role, content, now),
            )
            conn.execute(
                "UPDATE conversations SET last_updated = ? WHERE user_id = ?",
                (now, user_id),
            )

    def recent(self, user_id: str, limit: int = 10) -> List[ConversationMessage]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT role, content, timestamp FROM conversation_messages
                WHERE user_id = ?
                ORDER BY seq DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [
            ConversationMessage(
                role=row["role"],
                content=row["content"],
                timestamp=_from_iso(row["timestamp"]),
            )
            for row in reversed(rows)
        ]


class SQLiteHealthRecordStore(HealthRecordStore):

    def __init__(self, db: SQLiteDatabase):
        self.db = db

    def add(self, record: HealthRecord) -> HealthRecord:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO health_records (
                    id, user_id, record_type, date, source_type,
                    raw_data, structured_data, analysis, file_url, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.user_id,
                    record.record_type,
                    _to_iso(record.date),
                    record.source_type,
                    json.dumps(record.raw_data),
                    json.dumps(record.structured_data) if record.structured_data is not None else None,
                    record.analysis,
                    record.file_url,
                    _to_iso(record.created_at),
                ),
            )
        logger.info(
            f"Health record saved: user_id={record.user_id}, type={record.record_type}",
            extra={"record_id": record.id, "source_type": record.source_type},
        )
        return record

    def recent(self, user_id: str, limit: int = 10) -> List[HealthRecord]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM health_records
                WHERE user_id = ?
                ORDER BY created_at DESC, seq DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def count(self, user_id: str) -> int:
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM health_records WHERE user_id = ?", (user_id,)
            ).fetchone()
        return row["n"]

    def since(self, user_id: str, cutoff: datetime) -> List[HealthRecord]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM health_records
                WHERE user_id = ? AND date >= ?
                ORDER BY date DESC, seq DESC
                """,
                (user_id, _to_iso(cutoff)),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> HealthRecord:
        return HealthRecord(
            id=row["id"],
            user_id=row["user_id"],
            record_type=row["record_type"],
            date=_from_iso(row["date"]),
            source_type=row["source_type"],
            raw_data=json.loads(row["raw_data"]),
            structured_data=json.loads(row["structured_data"]) if row["structured_data"] else None,
            analysis=row["analysis"],
            file_url=row["file_url"],
            created_at=_from_iso(row["created_at"]),
        )


class SQLiteMedicationStore(MedicationStore):

    def __init__(self, db: SQLiteDatabase):
        self.db = db

    def add(self, medication: Medication) -> Medication:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO medications (
                    id, user_id, medication_name, dosage, frequency,
                    times, start_date, end_date, active, notes
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    medication.id,
                    medication.user_id,
                    medication.medication_name,
                    medication.dosage,
                    medication.frequency,
                    json.dumps(medication.times),
                    _to_iso(medication.start_date),
                    _to_iso(medication.end_date) if medication.end_date else None,
                    1 if medication.active else 0,
                    medication.notes,
                ),
            )
        return medication

    def active(self, user_id: str) -> List[Medication]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM medications WHERE user_id = ? AND active = 1 ORDER BY start_date",
                (user_id,),
            ).fetchall()
        return [
            Medication(
                id=row["id"],
                user_id=row["user_id"],
                medication_name=row["medication_name"],
                dosage=row["dosage"],
                frequency=row["frequency"],
                times=json.loads(row["times"]),
                start_date=_from_iso(row["start_date"]),
                end_date=_from_iso(row["end_date"]),
                active=bool(row["active"]),
                notes=row["notes"],
            )
            for row in rows
        ]
