"""
SQLite Event Store - Append-only event log

The event store is the source of truth for the ledger. It provides:
- Append-only semantics (events are never modified or deleted)
- Optimistic locking via per-stream versions
- Atomic multi-stream appends (a license transfer touches two rights)
- Deterministic replay in global append order

Fun fact: Double-entry bookkeeping ledgers have been append-only since the
15th century - mistakes are fixed with correcting entries, never erasures.
"""

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator

from rights_provenance.kernel.errors import (
    CommandIdempotencyViolation,
    EventStoreError,
    StreamVersionConflict,
)
from rights_provenance.kernel.events import Event
from rights_provenance.kernel.logging import get_logger
from rights_provenance.kernel.metrics import (
    events_appended_total,
    events_loaded_total,
    stream_version_conflicts_total,
)
from rights_provenance.kernel.retry import retry_on_sqlite_lock

logger = get_logger(__name__)

_EVENT_COLUMNS = """
    event_id, stream_id, stream_type, version,
    command_id, event_type, occurred_at, actor_id, payload_json
"""


@dataclass(frozen=True)
class StreamAppend:
    """Events destined for one stream, with the version the caller expects"""

    stream_id: str
    expected_version: int
    events: list[Event]


class SQLiteEventStore:
    """
    SQLite-based event store with append-only semantics

    Uses WAL mode for crash safety and concurrent reads.

    Schema:
    - events table: append-only event log
    - position: global autoincrement, the replay order
    - Unique constraints: event_id, (stream_id, version)
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    position INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_id TEXT NOT NULL UNIQUE,
                    stream_id TEXT NOT NULL,
                    stream_type TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    command_id TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    occurred_at TEXT NOT NULL,
                    actor_id TEXT,
                    payload_json TEXT NOT NULL,

                    UNIQUE(stream_id, version)
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_stream ON events(stream_id, version)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_type ON events(stream_type, event_type)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_command ON events(command_id)"
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """
        Connection in autocommit mode; writers open explicit transactions
        """
        conn = sqlite3.connect(str(self.db_path), timeout=5.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @retry_on_sqlite_lock()
    def append_streams(self, batches: list[StreamAppend]) -> list[Event]:
        """
        Append to several streams in one transaction - all or nothing

        Idempotency: if the command that produced these events was already
        appended, the stored events are returned and nothing is written.

        Raises:
            StreamVersionConflict: If any stream's version doesn't match
            CommandIdempotencyViolation: If the command_id was already used
                for a different set of streams
            EventStoreError: On other database errors
        """
        all_events = [e for batch in batches for e in batch.events]
        if not all_events:
            return []

        command_id = all_events[0].command_id
        existing = self._get_events_by_command_id(command_id)
        if existing:
            if {e.stream_id for e in existing} != {b.stream_id for b in batches}:
                raise CommandIdempotencyViolation(command_id)
            return existing

        with self._connect() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                for batch in batches:
                    current = self._get_stream_version(conn, batch.stream_id)
                    if current != batch.expected_version:
                        stream_type = batch.events[0].stream_type if batch.events else "unknown"
                        stream_version_conflicts_total.labels(stream_type=stream_type).inc()
                        raise StreamVersionConflict(
                            batch.stream_id, batch.expected_version, current
                        )

                    for event in batch.events:
                        conn.execute(
                            f"INSERT INTO events ({_EVENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                            (
                                event.event_id,
                                event.stream_id,
                                event.stream_type,
                                event.version,
                                event.command_id,
                                event.event_type,
                                event.occurred_at.isoformat(),
                                event.actor_id,
                                json.dumps(event.payload),
                            ),
                        )
                conn.execute("COMMIT")

            except StreamVersionConflict:
                conn.execute("ROLLBACK")
                raise

            except sqlite3.IntegrityError as e:
                conn.execute("ROLLBACK")
                raise EventStoreError(f"Failed to append events: {e}") from e

            except sqlite3.OperationalError:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

        for event in all_events:
            events_appended_total.labels(
                stream_type=event.stream_type, event_type=event.event_type
            ).inc()
        logger.debug(
            "Events appended",
            command_id=command_id,
            streams=[b.stream_id for b in batches],
            event_count=len(all_events),
        )
        return all_events

    @retry_on_sqlite_lock()
    def load_stream(self, stream_id: str) -> list[Event]:
        """Load all events for a stream in version order (empty if none)"""
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM events WHERE stream_id = ? ORDER BY version ASC",
                (stream_id,),
            )
            events = [self._row_to_event(row) for row in cursor.fetchall()]

        if events:
            events_loaded_total.labels(stream_type=events[0].stream_type).inc(len(events))
        return events

    @retry_on_sqlite_lock()
    def load_all_events(self, after_position: int = 0) -> list[Event]:
        """
        Load events in global append order (for projection rebuilding)

        Args:
            after_position: Only return events appended after this position
        """
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM events WHERE position > ? ORDER BY position ASC",
                (after_position,),
            )
            return [self._row_to_event(row) for row in cursor.fetchall()]

    def _get_stream_version(self, conn: sqlite3.Connection, stream_id: str) -> int:
        row = conn.execute(
            "SELECT MAX(version) FROM events WHERE stream_id = ?",
            (stream_id,),
        ).fetchone()
        return row[0] if row[0] is not None else 0

    def _get_events_by_command_id(self, command_id: str) -> list[Event]:
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM events WHERE command_id = ? ORDER BY position ASC",
                (command_id,),
            )
            return [self._row_to_event(row) for row in cursor.fetchall()]

    def _row_to_event(self, row: sqlite3.Row) -> Event:
        return Event(
            event_id=row["event_id"],
            stream_id=row["stream_id"],
            stream_type=row["stream_type"],
            version=row["version"],
            command_id=row["command_id"],
            event_type=row["event_type"],
            occurred_at=datetime.fromisoformat(row["occurred_at"]),
            actor_id=row["actor_id"],
            payload=json.loads(row["payload_json"]),
        )

    def count_events(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]

    def count_streams(self, stream_type: str | None = None) -> int:
        with self._connect() as conn:
            if stream_type:
                row = conn.execute(
                    "SELECT COUNT(DISTINCT stream_id) FROM events WHERE stream_type = ?",
                    (stream_type,),
                ).fetchone()
            else:
                row = conn.execute("SELECT COUNT(DISTINCT stream_id) FROM events").fetchone()
            return row[0]
