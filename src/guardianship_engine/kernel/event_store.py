"""
SQLite Event Store - snapshots, event outbox and optimistic locking

Guardianships are persisted as snapshots: one row per aggregate holding its
latest state and version. The domain events a command produced are written in
the same transaction to an append-only events table, which doubles as the
audit trail and as the outbox an external publisher drains after commit.

Version numbers are owned by the aggregate. Every mutation bumps it, but not
every mutation emits an event, so the snapshot row (not MAX(version) over
events) is the authority for optimistic locking.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from guardianship_engine.kernel.errors import EventStoreError, StreamVersionConflict
from guardianship_engine.kernel.events import Event
from guardianship_engine.kernel.logging import get_logger
from guardianship_engine.kernel.metrics import (
    events_appended_total,
    stream_version_conflicts_total,
)
from guardianship_engine.kernel.retry import retry_on_sqlite_lock

logger = get_logger(__name__)

_EVENT_COLUMNS = """
    event_id, stream_id, stream_type, version, command_id,
    event_type, occurred_at, actor_id, payload_json
"""


class SQLiteEventStore:
    """
    SQLite-backed snapshot store with an append-only event outbox

    Schema:
    - snapshots: stream_id (PK), stream_type, version, state_json, updated_at
    - events: append-only, unique on (stream_id, version), published_at NULL
      until an external publisher acknowledges the event
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Args:
            db_path: Path to SQLite database file (created if missing)
        """
        self.db_path = Path(db_path)
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    stream_id TEXT PRIMARY KEY,
                    stream_type TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    state_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    event_id TEXT PRIMARY KEY,
                    stream_id TEXT NOT NULL,
                    stream_type TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    command_id TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    occurred_at TEXT NOT NULL,
                    actor_id TEXT,
                    payload_json TEXT NOT NULL,
                    published_at TEXT,

                    UNIQUE(stream_id, version)
                )
            """)

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_stream ON events(stream_id, version)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_command ON events(command_id)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_unpublished ON events(published_at)"
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection in autocommit mode; writers open transactions explicitly."""
        conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @retry_on_sqlite_lock()
    def commit(
        self,
        *,
        stream_id: str,
        stream_type: str,
        expected_version: int,
        new_version: int,
        state: dict[str, Any],
        events: list[Event],
        updated_at: datetime,
    ) -> list[Event]:
        """
        Atomically replace a snapshot and append its pending events

        Args:
            stream_id: Aggregate identifier
            stream_type: Aggregate kind
            expected_version: Version the caller loaded (0 for a new aggregate)
            new_version: Version of the state being written
            state: JSON-serializable snapshot
            events: Events emitted since the caller loaded
            updated_at: Timestamp stored with the snapshot

        Returns:
            The stored events (the previously stored ones if the command
            was already committed)

        Raises:
            StreamVersionConflict: If the stored version differs from expected_version
            EventStoreError: If new_version does not advance, or on database errors
        """
        if events:
            already_stored = self._events_for_command(stream_id, events[0].command_id)
            if already_stored:
                logger.info(
                    "Command already committed, skipping write",
                    stream_id=stream_id,
                    command_id=events[0].command_id,
                )
                return already_stored

        if new_version <= expected_version:
            raise EventStoreError(
                f"Stream {stream_id}: new version {new_version} does not advance "
                f"past expected version {expected_version}"
            )

        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                current_version = self._get_stream_version(conn, stream_id)
                if current_version != expected_version:
                    stream_version_conflicts_total.labels(aggregate_type=stream_type).inc()
                    raise StreamVersionConflict(stream_id, expected_version, current_version)

                conn.execute(
                    """
                    INSERT INTO snapshots (stream_id, stream_type, version, state_json, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(stream_id) DO UPDATE SET
                        version = excluded.version,
                        state_json = excluded.state_json,
                        updated_at = excluded.updated_at
                    """,
                    (
                        stream_id,
                        stream_type,
                        new_version,
                        json.dumps(state),
                        updated_at.isoformat(),
                    ),
                )

                for event in events:
                    conn.execute(
                        f"INSERT INTO events ({_EVENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            event.event_id,
                            event.aggregate_id,
                            event.aggregate_type,
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
                raise EventStoreError(f"Failed to commit stream {stream_id}: {e}") from e

            except sqlite3.OperationalError:
                conn.execute("ROLLBACK")
                raise

        for event in events:
            events_appended_total.labels(
                aggregate_type=event.aggregate_type, event_type=event.event_type
            ).inc()

        return events

    def load_snapshot(self, stream_id: str) -> tuple[int, dict[str, Any]] | None:
        """
        Load the latest snapshot of a stream

        Returns:
            (version, state) or None if the stream has never been saved
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT version, state_json FROM snapshots WHERE stream_id = ?",
                (stream_id,),
            ).fetchone()
        if row is None:
            return None
        return row["version"], json.loads(row["state_json"])

    def list_streams(self, stream_type: str | None = None) -> list[str]:
        """List stored stream ids, oldest snapshot update first"""
        with self._connect() as conn:
            if stream_type:
                cursor = conn.execute(
                    "SELECT stream_id FROM snapshots WHERE stream_type = ? ORDER BY updated_at, stream_id",
                    (stream_type,),
                )
            else:
                cursor = conn.execute(
                    "SELECT stream_id FROM snapshots ORDER BY updated_at, stream_id"
                )
            return [row["stream_id"] for row in cursor.fetchall()]

    def load_stream(self, stream_id: str) -> list[Event]:
        """Load all events of a stream in version order (audit trail)"""
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM events WHERE stream_id = ? ORDER BY version ASC",
                (stream_id,),
            )
            return [self._row_to_event(row) for row in cursor.fetchall()]

    def load_all_events(self, limit: int | None = None) -> list[Event]:
        """Load every event in chronological order (for projection rebuilding)"""
        query = f"SELECT {_EVENT_COLUMNS} FROM events ORDER BY occurred_at ASC, event_id ASC"
        params: tuple[Any, ...] = ()
        if limit:
            query += " LIMIT ?"
            params = (limit,)
        with self._connect() as conn:
            return [self._row_to_event(row) for row in conn.execute(query, params).fetchall()]

    def query_events(
        self,
        *,
        stream_type: str | None = None,
        event_type: str | None = None,
        from_time: datetime | None = None,
        to_time: datetime | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """
        Query events by various criteria

        Args:
            stream_type: Filter by aggregate kind
            event_type: Filter by event name (e.g. "GuardianReplaced")
            from_time: Events at or after this time
            to_time: Events at or before this time
            limit: Maximum number of events to return

        Returns:
            Matching events in chronological order
        """
        conditions = []
        params: list[Any] = []

        if stream_type:
            conditions.append("stream_type = ?")
            params.append(stream_type)
        if event_type:
            conditions.append("event_type = ?")
            params.append(event_type)
        if from_time:
            conditions.append("occurred_at >= ?")
            params.append(from_time.isoformat())
        if to_time:
            conditions.append("occurred_at <= ?")
            params.append(to_time.isoformat())

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        query = (
            f"SELECT {_EVENT_COLUMNS} FROM events WHERE {where_clause} "
            "ORDER BY occurred_at ASC, event_id ASC"
        )
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            return [self._row_to_event(row) for row in conn.execute(query, params).fetchall()]

    def fetch_unpublished(self, limit: int = 100) -> list[Event]:
        """Events committed but not yet acknowledged by the publisher, oldest first"""
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM events WHERE published_at IS NULL "
                "ORDER BY occurred_at ASC, event_id ASC LIMIT ?",
                (limit,),
            )
            return [self._row_to_event(row) for row in cursor.fetchall()]

    @retry_on_sqlite_lock()
    def mark_published(self, event_ids: list[str], published_at: datetime) -> int:
        """
        Acknowledge delivery of events

        Returns:
            Number of events newly marked as published
        """
        if not event_ids:
            return 0
        placeholders = ", ".join("?" for _ in event_ids)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE events SET published_at = ? "
                f"WHERE published_at IS NULL AND event_id IN ({placeholders})",
                (published_at.isoformat(), *event_ids),
            )
            return cursor.rowcount

    def get_stream_version(self, stream_id: str) -> int:
        """Current stored version of a stream (0 if never saved)"""
        with self._connect() as conn:
            return self._get_stream_version(conn, stream_id)

    def _get_stream_version(self, conn: sqlite3.Connection, stream_id: str) -> int:
        row = conn.execute(
            "SELECT version FROM snapshots WHERE stream_id = ?", (stream_id,)
        ).fetchone()
        return row["version"] if row is not None else 0

    def _events_for_command(self, stream_id: str, command_id: str) -> list[Event]:
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM events "
                "WHERE stream_id = ? AND command_id = ? ORDER BY version ASC",
                (stream_id, command_id),
            )
            return [self._row_to_event(row) for row in cursor.fetchall()]

    def _row_to_event(self, row: sqlite3.Row) -> Event:
        return Event(
            event_id=row["event_id"],
            aggregate_id=row["stream_id"],
            aggregate_type=row["stream_type"],
            version=row["version"],
            command_id=row["command_id"],
            event_type=row["event_type"],
            occurred_at=datetime.fromisoformat(row["occurred_at"]),
            actor_id=row["actor_id"],
            payload=json.loads(row["payload_json"]),
        )

    def count_events(self) -> int:
        """Total number of events in store"""
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]

    def count_streams(self) -> int:
        """Total number of stored aggregates"""
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM snapshots").fetchone()[0]
