"""Local SQLite storage for journal entries."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from ..errors import CommitError, StoreError
from ..models import Entry, EntryRepresentation, parse_mood

logger = logging.getLogger(__name__)

# SQL schema for the journal database
SCHEMA = """
CREATE TABLE IF NOT EXISTS entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    identifier TEXT UNIQUE,
    title TEXT,
    body_text TEXT NOT NULL DEFAULT '',
    timestamp TEXT,
    mood TEXT NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_entries_timestamp ON entries(timestamp);
"""

_COLUMNS = "id, identifier, title, body_text, timestamp, mood"

# Upper bound on identifiers per lookup query
LOOKUP_BATCH_SIZE = 500


def _row_to_entry(row: sqlite3.Row) -> Entry:
    return Entry(
        identifier=row["identifier"],
        title=row["title"],
        body_text=row["body_text"],
        timestamp=(
            datetime.fromisoformat(row["timestamp"]) if row["timestamp"] else None
        ),
        mood=parse_mood(row["mood"]),
        pk=row["id"],
    )


def _entry_params(entry: Entry) -> tuple:
    data = entry.to_dict()
    return (
        data["identifier"],
        data["title"],
        data["body_text"] or "",
        data["timestamp"],
        data["mood"],
    )


class LocalStore:
    """SQLite-backed entry store.

    Implements the EntryStore unit of work used by reconciliation, plus
    plain CRUD helpers for the rest of the application.
    """

    def __init__(self, db_path: str | Path):
        """Initialize the local store.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self.db_path = Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None
        # Tracked entries paired with the snapshot they were loaded with
        self._tracked: list[tuple[Entry, dict[str, Any] | None]] = []

    @property
    def _in_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._conn is not None:
            return

        if not self._in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Reconciliation runs on a worker thread
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA)
        self._conn.commit()

        logger.info(f"LocalStore connected to {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
            self._tracked.clear()
            logger.info("LocalStore connection closed")

    def _ensure_connected(self) -> sqlite3.Connection:
        if self._conn is None:
            self.connect()
        return self._conn

    # ==================== Unit of work ====================

    def find_by_identifiers(self, identifiers: set[str]) -> list[Entry]:
        """Load and track all entries whose identifier is in the set.

        Args:
            identifiers: Identifiers to look up.

        Returns:
            Matching entries; changes to them are written on commit().

        Raises:
            StoreError: If the lookup fails or a stored row is unreadable.
        """
        if not identifiers:
            return []

        conn = self._ensure_connected()
        pending = sorted(identifiers)

        entries = []
        try:
            # IN lists are bounded by the connection's bound-variable limit
            batch_size = min(
                LOOKUP_BATCH_SIZE,
                conn.getlimit(sqlite3.SQLITE_LIMIT_VARIABLE_NUMBER),
            )
            for start in range(0, len(pending), batch_size):
                batch = pending[start:start + batch_size]
                placeholders = ",".join("?" * len(batch))
                cursor = conn.execute(
                    f"SELECT {_COLUMNS} FROM entries WHERE identifier IN ({placeholders})",
                    batch,
                )
                entries.extend(_row_to_entry(row) for row in cursor)
        except (sqlite3.Error, ValueError) as e:
            raise StoreError(f"Failed to look up {len(pending)} entries: {e}") from e

        for entry in entries:
            self._tracked.append((entry, entry.to_dict()))
        return entries

    def create(self, representation: EntryRepresentation) -> Entry:
        """Stage a new entry built from a representation."""
        entry = Entry.from_representation(representation)
        self._tracked.append((entry, None))
        return entry

    def commit(self) -> int:
        """Write staged creates and changed entries in one transaction.

        Returns:
            Number of rows inserted or updated.

        Raises:
            CommitError: If the transaction fails. Staged changes are
                discarded either way.
        """
        conn = self._ensure_connected()
        tracked, self._tracked = self._tracked, []

        inserted: list[tuple[Entry, int]] = []
        written = 0
        try:
            with conn:
                for entry, snapshot in tracked:
                    if snapshot is None:
                        cursor = conn.execute(
                            """
                            INSERT INTO entries (
                                identifier, title, body_text, timestamp, mood
                            ) VALUES (?, ?, ?, ?, ?)
                            """,
                            _entry_params(entry),
                        )
                        inserted.append((entry, cursor.lastrowid))
                        written += 1
                    elif entry.to_dict() != snapshot:
                        conn.execute(
                            """
                            UPDATE entries
                            SET identifier = ?, title = ?, body_text = ?,
                                timestamp = ?, mood = ?,
                                updated_at = CURRENT_TIMESTAMP
                            WHERE id = ?
                            """,
                            (*_entry_params(entry), entry.pk),
                        )
                        written += 1
        except sqlite3.Error as e:
            raise CommitError(f"Failed to commit {len(tracked)} entries: {e}") from e

        for entry, pk in inserted:
            entry.pk = pk

        logger.debug(f"Committed {written} entries ({len(inserted)} new)")
        return written

    def rollback(self) -> None:
        """Discard staged changes without writing them."""
        self._tracked.clear()

    # ==================== Entry operations ====================

    def get(self, identifier: str) -> Entry | None:
        """Get an entry by identifier."""
        conn = self._ensure_connected()
        row = conn.execute(
            f"SELECT {_COLUMNS} FROM entries WHERE identifier = ?",
            (identifier,),
        ).fetchone()
        return _row_to_entry(row) if row else None

    def list_entries(self, limit: int | None = None) -> list[Entry]:
        """List entries, newest first.

        Args:
            limit: Maximum entries to return (None for all).
        """
        conn = self._ensure_connected()
        cursor = conn.execute(
            f"""
            SELECT {_COLUMNS} FROM entries
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
            """,
            (limit if limit is not None else -1,),
        )
        return [_row_to_entry(row) for row in cursor]

    def save(self, entry: Entry) -> Entry:
        """Insert or update a single entry immediately.

        Returns:
            The entry, with ``pk`` set.
        """
        conn = self._ensure_connected()

        if entry.pk is None and entry.identifier:
            existing = self.get(entry.identifier)
            if existing:
                entry.pk = existing.pk

        try:
            with conn:
                if entry.pk is None:
                    cursor = conn.execute(
                        """
                        INSERT INTO entries (
                            identifier, title, body_text, timestamp, mood
                        ) VALUES (?, ?, ?, ?, ?)
                        """,
                        _entry_params(entry),
                    )
                    entry.pk = cursor.lastrowid
                else:
                    conn.execute(
                        """
                        UPDATE entries
                        SET identifier = ?, title = ?, body_text = ?,
                            timestamp = ?, mood = ?,
                            updated_at = CURRENT_TIMESTAMP
                        WHERE id = ?
                        """,
                        (*_entry_params(entry), entry.pk),
                    )
        except sqlite3.Error as e:
            raise CommitError(f"Failed to save entry {entry.identifier}: {e}") from e

        return entry

    def remove(self, identifier: str) -> bool:
        """Delete an entry locally.

        Returns:
            True if a row was deleted.
        """
        conn = self._ensure_connected()
        with conn:
            cursor = conn.execute(
                "DELETE FROM entries WHERE identifier = ?", (identifier,)
            )
        return cursor.rowcount > 0

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        conn = self._ensure_connected()

        stats: dict[str, Any] = {"db_path": str(self.db_path)}

        cursor = conn.execute("SELECT COUNT(*) FROM entries")
        stats["entries_count"] = cursor.fetchone()[0]

        cursor = conn.execute("SELECT mood, COUNT(*) FROM entries GROUP BY mood")
        stats["entries_by_mood"] = {row[0]: row[1] for row in cursor}

        if not self._in_memory and self.db_path.exists():
            stats["db_size_mb"] = round(self.db_path.stat().st_size / (1024 * 1024), 2)

        return stats
