"""SQLite connection, schema migrations and transactions for the catalog."""

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

# Applied in order; the index of each entry is recorded in the migrations table.
MIGRATIONS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS xmls (
        xml_url TEXT PRIMARY KEY,
        source TEXT NOT NULL,
        message_timestamp TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS releases (
        key TEXT PRIMARY KEY,
        source TEXT NOT NULL,
        status TEXT NOT NULL,
        xml_url TEXT,
        message_timestamp TEXT,
        release TEXT,
        release_type TEXT,
        release_date TEXT,
        entity_type TEXT,
        entity_id TEXT,
        block_hash TEXT,
        block_number INTEGER,
        published_at TEXT,
        publish_error_count INTEGER NOT NULL DEFAULT 0,
        last_publish_error TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_releases_status ON releases(status);
    CREATE INDEX IF NOT EXISTS idx_releases_source ON releases(source);
    CREATE INDEX IF NOT EXISTS idx_releases_message_timestamp ON releases(message_timestamp);

    CREATE TABLE IF NOT EXISTS assets (
        source TEXT NOT NULL,
        release_id TEXT NOT NULL,
        ref TEXT NOT NULL,
        xml_url TEXT NOT NULL,
        file_path TEXT NOT NULL,
        file_name TEXT NOT NULL,
        PRIMARY KEY (source, release_id, ref)
    );

    CREATE TABLE IF NOT EXISTS users (
        api_key TEXT NOT NULL,
        id TEXT NOT NULL,
        handle TEXT NOT NULL,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (api_key, id)
    );

    CREATE TABLE IF NOT EXISTS cursors (
        bucket TEXT PRIMARY KEY,
        marker TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    ALTER TABLE releases ADD COLUMN num_cleared INTEGER;
    ALTER TABLE releases ADD COLUMN num_not_cleared INTEGER;

    CREATE TABLE IF NOT EXISTS clearance (
        release_id TEXT NOT NULL,
        track_id TEXT NOT NULL,
        is_matched INTEGER,
        is_cleared INTEGER,
        PRIMARY KEY (release_id, track_id)
    );

    CREATE TABLE IF NOT EXISTS clearance_feeds (
        name TEXT PRIMARY KEY,
        created_at TEXT NOT NULL
    );
    """,
    """
    ALTER TABLE releases ADD COLUMN prepend_artist INTEGER NOT NULL DEFAULT 0;
    """,
]


def utc_now() -> str:
    """Current time as an ISO 8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class Database:
    """A single SQLite connection shared by the repositories.

    The connection runs in autocommit mode; writes that must be atomic are
    wrapped in transaction(). A reentrant lock serializes access so the
    poller's worker threads can share one Database.

    Attributes:
        path: Database file path, or ":memory:"
    """

    def __init__(self, path: Path | str = ":memory:"):
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self.conn = sqlite3.connect(self.path, check_same_thread=False, isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        if self.path != ":memory:":
            self.conn.execute("PRAGMA journal_mode = WAL")

        self.migrate()

    def migrate(self) -> int:
        """Apply pending migrations.

        Returns:
            Number of migrations applied
        """
        with self._lock:
            self.conn.execute(
                "CREATE TABLE IF NOT EXISTS migrations (id INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)"
            )
            applied = {row["id"] for row in self.conn.execute("SELECT id FROM migrations")}

            count = 0
            for index, script in enumerate(MIGRATIONS):
                if index in applied:
                    continue
                with self.transaction():
                    for statement in script.split(";"):
                        if statement.strip():
                            self.conn.execute(statement)
                    self.conn.execute(
                        "INSERT INTO migrations (id, applied_at) VALUES (?, ?)",
                        (index, utc_now()),
                    )
                count += 1

            if count:
                logger.info(f"Applied {count} migrations to {self.path}")
            return count

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements in one transaction.

        Nested calls join the outer transaction.
        """
        with self._lock:
            if self.conn.in_transaction:
                yield self.conn
                return

            self.conn.execute("BEGIN IMMEDIATE")
            try:
                yield self.conn
            except BaseException:
                self.conn.execute("ROLLBACK")
                raise
            self.conn.execute("COMMIT")

    def execute(self, sql: str, params: tuple | dict = ()) -> sqlite3.Cursor:
        with self._lock:
            return self.conn.execute(sql, params)

    def query(self, sql: str, params: tuple | dict = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, params).fetchall()

    def query_one(self, sql: str, params: tuple | dict = ()) -> sqlite3.Row | None:
        with self._lock:
            return self.conn.execute(sql, params).fetchone()

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
