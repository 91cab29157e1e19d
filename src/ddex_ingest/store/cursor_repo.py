"""Durable per-bucket listing cursors for the poller."""

import logging

from .database import Database, utc_now

logger = logging.getLogger(__name__)


class CursorRepo:
    def __init__(self, db: Database):
        self.db = db

    def get(self, bucket: str) -> str:
        """Return the last fully processed key for a bucket, or ''."""
        row = self.db.query_one("SELECT marker FROM cursors WHERE bucket = ?", (bucket,))
        return row["marker"] if row else ""

    def upsert(self, bucket: str, marker: str) -> None:
        self.db.execute(
            """
            INSERT INTO cursors (bucket, marker, updated_at) VALUES (?, ?, ?)
            ON CONFLICT (bucket) DO UPDATE SET
                marker = excluded.marker,
                updated_at = excluded.updated_at
            """,
            (bucket, marker, utc_now()),
        )
        logger.info(f"Cursor for {bucket} advanced to {marker}")
