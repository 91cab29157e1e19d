"""Rights-clearance verdicts recorded from the external clearance feed."""

import logging

from schemas.rows import ClearanceRow

from .database import Database, utc_now

logger = logging.getLogger(__name__)


class ClearanceRepo:
    def __init__(self, db: Database):
        self.db = db

    def upsert(self, row: ClearanceRow) -> None:
        self.db.execute(
            """
            INSERT INTO clearance (release_id, track_id, is_matched, is_cleared)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (release_id, track_id) DO UPDATE SET
                is_matched = excluded.is_matched,
                is_cleared = excluded.is_cleared
            """,
            (row.release_id, row.track_id, row.is_matched, row.is_cleared),
        )

    def list_for_release(self, release_id: str) -> dict[str, bool | None]:
        """Map each track id of a release to its cleared verdict."""
        rows = self.db.query(
            "SELECT track_id, is_cleared FROM clearance WHERE release_id = ?", (release_id,)
        )
        return {
            row["track_id"]: None if row["is_cleared"] is None else bool(row["is_cleared"])
            for row in rows
        }

    def update_counts(self) -> int:
        """Roll verdicts up into num_cleared / num_not_cleared on each release.

        Returns:
            Number of release rows updated
        """
        cursor = self.db.execute(
            """
            UPDATE releases
            SET num_cleared = counts.cleared,
                num_not_cleared = counts.not_cleared
            FROM (
                SELECT
                    release_id,
                    SUM(CASE WHEN is_cleared = 1 THEN 1 ELSE 0 END) AS cleared,
                    SUM(CASE WHEN is_cleared = 0 THEN 1 ELSE 0 END) AS not_cleared
                FROM clearance
                GROUP BY release_id
            ) AS counts
            WHERE releases.key = counts.release_id
            """
        )
        logger.info(f"Updated clearance counts on {cursor.rowcount} releases")
        return cursor.rowcount

    def is_feed_done(self, name: str) -> bool:
        row = self.db.query_one("SELECT 1 FROM clearance_feeds WHERE name = ?", (name,))
        return row is not None

    def mark_feed_done(self, name: str) -> None:
        self.db.execute(
            "INSERT INTO clearance_feeds (name, created_at) VALUES (?, ?) ON CONFLICT DO NOTHING",
            (name, utc_now()),
        )
