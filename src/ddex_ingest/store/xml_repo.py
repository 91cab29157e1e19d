"""Record of every delivery document that has been seen."""

from schemas.rows import XmlRow

from .database import Database, utc_now


class XmlRepo:
    def __init__(self, db: Database):
        self.db = db

    def upsert(self, source: str, xml_url: str, message_timestamp: str) -> None:
        """Record a document; re-recording refreshes its source and timestamp."""
        self.db.execute(
            """
            INSERT INTO xmls (xml_url, source, message_timestamp, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (xml_url) DO UPDATE SET
                source = excluded.source,
                message_timestamp = excluded.message_timestamp
            """,
            (xml_url, source, message_timestamp, utc_now()),
        )

    def get(self, xml_url: str) -> XmlRow | None:
        row = self.db.query_one("SELECT * FROM xmls WHERE xml_url = ?", (xml_url,))
        return XmlRow(**dict(row)) if row else None

    def all(self, cursor: str = "", limit: int = 1000) -> list[XmlRow]:
        """Page through documents in url order, starting after cursor."""
        rows = self.db.query(
            "SELECT * FROM xmls WHERE xml_url > ? ORDER BY xml_url LIMIT ?",
            (cursor, limit),
        )
        return [XmlRow(**dict(row)) for row in rows]

    def find(self, query: str = "", limit: int = 500) -> list[XmlRow]:
        """Documents whose url contains query, newest message first."""
        rows = self.db.query(
            """
            SELECT * FROM xmls
            WHERE xml_url LIKE '%' || ? || '%'
            ORDER BY message_timestamp DESC
            LIMIT ?
            """,
            (query, limit),
        )
        return [XmlRow(**dict(row)) for row in rows]
