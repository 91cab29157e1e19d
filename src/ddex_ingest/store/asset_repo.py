"""Asset side table: where each resource physically lived when last referenced."""

from schemas.rows import AssetRow

from .database import Database


class AssetRepo:
    """Asset locations keyed by (source, release_id, ref).

    Rows are only ever overwritten. Incremental updates may omit resource
    lists, and this table is then the only record of the original files.
    """

    def __init__(self, db: Database):
        self.db = db

    def upsert(self, asset: AssetRow) -> None:
        self.db.execute(
            """
            INSERT INTO assets (source, release_id, ref, xml_url, file_path, file_name)
            VALUES (:source, :release_id, :ref, :xml_url, :file_path, :file_name)
            ON CONFLICT (source, release_id, ref) DO UPDATE SET
                xml_url = excluded.xml_url,
                file_path = excluded.file_path,
                file_name = excluded.file_name
            """,
            asset.model_dump(),
        )

    def get(self, source: str, release_id: str, ref: str) -> AssetRow | None:
        row = self.db.query_one(
            "SELECT * FROM assets WHERE source = ? AND release_id = ? AND ref = ?",
            (source, release_id, ref),
        )
        return AssetRow(**dict(row)) if row else None

    def for_release(self, release_id: str) -> list[AssetRow]:
        rows = self.db.query(
            "SELECT * FROM assets WHERE release_id = ? ORDER BY ref", (release_id,)
        )
        return [AssetRow(**dict(row)) for row in rows]
