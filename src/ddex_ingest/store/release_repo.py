"""Release catalog: reconciliation of parsed releases with what is on file.

Every parsed release is merged into a row keyed by its preferred industry
identifier. The merge decides whether the incoming version creates,
replaces, supersedes or takes down the stored release:

1. Choose the key (ISRC, then ICPN, then GRid); none is a hard error
2. Drop TrackRelease entries; tracks live inside their parent release
3. Drop versions older than the stored one (out-of-order delivery)
4. Derive status: Blocked with problems, else PublishPending; a published
   release that loses all deals becomes DeletePending
5. Remember asset locations before the release itself is written
6. Write the row, keeping publish coordinates and counters intact
"""

import json
import logging
import sqlite3

from ddex_ingest.exceptions import NoIdentifierError
from schemas.release import Release, ReleaseIds
from schemas.rows import AssetRow, ReleaseRow, ReleaseStatus

from .asset_repo import AssetRepo
from .database import Database, utc_now

logger = logging.getLogger(__name__)

# Rows that failed to publish this many times are left for manual intervention.
PUBLISH_RETRY_LIMIT = 5

PENDING_PUBLISH_STATUSES = (
    ReleaseStatus.PUBLISH_PENDING,
    ReleaseStatus.FAILED,
    ReleaseStatus.DELETE_PENDING,
)

UPDATABLE_COLUMNS = {
    "status",
    "source",
    "xml_url",
    "message_timestamp",
    "entity_type",
    "entity_id",
    "block_hash",
    "block_number",
    "published_at",
    "publish_error_count",
    "last_publish_error",
    "num_cleared",
    "num_not_cleared",
    "prepend_artist",
}

SEARCH_FIELDS = (
    "$.artists",
    "$.contributors",
    "$.indirect_contributors",
    "$.title",
    "$.label_name",
    "$.genre",
    "$.sub_genre",
)


def _to_row(row: sqlite3.Row) -> ReleaseRow:
    data = dict(row)
    payload = data.pop("release")
    data["release"] = Release.model_validate_json(payload) if payload else None
    data["prepend_artist"] = bool(data.get("prepend_artist"))
    return ReleaseRow(**data)


class ReleaseRepo:
    """Reads and reconciles release rows.

    Attributes:
        db: Catalog database
        assets: Asset side table written during upsert
    """

    def __init__(self, db: Database, assets: AssetRepo | None = None):
        self.db = db
        self.assets = assets or AssetRepo(db)

    @staticmethod
    def choose_key(release_ids: ReleaseIds) -> str:
        """Pick the catalog key from a release's identifiers.

        Raises:
            NoIdentifierError: If none of ISRC, ICPN or GRid is present
        """
        key = release_ids.isrc or release_ids.icpn or release_ids.grid
        if not key:
            ids = release_ids.model_dump(exclude_none=True)
            raise NoIdentifierError(
                f"No ISRC, ICPN or GRid to key release: {json.dumps(ids)}",
                release_ids=ids,
            )
        return key

    def upsert(
        self, source: str, xml_url: str, message_timestamp: str, release: Release
    ) -> ReleaseRow | None:
        """Merge a parsed release into the catalog.

        Args:
            source: Delivering source
            xml_url: Document the release was parsed from
            message_timestamp: MessageCreatedDateTime of that document
            release: Parsed release

        Returns:
            The stored row, or None if the release was skipped

        Raises:
            NoIdentifierError: If the release has no key-eligible identifier
        """
        key = self.choose_key(release.release_ids)

        if release.release_type == "TrackRelease":
            logger.debug(f"Skipping TrackRelease {key} from {xml_url}")
            return None

        with self.db.transaction():
            prior = self.get(key)

            if prior and (prior.message_timestamp or "") > message_timestamp:
                logger.warning(
                    f"Skipping stale {key} from {xml_url}: "
                    f"{message_timestamp} is older than {prior.message_timestamp}"
                )
                return None

            status = ReleaseStatus.BLOCKED if release.problems else ReleaseStatus.PUBLISH_PENDING
            if prior and prior.entity_id and not release.deals:
                logger.info(f"Release {key} lost all deals, marking for takedown")
                status = ReleaseStatus.DELETE_PENDING

            for resource in [*release.sound_recordings, *release.images]:
                if resource.ref and resource.file_path and resource.file_name:
                    self.assets.upsert(
                        AssetRow(
                            source=source,
                            release_id=key,
                            ref=resource.ref,
                            xml_url=xml_url,
                            file_path=resource.file_path,
                            file_name=resource.file_name,
                        )
                    )

            now = utc_now()
            self.db.execute(
                """
                INSERT INTO releases (
                    key, source, status, xml_url, message_timestamp, release,
                    release_type, release_date, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (key) DO UPDATE SET
                    source = excluded.source,
                    status = excluded.status,
                    xml_url = excluded.xml_url,
                    message_timestamp = excluded.message_timestamp,
                    release = excluded.release,
                    release_type = excluded.release_type,
                    release_date = excluded.release_date,
                    updated_at = excluded.updated_at
                """,
                (
                    key,
                    source,
                    status.value,
                    xml_url,
                    message_timestamp,
                    release.model_dump_json(),
                    release.release_type or None,
                    release.release_date or None,
                    now,
                    now,
                ),
            )

        logger.info(f"Upserted release {key} ({status.value}) from {xml_url}")
        return self.get(key)

    def mark_for_delete(
        self, source: str, xml_url: str, message_timestamp: str, release_ids: ReleaseIds
    ) -> ReleaseRow | None:
        """Mark the release a purge message names as DeletePending.

        Returns:
            The updated row, or None if the release was never ingested

        Raises:
            NoIdentifierError: If the purge names no key-eligible identifier
        """
        key = self.choose_key(release_ids)
        with self.db.transaction():
            if self.get(key) is None:
                logger.warning(f"Got purge for {key} from {xml_url} but no release is on file")
                return None

            self.update(
                key,
                status=ReleaseStatus.DELETE_PENDING,
                source=source,
                xml_url=xml_url,
                message_timestamp=message_timestamp,
            )

        logger.info(f"Marked release {key} for delete from {xml_url}")
        return self.get(key)

    def get(self, key: str) -> ReleaseRow | None:
        row = self.db.query_one("SELECT * FROM releases WHERE key = ?", (key,))
        return _to_row(row) if row else None

    def all(
        self,
        pending_publish: bool = False,
        status: ReleaseStatus | str | None = None,
        source: str | None = None,
        label_name: str | None = None,
        genre: str | None = None,
        search: str | None = None,
        cleared: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[ReleaseRow]:
        """List releases matching every given filter, newest message first.

        Args:
            pending_publish: Only rows the publisher should act on
            status: Only rows with this status
            source: Only rows from this source
            label_name: Only releases on this label
            genre: Only releases with this delivered genre
            search: Case-insensitive substring over names, title, label, genre and source
            cleared: Only releases with at least one cleared recording
            limit: Maximum rows returned
            offset: Rows skipped before the first returned
        """
        clauses = []
        params: list = []

        if pending_publish:
            placeholders = ", ".join("?" for _ in PENDING_PUBLISH_STATUSES)
            clauses.append(f"status IN ({placeholders}) AND publish_error_count < ?")
            params.extend(s.value for s in PENDING_PUBLISH_STATUSES)
            params.append(PUBLISH_RETRY_LIMIT)

        if status:
            clauses.append("status = ?")
            params.append(ReleaseStatus(status).value)

        if source:
            clauses.append("source = ?")
            params.append(source)

        if label_name:
            clauses.append("json_extract(release, '$.label_name') = ?")
            params.append(label_name)

        if genre:
            clauses.append("json_extract(release, '$.genre') = ?")
            params.append(genre)

        if search:
            matches = [f"json_extract(release, '{field}') LIKE ?" for field in SEARCH_FIELDS]
            matches.append("source LIKE ?")
            clauses.append(f"({' OR '.join(matches)})")
            params.extend([f"%{search}%"] * len(matches))

        if cleared:
            clauses.append("num_cleared > 0")

        sql = "SELECT * FROM releases"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY message_timestamp DESC"
        if limit is not None or offset is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit if limit is not None else -1, offset or 0])

        return [_to_row(row) for row in self.db.query(sql, tuple(params))]

    def update(self, key: str, **changes) -> None:
        """Apply a partial update reported back by the publisher.

        Raises:
            ValueError: If a change names a column that cannot be updated
        """
        unknown = set(changes) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update release columns: {sorted(unknown)}")
        if not changes:
            return

        values = {
            column: value.value if isinstance(value, ReleaseStatus) else value
            for column, value in changes.items()
        }
        assignments = ", ".join(f"{column} = :{column}" for column in values)
        self.db.execute(
            f"UPDATE releases SET {assignments}, updated_at = :updated_at WHERE key = :key",
            {**values, "updated_at": utc_now(), "key": key},
        )

    def add_publish_error(self, key: str, error: Exception | str) -> None:
        """Record a failed publish attempt and move the row to Failed."""
        self.db.execute(
            """
            UPDATE releases SET
                status = ?,
                last_publish_error = ?,
                publish_error_count = publish_error_count + 1,
                updated_at = ?
            WHERE key = ?
            """,
            (ReleaseStatus.FAILED.value, str(error), utc_now(), key),
        )
        logger.error(f"Publish failed for {key}: {error}")

    def mark_prepend_artist(self, key: str, prepend_artist: bool) -> None:
        self.update(key, prepend_artist=prepend_artist)

    def stats(self) -> dict[str, int]:
        """Release counts per source."""
        rows = self.db.query("SELECT source, COUNT(*) AS count FROM releases GROUP BY source")
        return {row["source"]: row["count"] for row in rows}
