"""Tests for release reconciliation in the catalog."""

from unittest.mock import patch

import pytest

from ddex_ingest.exceptions import NoIdentifierError
from ddex_ingest.store import PUBLISH_RETRY_LIMIT, ReleaseRepo
from schemas.release import FreeDeal, Image, Release, ReleaseIds, SoundRecording
from schemas.rows import ReleaseStatus


def make_release(ids=None, problems=None, deals=None, release_type="Album", title="Test Release", **kwargs):
    return Release(
        ref="R0",
        title=title,
        release_type=release_type,
        release_ids=ReleaseIds(**(ids if ids is not None else {"isrc": "US1234567890"})),
        problems=problems or [],
        deals=[FreeDeal(for_stream=True, validity_start_date="2020-01-01")] if deals is None else deals,
        sound_recordings=[
            SoundRecording(ref="A1", file_path="resources/", file_name="track1.flac", isrc="US1234567890")
        ],
        images=[Image(ref="A2", file_path="resources/", file_name="cover.jpg")],
        **kwargs,
    )


class TestChooseKey:
    """Tests for key precedence."""

    def test_isrc_preferred(self):
        ids = ReleaseIds(isrc="US1234567890", icpn="0123456789012", grid="A1X")

        assert ReleaseRepo.choose_key(ids) == "US1234567890"

    def test_icpn_before_grid(self):
        ids = ReleaseIds(icpn="0123456789012", grid="A1X")

        assert ReleaseRepo.choose_key(ids) == "0123456789012"

    def test_grid_last(self):
        assert ReleaseRepo.choose_key(ReleaseIds(grid="A1X", catalog_number="CAT")) == "A1X"

    def test_no_eligible_identifier(self):
        """Catalog numbers and proprietary ids are not key-eligible."""
        ids = ReleaseIds(catalog_number="CAT-1", proprietary_id="P-1")

        with pytest.raises(NoIdentifierError) as exc_info:
            ReleaseRepo.choose_key(ids)

        assert exc_info.value.release_ids == {"catalog_number": "CAT-1", "proprietary_id": "P-1"}


class TestUpsert:
    """Tests for creating and replacing releases."""

    def test_creates_publish_pending_row(self, catalog):
        row = catalog.releases.upsert("sme", "s3://b/1.xml", "2024-01-01T00:00:00Z", make_release())

        assert row.key == "US1234567890"
        assert row.status == ReleaseStatus.PUBLISH_PENDING
        assert row.source == "sme"
        assert row.xml_url == "s3://b/1.xml"
        assert row.message_timestamp == "2024-01-01T00:00:00Z"
        assert row.release.title == "Test Release"
        assert row.release_type == "Album"
        assert row.publish_error_count == 0

    def test_problems_block(self, catalog):
        row = catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release(problems=["NoImage"]))

        assert row.status == ReleaseStatus.BLOCKED

    def test_no_identifier_raises_and_writes_nothing(self, catalog):
        with pytest.raises(NoIdentifierError):
            catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"catalog_number": "C"}))

        assert catalog.releases.all() == []

    def test_track_release_skipped(self, catalog):
        result = catalog.releases.upsert(
            "sme", "1.xml", "2024-01-01", make_release(release_type="TrackRelease")
        )

        assert result is None
        assert catalog.releases.get("US1234567890") is None

    def test_newer_version_replaces(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release(title="Old"))
        row = catalog.releases.upsert("sme", "2.xml", "2024-02-01", make_release(title="New"))

        assert row.release.title == "New"
        assert row.xml_url == "2.xml"
        assert row.message_timestamp == "2024-02-01"

    def test_same_timestamp_replaces(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release(title="First"))
        row = catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release(title="Again"))

        assert row.release.title == "Again"

    def test_blocked_release_unblocked_by_fix(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release(problems=["NoDeal"]))
        row = catalog.releases.upsert("sme", "2.xml", "2024-02-01", make_release())

        assert row.status == ReleaseStatus.PUBLISH_PENDING


class TestStaleness:
    """Tests for out-of-order delivery."""

    def test_older_version_skipped(self, catalog, caplog):
        catalog.releases.upsert("sme", "2.xml", "2024-02-01", make_release(title="New"))

        result = catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release(title="Old"))

        assert result is None
        row = catalog.releases.get("US1234567890")
        assert row.release.title == "New"
        assert row.xml_url == "2.xml"
        assert "Skipping stale US1234567890" in caplog.text

    def test_order_independent_outcome(self, catalog):
        """Applying versions in either order ends with the newest."""
        releases = catalog.releases
        releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "A"}, title="Old"))
        releases.upsert("sme", "2.xml", "2024-02-01", make_release(ids={"isrc": "A"}, title="New"))
        releases.upsert("sme", "2.xml", "2024-02-01", make_release(ids={"isrc": "B"}, title="New"))
        releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "B"}, title="Old"))

        assert releases.get("A").release.title == releases.get("B").release.title == "New"

    def test_stale_version_does_not_touch_assets(self, catalog):
        catalog.releases.upsert("sme", "2.xml", "2024-02-01", make_release())
        stale = make_release()
        stale.images[0].file_name = "old_cover.jpg"

        catalog.releases.upsert("sme", "1.xml", "2024-01-01", stale)

        assert catalog.assets.get("sme", "US1234567890", "A2").file_name == "cover.jpg"


class TestTakedown:
    """Tests for takedown when a published release loses its deals."""

    def test_published_release_without_deals_delete_pending(self, catalog):
        releases = catalog.releases
        releases.upsert("sme", "1.xml", "2024-01-01", make_release())
        releases.update("US1234567890", status=ReleaseStatus.PUBLISHED, entity_type="track", entity_id="42")

        row = releases.upsert("sme", "2.xml", "2024-02-01", make_release(deals=[], problems=["NoDeal"]))

        assert row.status == ReleaseStatus.DELETE_PENDING
        assert row.entity_id == "42"

    def test_unpublished_release_without_deals_blocked(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release())

        row = catalog.releases.upsert("sme", "2.xml", "2024-02-01", make_release(deals=[], problems=["NoDeal"]))

        assert row.status == ReleaseStatus.BLOCKED

    def test_publish_coordinates_survive_update(self, catalog):
        releases = catalog.releases
        releases.upsert("sme", "1.xml", "2024-01-01", make_release())
        releases.update(
            "US1234567890",
            status=ReleaseStatus.PUBLISHED,
            entity_type="album",
            entity_id="7",
            block_hash="0xabc",
            block_number=100,
        )
        releases.add_publish_error("US1234567890", "timeout")

        row = releases.upsert("sme", "2.xml", "2024-02-01", make_release(title="Remaster"))

        assert row.status == ReleaseStatus.PUBLISH_PENDING
        assert row.entity_id == "7"
        assert row.block_number == 100
        assert row.publish_error_count == 1


class TestPurge:
    """Tests for mark_for_delete."""

    def test_marks_existing_release(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release())

        row = catalog.releases.mark_for_delete("sme", "p.xml", "2024-03-01", ReleaseIds(isrc="US1234567890"))

        assert row.status == ReleaseStatus.DELETE_PENDING
        assert row.xml_url == "p.xml"
        assert row.message_timestamp == "2024-03-01"
        assert row.release.title == "Test Release"

    def test_purge_runs_in_one_transaction(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release())

        with patch.object(catalog.db, "transaction", wraps=catalog.db.transaction) as mock_transaction:
            catalog.releases.mark_for_delete("sme", "p.xml", "2024-03-01", ReleaseIds(isrc="US1234567890"))

        mock_transaction.assert_called_once()
        assert catalog.db.conn.in_transaction is False

    def test_unknown_release(self, catalog, caplog):
        result = catalog.releases.mark_for_delete("sme", "p.xml", "2024-03-01", ReleaseIds(isrc="NOPE"))

        assert result is None
        assert "no release is on file" in caplog.text

    def test_no_identifier(self, catalog):
        with pytest.raises(NoIdentifierError):
            catalog.releases.mark_for_delete("sme", "p.xml", "2024-03-01", ReleaseIds(catalog_number="C"))


class TestAssets:
    """Tests for asset memory."""

    def test_assets_recorded(self, catalog):
        catalog.releases.upsert("sme", "s3://b/1.xml", "2024-01-01", make_release())

        assets = catalog.assets.for_release("US1234567890")

        assert [(a.ref, a.file_name) for a in assets] == [("A1", "track1.flac"), ("A2", "cover.jpg")]
        assert assets[0].xml_url == "s3://b/1.xml"
        assert assets[0].file_path == "resources/"

    def test_assets_survive_update_without_resources(self, catalog):
        """An update that omits resources keeps the remembered locations."""
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release())
        update = make_release()
        update.sound_recordings = []
        update.images = []

        catalog.releases.upsert("sme", "2.xml", "2024-02-01", update)

        asset = catalog.assets.get("sme", "US1234567890", "A1")
        assert asset.file_name == "track1.flac"
        assert asset.xml_url == "1.xml"

    def test_assets_overwritten_by_newer_location(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release())
        update = make_release()
        update.sound_recordings[0].file_name = "track1_v2.flac"

        catalog.releases.upsert("sme", "2.xml", "2024-02-01", update)

        assert catalog.assets.get("sme", "US1234567890", "A1").file_name == "track1_v2.flac"


class TestQueries:
    """Tests for listing, updating and publish bookkeeping."""

    def test_pending_publish_filter(self, catalog):
        releases = catalog.releases
        releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "PENDING"}))
        releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "BLOCKED"}, problems=["NoImage"]))
        releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "DONE"}))
        releases.update("DONE", status=ReleaseStatus.PUBLISHED)
        releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "GIVEUP"}))
        for _ in range(PUBLISH_RETRY_LIMIT):
            releases.add_publish_error("GIVEUP", "boom")

        keys = {row.key for row in releases.all(pending_publish=True)}

        assert keys == {"PENDING"}

    def test_add_publish_error(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release())

        catalog.releases.add_publish_error("US1234567890", RuntimeError("chain unavailable"))
        catalog.releases.add_publish_error("US1234567890", "still unavailable")

        row = catalog.releases.get("US1234567890")
        assert row.status == ReleaseStatus.FAILED
        assert row.publish_error_count == 2
        assert row.last_publish_error == "still unavailable"

    def test_failed_rows_are_pending(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release())
        catalog.releases.add_publish_error("US1234567890", "boom")

        assert [r.key for r in catalog.releases.all(pending_publish=True)] == ["US1234567890"]

    def test_newest_message_first(self, catalog):
        releases = catalog.releases
        releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "OLD"}))
        releases.upsert("sme", "2.xml", "2024-03-01", make_release(ids={"isrc": "NEW"}))
        releases.upsert("sme", "3.xml", "2024-02-01", make_release(ids={"isrc": "MID"}))

        assert [r.key for r in releases.all()] == ["NEW", "MID", "OLD"]
        assert [r.key for r in releases.all(limit=1, offset=1)] == ["MID"]

    def test_filters(self, catalog):
        releases = catalog.releases
        releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "A"}, label_name="Blue Note"))
        releases.upsert("indie", "2.xml", "2024-01-02", make_release(ids={"isrc": "B"}, title="Moonlight"))

        assert [r.key for r in releases.all(source="indie")] == ["B"]
        assert [r.key for r in releases.all(label_name="Blue Note")] == ["A"]
        assert [r.key for r in releases.all(search="moonlight")] == ["B"]
        assert [r.key for r in releases.all(status="PublishPending")] == ["B", "A"]

    def test_search_matches_artist_names(self, catalog):
        release = make_release(artists=[{"name": "Night Driver", "role": "MainArtist"}])
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", release)

        assert len(catalog.releases.all(search="night driver")) == 1
        assert catalog.releases.all(search="nobody") == []

    def test_update_rejects_unknown_columns(self, catalog):
        with pytest.raises(ValueError, match="release"):
            catalog.releases.update("US1234567890", release="{}")

    def test_mark_prepend_artist(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release())

        catalog.releases.mark_prepend_artist("US1234567890", True)

        assert catalog.releases.get("US1234567890").prepend_artist is True

    def test_stats(self, catalog):
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "A"}))
        catalog.releases.upsert("sme", "1.xml", "2024-01-01", make_release(ids={"isrc": "B"}))
        catalog.releases.upsert("indie", "2.xml", "2024-01-01", make_release(ids={"isrc": "C"}))

        assert catalog.releases.stats() == {"sme": 2, "indie": 1}
