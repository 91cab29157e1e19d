"""Tests for schema definitions."""

import pytest
from pydantic import TypeAdapter, ValidationError

from schemas import (
    Deal,
    FreeDeal,
    Image,
    NFTGatedDeal,
    ParsedDelivery,
    PayGatedDeal,
    Release,
    ReleaseIds,
    ReleaseRow,
    ReleaseStatus,
    SoundRecording,
    SourceConfig,
)
from schemas.release import RELEASE_ID_TAGS


class TestReleaseIds:
    """Tests for ReleaseIds."""

    def test_all_optional(self):
        ids = ReleaseIds()

        assert ids.model_dump(exclude_none=True) == {}

    def test_every_field_has_a_tag(self):
        assert set(RELEASE_ID_TAGS) == set(ReleaseIds.model_fields)


class TestDeals:
    """Tests for the discriminated deal union."""

    def test_round_trips_through_json(self):
        release = Release(
            ref="R0",
            deals=[
                FreeDeal(for_stream=True),
                PayGatedDeal(for_download=True, price_usd=0.99),
                NFTGatedDeal(chain="sol", address="So1"),
            ],
        )

        restored = Release.model_validate_json(release.model_dump_json())

        assert [type(d) for d in restored.deals] == [FreeDeal, PayGatedDeal, NFTGatedDeal]
        assert restored.deals[1].price_usd == 0.99

    def test_unknown_deal_type_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(Deal).validate_python({"deal_type": "Subscription"})

    def test_nft_chain_restricted(self):
        with pytest.raises(ValidationError):
            NFTGatedDeal(chain="btc", address="x")


class TestRelease:
    """Tests for Release defaults."""

    def test_defaults(self):
        release = Release()

        assert release.problems == []
        assert release.deals == []
        assert release.release_ids == ReleaseIds()
        assert release.audius_genre is None

    def test_lists_not_shared(self):
        first = Release()
        second = Release()
        first.problems.append("NoDeal")

        assert second.problems == []

    def test_resources(self):
        recording = SoundRecording(ref="A1", file_name="a.flac", duration=180)
        image = Image(ref="A2", file_name="cover.jpg")

        assert recording.file_path == ""
        assert recording.artists == []
        assert image.file_name == "cover.jpg"


class TestRows:
    """Tests for persisted rows."""

    def test_release_row_defaults(self):
        row = ReleaseRow(source="sme", key="US1234567890", status=ReleaseStatus.BLOCKED)

        assert row.publish_error_count == 0
        assert row.prepend_artist is False
        assert row.entity_id is None

    def test_status_from_string(self):
        row = ReleaseRow(source="sme", key="k", status="DeletePending")

        assert row.status == ReleaseStatus.DELETE_PENDING

    def test_parsed_delivery_defaults(self):
        delivery = ParsedDelivery(source="sme", xml_url="x.xml", kind="PurgeReleaseMessage")

        assert delivery.releases == []
        assert delivery.purge is None


class TestSourceConfig:
    """Tests for source configuration."""

    def test_minimal(self):
        source = SourceConfig(name="sme")

        assert source.bucket is None
        assert source.send_acknowledgements is False
        assert source.acknowledgement is None

    def test_extra_keys_allowed(self):
        source = SourceConfig(name="sme", placementHosts="https://a.example.com")

        assert source.model_extra == {"placementHosts": "https://a.example.com"}

    def test_env_restricted(self):
        with pytest.raises(ValidationError):
            SourceConfig(name="sme", env="qa")
