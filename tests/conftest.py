"""Pytest fixtures for ddex-ingest tests."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from ddex_ingest.store import Catalog, Database

FIXTURES = Path(__file__).parent / "fixtures"

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)

ERN3_NAMESPACE = "http://ddex.net/xml/ern/383"


def ern3_sound_recording(
    ref="A1",
    isrc="US1234567890",
    title="Track One",
    genre="Electronic",
    sub_genre="",
    artist="Test Artist",
    file_path="resources/",
    file_name="track1.flac",
    duration="PT3M45S",
):
    sub_genre_xml = f"<SubGenre>{sub_genre}</SubGenre>" if sub_genre else ""
    return f"""
    <SoundRecording>
      <SoundRecordingType>MusicalWorkSoundRecording</SoundRecordingType>
      <SoundRecordingId><ISRC>{isrc}</ISRC></SoundRecordingId>
      <ResourceReference>{ref}</ResourceReference>
      <ReferenceTitle><TitleText>{title}</TitleText></ReferenceTitle>
      <Duration>{duration}</Duration>
      <SoundRecordingDetailsByTerritory>
        <TerritoryCode>Worldwide</TerritoryCode>
        <Title TitleType="DisplayTitle"><TitleText>{title}</TitleText></Title>
        <DisplayArtist>
          <PartyName><FullName>{artist}</FullName></PartyName>
          <ArtistRole>MainArtist</ArtistRole>
        </DisplayArtist>
        <ResourceContributor>
          <PartyName><FullName>Jane Producer</FullName></PartyName>
          <ResourceContributorRole>Producer</ResourceContributorRole>
        </ResourceContributor>
        <LabelName>Test Label</LabelName>
        <PLine><Year>2024</Year><PLineText>(P) 2024 Test Label</PLineText></PLine>
        <Genre><GenreText>{genre}</GenreText>{sub_genre_xml}</Genre>
        <ParentalWarningType>NotExplicit</ParentalWarningType>
        <TechnicalSoundRecordingDetails>
          <File><FileName>{file_name}</FileName><FilePath>{file_path}</FilePath></File>
        </TechnicalSoundRecordingDetails>
      </SoundRecordingDetailsByTerritory>
    </SoundRecording>"""


def ern3_image(ref="A2", file_path="resources/", file_name="cover.jpg"):
    return f"""
    <Image>
      <ImageType>FrontCoverImage</ImageType>
      <ResourceReference>{ref}</ResourceReference>
      <ImageDetailsByTerritory>
        <TerritoryCode>Worldwide</TerritoryCode>
        <TechnicalImageDetails>
          <File><FileName>{file_name}</FileName><FilePath>{file_path}</FilePath></File>
        </TechnicalImageDetails>
      </ImageDetailsByTerritory>
    </Image>"""


def ern3_release(
    ref="R0",
    ids=None,
    title="Test Release",
    release_type="Album",
    resource_refs=("A1", "A2"),
    main=True,
    genre="Electronic",
    artist="Test Artist",
    release_date="2024-01-01",
):
    ids = {"ISRC": "US1234567890"} if ids is None else ids
    id_xml = "".join(f"<{tag}>{value}</{tag}>" for tag, value in ids.items())
    refs_xml = "".join(
        f"<ReleaseResourceReference>{resource_ref}</ReleaseResourceReference>"
        for resource_ref in resource_refs
    )
    main_attr = ' IsMainRelease="true"' if main else ""
    return f"""
    <Release{main_attr}>
      <ReleaseId>{id_xml}</ReleaseId>
      <ReleaseReference>{ref}</ReleaseReference>
      <ReferenceTitle><TitleText>{title}</TitleText></ReferenceTitle>
      <ReleaseResourceReferenceList>{refs_xml}</ReleaseResourceReferenceList>
      <ReleaseType>{release_type}</ReleaseType>
      <ReleaseDetailsByTerritory>
        <TerritoryCode>Worldwide</TerritoryCode>
        <DisplayArtist>
          <PartyName><FullName>{artist}</FullName></PartyName>
          <ArtistRole>MainArtist</ArtistRole>
        </DisplayArtist>
        <LabelName>Test Label</LabelName>
        <Genre><GenreText>{genre}</GenreText></Genre>
        <ReleaseDate>{release_date}</ReleaseDate>
      </ReleaseDetailsByTerritory>
      <CLine><Year>2024</Year><CLineText>(C) 2024 Test Label</CLineText></CLine>
    </Release>"""


def ern3_deal(
    release_ref="R0",
    model="FreeOfChargeModel",
    use_types=("OnDemandStream",),
    territory="Worldwide",
    start="2020-01-01",
    end=None,
    extra="",
):
    uses = "".join(f"<UseType>{use}</UseType>" for use in use_types)
    end_xml = f"<EndDate>{end}</EndDate>" if end else ""
    return f"""
    <ReleaseDeal>
      <DealReleaseReference>{release_ref}</DealReleaseReference>
      <Deal>
        <DealTerms>
          <CommercialModelType>{model}</CommercialModelType>
          <Usage>{uses}</Usage>
          <TerritoryCode>{territory}</TerritoryCode>
          <ValidityPeriod><StartDate>{start}</StartDate>{end_xml}</ValidityPeriod>
          {extra}
        </DealTerms>
      </Deal>
    </ReleaseDeal>"""


def make_ern3(
    releases=None,
    resources=None,
    deals=None,
    message_timestamp="2024-01-01T00:00:00Z",
    message_id="MSG-1",
    update=False,
):
    """Assemble an ERN 3.8 NewReleaseMessage.

    Defaults to one release keyed by ISRC US1234567890 with one sound
    recording, one image and a free worldwide streaming deal.
    """
    releases = [ern3_release()] if releases is None else releases
    resources = [ern3_sound_recording(), ern3_image()] if resources is None else resources
    deals = [ern3_deal()] if deals is None else deals
    indicator = "UpdateMessage" if update else "OriginalMessage"
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<ern:NewReleaseMessage xmlns:ern="{ERN3_NAMESPACE}" MessageSchemaVersionId="ern/383">
  <MessageHeader>
    <MessageThreadId>{message_id}</MessageThreadId>
    <MessageId>{message_id}</MessageId>
    <MessageSender>
      <PartyId>PADPIDA0000000001X</PartyId>
      <PartyName><FullName>Test Distributor</FullName></PartyName>
    </MessageSender>
    <MessageCreatedDateTime>{message_timestamp}</MessageCreatedDateTime>
  </MessageHeader>
  <UpdateIndicator>{indicator}</UpdateIndicator>
  <ResourceList>{"".join(resources)}
  </ResourceList>
  <ReleaseList>{"".join(releases)}
  </ReleaseList>
  <DealList>{"".join(deals)}
  </DealList>
</ern:NewReleaseMessage>
""".encode()


def make_purge(ids=None, message_timestamp="2024-03-01T00:00:00Z", message_id="PURGE-1"):
    ids = {"ISRC": "US1234567890"} if ids is None else ids
    id_xml = "".join(f"<{tag}>{value}</{tag}>" for tag, value in ids.items())
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<ern:PurgeReleaseMessage xmlns:ern="{ERN3_NAMESPACE}" MessageSchemaVersionId="ern/383">
  <MessageHeader>
    <MessageId>{message_id}</MessageId>
    <MessageCreatedDateTime>{message_timestamp}</MessageCreatedDateTime>
  </MessageHeader>
  <PurgedRelease>
    <ReleaseId>{id_xml}</ReleaseId>
    <Title><TitleText>Test Release</TitleText></Title>
  </PurgedRelease>
</ern:PurgeReleaseMessage>
""".encode()


@pytest.fixture
def catalog():
    """In-memory catalog with every migration applied."""
    db = Database(":memory:")
    yield Catalog(db)
    db.close()


@pytest.fixture
def ern3_xml():
    return make_ern3()


@pytest.fixture
def ern4_xml():
    return (FIXTURES / "ern4_delivery.xml").read_bytes()


@pytest.fixture
def sources_file(tmp_path):
    """A sources.json with one acknowledging and one silent source."""
    path = tmp_path / "sources.json"
    path.write_text(json.dumps({
        "sources": [
            {
                "name": "sme",
                "ddex_key": "sme-key",
                "bucket": "sme-deliveries",
                "env": "staging",
                "send_acknowledgements": True,
                "acknowledgement": {
                    "base_url": "https://gateway.example.com",
                    "username": "ack-user",
                    "password": "ack-pass",
                    "sender_party_id": "PA-DPIDA-AUDIUS",
                    "sender_name": "Audius",
                },
            },
            {
                "name": "indie",
                "ddex_key": "indie-key",
                "bucket": "indie-deliveries",
            },
        ]
    }))
    return path
