"""Release schemas parsed from DDEX deliveries.

A delivery document describes one or more releases. Each release carries its
industry identifiers, descriptive metadata, the sound recordings and images
it bundles, and the commercial deals that make it publishable. The models
here are the normalized shape shared by every DDEX schema generation.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

# ReleaseIds fields in the order they are read from ReleaseId elements.
RELEASE_ID_TAGS: dict[str, str] = {
    "party_id": "PartyId",
    "catalog_number": "CatalogNumber",
    "icpn": "ICPN",
    "grid": "GRid",
    "isan": "ISAN",
    "isbn": "ISBN",
    "ismn": "ISMN",
    "isrc": "ISRC",
    "issn": "ISSN",
    "istc": "ISTC",
    "iswc": "ISWC",
    "mwli": "MWLI",
    "sici": "SICI",
    "proprietary_id": "ProprietaryId",
}


class ReleaseIds(BaseModel):
    """External identifiers for a release. All are optional."""

    party_id: str | None = None
    catalog_number: str | None = None
    icpn: str | None = None
    grid: str | None = None
    isan: str | None = None
    isbn: str | None = None
    ismn: str | None = None
    isrc: str | None = None
    issn: str | None = None
    istc: str | None = None
    iswc: str | None = None
    mwli: str | None = None
    sici: str | None = None
    proprietary_id: str | None = None


class Contributor(BaseModel):
    """A named party with a free-text role (e.g. MainArtist, Composer)."""

    name: str
    role: str = ""


class CopyrightLine(BaseModel):
    """A C-line or P-line pair."""

    text: str
    year: str


class RightsController(BaseModel):
    """Rights controller declared on a sound recording."""

    name: str = ""
    roles: list[str] = []


class Resource(BaseModel):
    """A file referenced by a delivery.

    Attributes:
        ref: Resource reference local to the delivery document (e.g. "A1")
        file_path: Directory portion of the file location, relative to the XML
        file_name: File name of the resource
    """

    ref: str
    file_path: str = ""
    file_name: str = ""


class Image(Resource):
    """Cover art or other image resource."""

    pass


class SoundRecording(Resource):
    """An audio resource with its recording-level metadata."""

    isrc: str | None = None
    title: str = ""
    sub_title: str = ""
    release_date: str = ""
    genre: str = ""
    sub_genre: str = ""
    audius_genre: str | None = None
    duration: int | None = None
    preview_start_seconds: float | None = None
    rights_controller: RightsController | None = None

    artists: list[Contributor] = []
    contributors: list[Contributor] = []
    indirect_contributors: list[Contributor] = []
    label_name: str = ""
    copyright_line: CopyrightLine | None = None
    producer_copyright_line: CopyrightLine | None = None
    parental_warning_type: str = ""


class DealBase(BaseModel):
    """Fields shared by every supported deal.

    Attributes:
        validity_start_date: Start of the validity window as delivered
        validity_end_date: End of the validity window as delivered, if any
        for_stream: Deal grants on-demand streaming
        for_download: Deal grants permanent download
    """

    validity_start_date: str = ""
    validity_end_date: str = ""
    for_stream: bool = False
    for_download: bool = False


class FreeDeal(DealBase):
    deal_type: Literal["Free"] = "Free"


class PayGatedDeal(DealBase):
    deal_type: Literal["PayGated"] = "PayGated"
    price_usd: float | None = None


class FollowGatedDeal(DealBase):
    deal_type: Literal["FollowGated"] = "FollowGated"


class TipGatedDeal(DealBase):
    deal_type: Literal["TipGated"] = "TipGated"


class NFTGatedDeal(DealBase):
    """Access gated on holding a token from a collection on eth or sol."""

    deal_type: Literal["NFTGated"] = "NFTGated"
    chain: Literal["eth", "sol"]
    address: str
    name: str = ""
    image_url: str = ""
    external_link: str = ""
    standard: str | None = None
    slug: str | None = None


Deal = Annotated[
    FreeDeal | PayGatedDeal | FollowGatedDeal | TipGatedDeal | NFTGatedDeal,
    Field(discriminator="deal_type"),
]


class Release(BaseModel):
    """A normalized release parsed from a NewReleaseMessage.

    Attributes:
        ref: Release reference local to the delivery document (e.g. "R0")
        release_ids: External identifiers; the catalog key is chosen from these
        audius_genre: Catalog genre resolved from genre / sub_genre, if any
        audius_user: Publishing identity matched from the artist names, if any
        is_main_release: Whether the document marks this as the main release
        problems: Structural defects that block publishing (NoDeal, NoImage, ...)
    """

    ref: str = ""
    title: str = ""
    sub_title: str = ""
    genre: str = ""
    sub_genre: str = ""
    audius_genre: str | None = None
    release_date: str = ""
    release_type: str = ""
    release_ids: ReleaseIds = Field(default_factory=ReleaseIds)

    is_main_release: bool = False
    audius_user: str | None = None

    problems: list[str] = []
    sound_recordings: list[SoundRecording] = []
    images: list[Image] = []
    deals: list[Deal] = []

    artists: list[Contributor] = []
    contributors: list[Contributor] = []
    indirect_contributors: list[Contributor] = []
    label_name: str = ""
    copyright_line: CopyrightLine | None = None
    producer_copyright_line: CopyrightLine | None = None
    parental_warning_type: str = ""


class PurgeRelease(BaseModel):
    """Identifiers of a release withdrawn by a PurgeReleaseMessage."""

    release_ids: ReleaseIds
