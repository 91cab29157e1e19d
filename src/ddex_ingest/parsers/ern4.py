"""Parser for ERN 4.x deliveries.

ERN 4 names every party once in a PartyList and refers to it by reference
from artists, contributors and labels. Files are located by URI and
resources are grouped under ResourceGroup trees inside each release.
"""

from collections.abc import Iterable

from lxml import etree

from schemas.delivery import SchemaGeneration
from schemas.release import Contributor, Release, Resource, RightsController, SoundRecording

from .parser import ReleaseParser, all_texts, first_text, role_text, split_uri

# Deals listing more territories than this are treated as worldwide.
WORLDWIDE_TERRITORY_COUNT = 100

PARTY_REFERENCE_TAGS = {
    "DisplayArtist": ("ArtistPartyReference", "DisplayArtistRole"),
    "Contributor": ("ContributorPartyReference", "Role"),
    "IndirectResourceContributor": ("IndirectResourceContributorPartyReference", "Role"),
}


def _title(el: etree._Element) -> tuple[str, str]:
    title = first_text(el, "DisplayTitle/TitleText") or first_text(el, ".//DisplayTitle/TitleText")
    sub_title = first_text(el, "DisplayTitle/SubTitle") or first_text(el, ".//DisplayTitle/SubTitle")
    return title or first_text(el, "DisplayTitleText"), sub_title


def _preview_start(value: str) -> float | None:
    """ClipDetails StartPoint is delivered in milliseconds."""
    try:
        return float(value) / 1000 if value else None
    except ValueError:
        return None


class ERN4Parser(ReleaseParser):
    """Reads ERN 4.x NewReleaseMessage documents."""

    generation = SchemaGeneration.ERN4

    def parse_parties(self, root: etree._Element) -> dict[str, str]:
        parties = {}
        for party in root.iterfind(".//PartyList/Party"):
            ref = first_text(party, "PartyReference")
            if ref:
                parties[ref] = first_text(party, "PartyName/FullName")
        return parties

    def deal_terms(
        self, root: etree._Element
    ) -> Iterable[tuple[list[str], etree._Element]]:
        for release_deal in root.iterfind(".//DealList/ReleaseDeal"):
            refs = all_texts(release_deal, "DealReleaseReference") or all_texts(
                release_deal, "ReleaseReference"
            )
            for terms in release_deal.iterfind("Deal/DealTerms"):
                yield refs, terms

    def is_worldwide(self, territories: list[str]) -> bool:
        return "Worldwide" in territories or len(territories) > WORLDWIDE_TERRITORY_COUNT

    def validity_window(self, terms: etree._Element) -> tuple[str, str]:
        return (
            first_text(terms, ".//ValidityPeriod/StartDateTime")
            or first_text(terms, ".//ValidityPeriod/StartDate"),
            first_text(terms, ".//ValidityPeriod/EndDateTime")
            or first_text(terms, ".//ValidityPeriod/EndDate"),
        )

    def use_types(self, terms: etree._Element) -> list[str]:
        return [role_text(el) for el in terms.iterfind(".//UseType")]

    def contributors(
        self, el: etree._Element, tag: str, parties: dict[str, str]
    ) -> list[Contributor]:
        ref_tag, role_tag = PARTY_REFERENCE_TAGS[tag]
        found = []
        for contributor in el.iterfind(f".//{tag}"):
            name = parties.get(first_text(contributor, ref_tag), "")
            if not name:
                continue
            found.append(Contributor(name=name, role=role_text(contributor.find(role_tag))))
        return found

    def parse_sound_recording(
        self, el: etree._Element, parties: dict[str, str]
    ) -> SoundRecording:
        title, sub_title = _title(el)
        uri = first_text(
            el, ".//SoundRecordingEdition/TechnicalDetails/DeliveryFile/File/URI"
        ) or first_text(el, ".//DeliveryFile/File/URI")
        file_path, file_name = split_uri(uri)
        rights = el.find(".//ResourceRightsController")

        return SoundRecording(
            ref=first_text(el, "ResourceReference"),
            isrc=(
                first_text(el, ".//SoundRecordingEdition/ResourceId/ISRC")
                or first_text(el, ".//ResourceId/ISRC")
                or None
            ),
            file_path=file_path,
            file_name=file_name,
            title=title,
            sub_title=sub_title,
            release_date=first_text(el, ".//FirstPublicationDate"),
            genre=first_text(el, ".//Genre/GenreText"),
            sub_genre=first_text(el, ".//Genre/SubGenre"),
            duration=self.duration(el),
            preview_start_seconds=_preview_start(
                first_text(el, ".//ClipDetails/Timing/StartPoint")
            ),
            rights_controller=(
                RightsController(
                    name=parties.get(first_text(rights, "RightsControllerPartyReference"), ""),
                    roles=all_texts(rights, "RightsControlType"),
                )
                if rights is not None
                else None
            ),
            artists=self.contributors(el, "DisplayArtist", parties),
            contributors=self.contributors(el, "Contributor", parties),
            indirect_contributors=self.contributors(el, "IndirectResourceContributor", parties),
            copyright_line=self.parse_copyright(el, "CLine"),
            producer_copyright_line=self.parse_copyright(el, "PLine"),
            parental_warning_type=first_text(el, ".//ParentalWarningType"),
        )

    def parse_resource(self, el: etree._Element) -> Resource:
        uri = first_text(el, ".//TechnicalDetails/File/URI") or first_text(el, ".//File/URI")
        file_path, file_name = split_uri(uri)
        return Resource(
            ref=first_text(el, "ResourceReference"),
            file_path=file_path,
            file_name=file_name,
        )

    def release_elements(self, root: etree._Element) -> Iterable[etree._Element]:
        return root.iterfind(".//ReleaseList/Release")

    def parse_release(self, el: etree._Element, parties: dict[str, str]) -> Release:
        title, sub_title = _title(el)
        label_ref = first_text(el, "ReleaseLabelReference")

        return Release(
            ref=first_text(el, "ReleaseReference"),
            title=title,
            sub_title=sub_title,
            genre=first_text(el, "Genre/GenreText") or first_text(el, ".//Genre/GenreText"),
            sub_genre=first_text(el, "Genre/SubGenre"),
            release_date=first_text(el, ".//OriginalReleaseDate"),
            release_type=first_text(el, "ReleaseType"),
            is_main_release=el.get("IsMainRelease") == "true",
            artists=self.contributors(el, "DisplayArtist", parties),
            contributors=self.contributors(el, "Contributor", parties),
            label_name=parties.get(label_ref, ""),
            copyright_line=self.parse_copyright(el, "CLine"),
            producer_copyright_line=self.parse_copyright(el, "PLine"),
            parental_warning_type=first_text(el, ".//ParentalWarningType"),
        )

    def resource_refs(self, el: etree._Element) -> list[str]:
        found = el.xpath(
            ".//ResourceGroup//ReleaseResourceReference"
            " | .//LinkedReleaseResourceReference"
        )
        return list(dict.fromkeys((ref.text or "").strip() for ref in found if ref.text))
