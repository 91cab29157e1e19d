"""Parser for ERN 3.x deliveries (e.g. ERN 3.8).

ERN 3 keeps most descriptive data inside *DetailsByTerritory blocks and
names parties inline (PartyName/FullName) rather than through a party list.
"""

from collections.abc import Iterable

from lxml import etree

from schemas.delivery import SchemaGeneration
from schemas.release import Contributor, Release, Resource, RightsController, SoundRecording

from .parser import ReleaseParser, all_texts, first_text, role_text

ROLE_TAGS = {
    "DisplayArtist": "ArtistRole",
    "ResourceContributor": "ResourceContributorRole",
    "IndirectResourceContributor": "IndirectResourceContributorRole",
}


def _genres(el: etree._Element) -> tuple[str, str]:
    """Genre and sub-genre; a second GenreText stands in for a missing SubGenre."""
    genres = [g for g in all_texts(el, ".//GenreText") if g]
    genre = genres[0] if genres else ""
    sub_genre = first_text(el, ".//SubGenre")
    if not sub_genre and len(genres) > 1:
        sub_genre = genres[1]
    return genre, sub_genre


class ERN3Parser(ReleaseParser):
    """Reads ERN 3.x NewReleaseMessage documents."""

    generation = SchemaGeneration.ERN3

    def parse_parties(self, root: etree._Element) -> dict[str, str]:
        parties = {}
        for party in root.iterfind(".//PartyList/Party"):
            ref = first_text(party, "PartyReference")
            if ref:
                parties[ref] = first_text(party, ".//PartyName/FullName")
        return parties

    def deal_terms(
        self, root: etree._Element
    ) -> Iterable[tuple[list[str], etree._Element]]:
        for release_deal in root.iterfind(".//DealList/ReleaseDeal"):
            refs = all_texts(release_deal, "DealReleaseReference")
            for terms in release_deal.iterfind(".//DealTerms"):
                yield refs, terms

    def validity_window(self, terms: etree._Element) -> tuple[str, str]:
        return (
            first_text(terms, ".//ValidityPeriod/StartDate"),
            first_text(terms, ".//ValidityPeriod/EndDate"),
        )

    def use_types(self, terms: etree._Element) -> list[str]:
        return [role_text(el) for el in terms.iterfind(".//Usage/UseType")]

    def contributors(
        self, el: etree._Element, tag: str, parties: dict[str, str]
    ) -> list[Contributor]:
        role_tag = ROLE_TAGS[tag]
        found = []
        for contributor in el.iterfind(f".//{tag}"):
            name = first_text(contributor, ".//FullName")
            if not name:
                continue
            found.append(Contributor(name=name, role=role_text(contributor.find(role_tag))))
        return found

    def parse_sound_recording(
        self, el: etree._Element, parties: dict[str, str]
    ) -> SoundRecording:
        genre, sub_genre = _genres(el)

        preview = first_text(el, ".//PreviewDetails/StartPoint")
        rights = el.find(".//RightsController")
        release_dates = el.xpath(".//OriginalResourceReleaseDate | .//ResourceReleaseDate")

        return SoundRecording(
            ref=first_text(el, "ResourceReference"),
            isrc=first_text(el, ".//ISRC") or None,
            file_path=first_text(el, ".//FilePath"),
            file_name=first_text(el, ".//FileName"),
            title=first_text(el, ".//TitleText"),
            sub_title=first_text(el, ".//SubTitle"),
            release_date=(release_dates[0].text or "").strip() if release_dates else "",
            genre=genre,
            sub_genre=sub_genre,
            duration=self.duration(el),
            preview_start_seconds=int(preview) if preview.isdigit() else None,
            rights_controller=(
                RightsController(
                    name=first_text(rights, ".//PartyName/FullName"),
                    roles=all_texts(rights, ".//RightsControllerRole"),
                )
                if rights is not None
                else None
            ),
            artists=self.contributors(el, "DisplayArtist", parties),
            contributors=self.contributors(el, "ResourceContributor", parties),
            indirect_contributors=self.contributors(el, "IndirectResourceContributor", parties),
            label_name=first_text(el, ".//LabelName"),
            copyright_line=self.parse_copyright(el, "CLine"),
            producer_copyright_line=self.parse_copyright(el, "PLine"),
            parental_warning_type=first_text(el, ".//ParentalWarningType"),
        )

    def parse_resource(self, el: etree._Element) -> Resource:
        return Resource(
            ref=first_text(el, "ResourceReference"),
            file_path=first_text(el, ".//FilePath"),
            file_name=first_text(el, ".//FileName"),
        )

    def release_elements(self, root: etree._Element) -> Iterable[etree._Element]:
        return root.iterfind(".//ReleaseList/Release")

    def parse_release(self, el: etree._Element, parties: dict[str, str]) -> Release:
        genre, sub_genre = _genres(el)
        release_date = (
            first_text(el, ".//ReleaseDate")
            or first_text(el, ".//GlobalOriginalReleaseDate")
            or first_text(el, ".//OriginalReleaseDate")
        )

        return Release(
            ref=first_text(el, "ReleaseReference"),
            title=first_text(el, ".//ReferenceTitle/TitleText"),
            sub_title=first_text(el, ".//ReferenceTitle/SubTitle"),
            genre=genre,
            sub_genre=sub_genre,
            release_date=release_date,
            release_type=first_text(el, ".//ReleaseType"),
            is_main_release=el.get("IsMainRelease") == "true",
            artists=self.contributors(el, "DisplayArtist", parties),
            contributors=self.contributors(el, "ResourceContributor", parties),
            indirect_contributors=self.contributors(el, "IndirectResourceContributor", parties),
            label_name=first_text(el, ".//LabelName"),
            copyright_line=self.parse_copyright(el, "CLine"),
            producer_copyright_line=self.parse_copyright(el, "PLine"),
            parental_warning_type=first_text(el, ".//ParentalWarningType"),
        )

    def resource_refs(self, el: etree._Element) -> list[str]:
        return all_texts(el, ".//ReleaseResourceReferenceList/ReleaseResourceReference")
