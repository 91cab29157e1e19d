"""Base class for DDEX release parsers.

Each ERN schema generation lays out the same information differently. A
ReleaseParser subclass knows where one generation keeps parties, deals,
resources and releases; this base class turns those pieces into normalized
Release objects:

1. Build the party table (reference -> display name)
2. Parse deals per release reference, keeping worldwide deals whose validity
   window contains "now", then apply the download-implies-stream rule
3. Parse SoundRecording / Image / Text resources into ref-indexed maps
4. Assemble each Release: identifiers, genre, resources, deals, problems
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone

from lxml import etree

from ddex_ingest.parsers.genres import resolve_genre
from ddex_ingest.util import parse_duration
from schemas.delivery import SchemaGeneration
from schemas.release import (
    RELEASE_ID_TAGS,
    Contributor,
    CopyrightLine,
    Deal,
    FollowGatedDeal,
    FreeDeal,
    Image,
    NFTGatedDeal,
    PayGatedDeal,
    Release,
    ReleaseIds,
    Resource,
    SoundRecording,
    TipGatedDeal,
)

logger = logging.getLogger(__name__)

STREAM_USE_TYPES = {"OnDemandStream", "Stream"}
DOWNLOAD_USE_TYPES = {"PermanentDownload"}


def first_text(el: etree._Element, path: str) -> str:
    """Return the stripped text of the first element matching path, or ''."""
    found = el.find(path)
    if found is None or found.text is None:
        return ""
    return found.text.strip()


def all_texts(el: etree._Element, path: str) -> list[str]:
    """Return the stripped text of every element matching path."""
    return [(found.text or "").strip() for found in el.iterfind(path)]


def role_text(el: etree._Element | None) -> str:
    """Read a role element, preferring its UserDefinedValue attribute."""
    if el is None:
        return ""
    return el.get("UserDefinedValue") or (el.text or "").strip()


def split_uri(uri: str) -> tuple[str, str]:
    """Split a file URI into (directory with trailing slash, file name)."""
    index = uri.rfind("/")
    if index == -1:
        return "", uri
    return uri[: index + 1], uri[index + 1 :]


def parse_instant(value: str) -> datetime | None:
    """Parse an ISO date or date-time; naive values are taken as UTC.

    Returns None for empty or unparseable values, which callers treat as an
    unbounded end of a validity window.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.debug(f"Unparseable validity date: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_release_ids(el: etree._Element) -> ReleaseIds:
    """Read every identifier under the element's ReleaseId."""
    values = {}
    for field, tag in RELEASE_ID_TAGS.items():
        text = first_text(el, f".//ReleaseId/{tag}")
        if text:
            values[field] = text
    return ReleaseIds(**values)


def normalize_deals(deals_by_ref: dict[str, list[Deal]]) -> None:
    """Let a lone download right also grant streaming.

    The common pay-once delivery only declares PermanentDownload, but the
    catalog gates playback on a stream right. When a release has a download
    deal and no stream deal, the first download deal is promoted in place.
    """
    for deals in deals_by_ref.values():
        if any(d.for_stream for d in deals):
            continue
        download = next((d for d in deals if d.for_download), None)
        if download is not None:
            download.for_stream = True


class ReleaseParser(ABC):
    """Abstract base class for one ERN schema generation.

    Attributes:
        now: Instant deal validity windows are evaluated against
    """

    generation: SchemaGeneration

    def __init__(self, now: datetime | None = None):
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        self.now = now

    def parse_releases(self, root: etree._Element) -> list[Release]:
        """Parse every release in a NewReleaseMessage.

        Args:
            root: Namespace-stripped document root

        Returns:
            Releases in document order, before cross-release reconciliation
        """
        parties = self.parse_parties(root)
        deals_by_ref = self.parse_deals(root)

        sound_recordings: dict[str, SoundRecording] = {}
        for el in root.iterfind(".//ResourceList/SoundRecording"):
            recording = self.parse_sound_recording(el, parties)
            recording.audius_genre = self._genre_value(recording.genre, recording.sub_genre)
            sound_recordings[recording.ref] = recording

        images: dict[str, Image] = {}
        for el in root.iterfind(".//ResourceList/Image"):
            resource = self.parse_resource(el)
            images[resource.ref] = Image(**resource.model_dump())

        text_refs = {
            self.parse_resource(el).ref for el in root.iterfind(".//ResourceList/Text")
        }

        releases = []
        for el in self.release_elements(root):
            release = self.parse_release(el, parties)
            self._attach(release, el, deals_by_ref, sound_recordings, images, text_refs)
            releases.append(release)

        logger.debug(
            f"Parsed {len(releases)} releases, {len(sound_recordings)} recordings "
            f"and {len(images)} images ({self.generation.value})"
        )
        return releases

    def parse_deals(self, root: etree._Element) -> dict[str, list[Deal]]:
        """Parse applicable deals keyed by release reference."""
        deals_by_ref: dict[str, list[Deal]] = {}

        for refs, terms in self.deal_terms(root):
            territories = all_texts(terms, ".//TerritoryCode")
            if not self.is_worldwide(territories):
                continue

            start, end = self.validity_window(terms)
            if not self.is_active(start, end):
                continue

            deal = self.build_deal(terms, start, end)
            if deal is None:
                continue

            for ref in refs:
                # each release owns its own copy so normalization stays per release
                deals_by_ref.setdefault(ref, []).append(deal.model_copy())

        normalize_deals(deals_by_ref)
        return deals_by_ref

    def is_worldwide(self, territories: list[str]) -> bool:
        return "Worldwide" in territories

    def is_active(self, start: str, end: str) -> bool:
        """Whether now falls inside a validity window."""
        start_at = parse_instant(start)
        if start_at is not None and self.now < start_at:
            return False
        end_at = parse_instant(end)
        if end_at is not None and self.now > end_at:
            return False
        return True

    def build_deal(self, terms: etree._Element, start: str, end: str) -> Deal | None:
        """Build a supported deal from DealTerms, or None if unsupported."""
        model = role_text(terms.find(".//CommercialModelType"))
        use_types = set(self.use_types(terms))
        common = {
            "validity_start_date": start,
            "validity_end_date": end,
            "for_stream": bool(use_types & STREAM_USE_TYPES),
            "for_download": bool(use_types & DOWNLOAD_USE_TYPES),
        }

        if model == "FreeOfChargeModel":
            return FreeDeal(**common)

        if model == "PayAsYouGoModel":
            price = first_text(terms, ".//WholesalePricePerUnit[@CurrencyCode='USD']")
            try:
                price_usd = float(price) if price else None
            except ValueError:
                price_usd = None
            return PayGatedDeal(**common, price_usd=price_usd or None)

        if model == "FollowGated":
            return FollowGatedDeal(**common)

        if model == "TipGated":
            return TipGatedDeal(**common)

        if model == "NFTGated":
            chain = first_text(terms, ".//Chain")
            if chain not in ("eth", "sol"):
                logger.warning(f"Unsupported NFT chain: {chain!r}")
                return None
            return NFTGatedDeal(
                **common,
                chain=chain,
                address=first_text(terms, ".//Address"),
                name=first_text(terms, ".//Name"),
                image_url=first_text(terms, ".//ImageUrl"),
                external_link=first_text(terms, ".//ExternalLink"),
                standard=(first_text(terms, ".//Standard") or None) if chain == "eth" else None,
                slug=(first_text(terms, ".//Slug") or None) if chain == "eth" else None,
            )

        logger.debug(f"Ignoring unsupported commercial model: {model!r}")
        return None

    def duration(self, el: etree._Element) -> int | None:
        return parse_duration(first_text(el, ".//Duration"))

    def parse_copyright(self, el: etree._Element, tag: str) -> CopyrightLine | None:
        """Read a CLine or PLine; both year and text are required."""
        year = first_text(el, f".//{tag}/Year")
        text = first_text(el, f".//{tag}/{tag}Text")
        if year and text:
            return CopyrightLine(text=text, year=year)
        return None

    def _attach(
        self,
        release: Release,
        el: etree._Element,
        deals_by_ref: dict[str, list[Deal]],
        sound_recordings: dict[str, SoundRecording],
        images: dict[str, Image],
        text_refs: set[str],
    ) -> None:
        """Fill identifiers, genre, deals and resources into a parsed release."""
        release.release_ids = parse_release_ids(el)
        release.audius_genre = self._genre_value(release.genre, release.sub_genre)

        release.deals = deals_by_ref.get(release.ref, [])
        if release.deals and release.deals[0].validity_start_date:
            release.release_date = release.deals[0].validity_start_date

        for ref in self.resource_refs(el):
            if ref in sound_recordings:
                release.sound_recordings.append(sound_recordings[ref].model_copy(deep=True))
            elif ref in images:
                release.images.append(images[ref].model_copy())
            elif ref in text_refs:
                logger.debug(f"Ignoring text resource {ref} on release {release.ref}")
            else:
                # updates may omit resources that an earlier version delivered
                logger.info(f"MissingRef: {ref} on release {release.ref}")

        if not release.deals:
            release.problems.append("NoDeal")

        if release.audius_genre is None and not any(
            s.audius_genre for s in release.sound_recordings
        ):
            release.problems.append("NoGenre")

    def _genre_value(self, genre: str, sub_genre: str) -> str | None:
        resolved = resolve_genre(genre, sub_genre)
        return resolved.value if resolved is not None else None

    @abstractmethod
    def parse_parties(self, root: etree._Element) -> dict[str, str]:
        """Build the party reference -> display name table."""
        pass

    @abstractmethod
    def deal_terms(
        self, root: etree._Element
    ) -> Iterable[tuple[list[str], etree._Element]]:
        """Yield (release references, DealTerms element) pairs."""
        pass

    @abstractmethod
    def validity_window(self, terms: etree._Element) -> tuple[str, str]:
        """Return the raw (start, end) validity values of DealTerms."""
        pass

    @abstractmethod
    def use_types(self, terms: etree._Element) -> list[str]:
        """Return the UseType values of DealTerms."""
        pass

    @abstractmethod
    def parse_sound_recording(
        self, el: etree._Element, parties: dict[str, str]
    ) -> SoundRecording:
        """Parse a SoundRecording resource."""
        pass

    @abstractmethod
    def parse_resource(self, el: etree._Element) -> Resource:
        """Parse the reference and file location of an Image or Text resource."""
        pass

    @abstractmethod
    def release_elements(self, root: etree._Element) -> Iterable[etree._Element]:
        """Yield the Release elements of the document."""
        pass

    @abstractmethod
    def parse_release(self, el: etree._Element, parties: dict[str, str]) -> Release:
        """Parse the descriptive fields of a Release element."""
        pass

    @abstractmethod
    def resource_refs(self, el: etree._Element) -> list[str]:
        """Return the resource references a Release element bundles, in order."""
        pass

    @abstractmethod
    def contributors(
        self, el: etree._Element, tag: str, parties: dict[str, str]
    ) -> list[Contributor]:
        """Parse a DisplayArtist, Contributor or IndirectResourceContributor list."""
        pass
