"""Entry point for parsing a delivery XML document.

DeliveryParser detects the message kind and ERN generation, strips
namespaces so both generations can be read with plain element paths, and
dispatches NewReleaseMessage documents to the matching ReleaseParser.
"""

import logging
from datetime import datetime
from typing import Protocol

from lxml import etree

from ddex_ingest.exceptions import ParseError
from schemas.delivery import MessageKind, ParsedDelivery, SchemaGeneration
from schemas.release import PurgeRelease, Release

from .ern3 import ERN3Parser
from .ern4 import ERN4Parser
from .parser import ReleaseParser, first_text, parse_release_ids

logger = logging.getLogger(__name__)

ERN4_NAMESPACE_MARKER = b"http://ddex.net/xml/ern/4"


class UserMatcher(Protocol):
    """Read-only user directory consulted while parsing."""

    def match(self, api_key: str, names: list[str]) -> str | None: ...


class ApiKeyLookup(Protocol):
    def api_key_for(self, source: str) -> str | None: ...


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_blank_text=True,
        huge_tree=True,
    )


def load_document(xml_bytes: bytes, xml_url: str = "") -> etree._Element:
    """Parse XML bytes and strip namespaces from every element tag.

    Raises:
        ParseError: If the bytes are not well-formed XML
    """
    try:
        root = etree.fromstring(xml_bytes, parser=_xml_parser())
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Malformed XML: {e}", xml_url=xml_url) from e

    for el in root.iter():
        if isinstance(el.tag, str):
            el.tag = etree.QName(el).localname
    etree.cleanup_namespaces(root)
    return root


def _read_header_field(xml_bytes: bytes, tag: str) -> str:
    try:
        root = load_document(xml_bytes)
    except ParseError:
        return ""
    return first_text(root, f".//{tag}")


def read_message_timestamp(xml_bytes: bytes) -> str:
    """Return the first MessageCreatedDateTime of a document, or ''.

    Used to order fetched documents before ingesting them, so unparseable
    documents sort first and fail individually during ingest.
    """
    return _read_header_field(xml_bytes, "MessageCreatedDateTime")


def read_message_id(xml_bytes: bytes) -> str:
    return _read_header_field(xml_bytes, "MessageId")


def detect_kind(root: etree._Element) -> MessageKind | None:
    for kind in MessageKind:
        if kind.value in root.tag:
            return kind
    return None


def detect_generation(xml_bytes: bytes) -> SchemaGeneration:
    if ERN4_NAMESPACE_MARKER in xml_bytes:
        return SchemaGeneration.ERN4
    return SchemaGeneration.ERN3


def reconcile(releases: list[Release]) -> None:
    """Apply cross-release rules within one delivery.

    Releases without images inherit the main release's images, or are
    flagged NoImage. When the main release is clean, every other release
    whose recordings are all part of the main release is flagged
    DuplicateRelease so bundled track releases are not published on their own.
    """
    main = next((r for r in releases if r.is_main_release), None)

    for release in releases:
        if release.images:
            continue
        if main is not None and main.images:
            release.images = [image.model_copy() for image in main.images]
        else:
            release.problems.append("NoImage")

    if main is None or main.problems:
        return

    main_refs = {s.ref for s in main.sound_recordings}
    for release in releases:
        if release.is_main_release:
            continue
        if all(s.ref in main_refs for s in release.sound_recordings):
            release.problems.append("DuplicateRelease")


class DeliveryParser:
    """Parses delivery documents into ParsedDelivery values.

    Attributes:
        users: Optional user directory used to pre-resolve a publishing identity
        api_keys: Optional lookup from source name to its authorization key
        now: Instant deal validity windows are evaluated against (default: now)
    """

    def __init__(
        self,
        users: UserMatcher | None = None,
        api_keys: ApiKeyLookup | None = None,
        now: datetime | None = None,
    ):
        self.users = users
        self.api_keys = api_keys
        self.now = now

    def release_parser(self, generation: SchemaGeneration) -> ReleaseParser:
        if generation == SchemaGeneration.ERN4:
            return ERN4Parser(now=self.now)
        return ERN3Parser(now=self.now)

    def parse(self, source: str, xml_url: str, xml_bytes: bytes) -> ParsedDelivery:
        """Parse one delivery document.

        Args:
            source: Name of the delivering source
            xml_url: Location the document was read from
            xml_bytes: Raw document

        Returns:
            ParsedDelivery with releases or purge identifiers, by message kind

        Raises:
            ParseError: If the document is malformed or its root element is
                not a supported message
        """
        root = load_document(xml_bytes, xml_url)

        kind = detect_kind(root)
        if kind is None:
            raise ParseError(f"Unsupported message type: {root.tag}", xml_url=xml_url)

        delivery = ParsedDelivery(
            source=source,
            xml_url=xml_url,
            kind=kind,
            generation=detect_generation(xml_bytes),
            message_id=first_text(root, ".//MessageHeader/MessageId")
            or first_text(root, ".//MessageId"),
            message_timestamp=first_text(root, ".//MessageCreatedDateTime"),
            is_update=first_text(root, ".//UpdateIndicator") == "UpdateMessage",
        )

        if kind == MessageKind.NEW_RELEASE:
            parser = self.release_parser(delivery.generation)
            releases = parser.parse_releases(root)
            for release in releases:
                release.audius_user = self.match_user(source, release)
            reconcile(releases)
            delivery.releases = releases

        elif kind == MessageKind.PURGE_RELEASE:
            purged = root.find(".//PurgedRelease")
            if purged is None:
                raise ParseError("PurgeReleaseMessage has no PurgedRelease", xml_url=xml_url)
            delivery.purge = PurgeRelease(release_ids=parse_release_ids(purged))

        logger.debug(
            f"Parsed {kind.value} ({delivery.generation.value}) from {xml_url}: "
            f"{len(delivery.releases)} releases"
        )
        return delivery

    def match_user(self, source: str, release: Release) -> str | None:
        """Resolve the publishing identity authorized for a release's artists."""
        if self.users is None or self.api_keys is None:
            return None
        api_key = self.api_keys.api_key_for(source)
        if not api_key:
            return None
        return self.users.match(api_key, [a.name for a in release.artists])
