"""Compiler for DDEX AcknowledgementMessage documents.

An acknowledgement tells the delivering source whether each release of a
NewReleaseMessage was ingested:

- MessageHeader: our message id, sender and recipient parties, creation time
- One ReleaseStatus per release, identified by its GRid, CatalogNumber,
  ICPN or ProprietaryId (in that order of preference, falling back to the
  release reference), with SuccessfullyIngestedByReleaseDistributor / FileOK
  or ProcessingErrorAtReleaseDistributor / ResourceCorrupt
- A single general Acknowledgement when the message had no releases, which
  is also how parse failures are reported
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from lxml import etree

from schemas.release import Release
from schemas.source import SourceConfig

from .compiler import Compiler

logger = logging.getLogger(__name__)

ACK_NS = "http://ddex.net/xml/ern-c-sftp/18"
XS_NS = "http://www.w3.org/2001/XMLSchema-instance"
AVS_VERSION_ID = "4"

SUCCESS_RELEASE_STATUS = "SuccessfullyIngestedByReleaseDistributor"
ERROR_RELEASE_STATUS = "ProcessingErrorAtReleaseDistributor"
SUCCESS_MESSAGE_STATUS = "FileOK"
ERROR_MESSAGE_STATUS = "ResourceCorrupt"

# ReleaseId children tried in order; the release reference is the fallback.
PREFERRED_RELEASE_IDS = (
    ("grid", "GRid"),
    ("catalog_number", "CatalogNumber"),
    ("icpn", "ICPN"),
    ("proprietary_id", "ProprietaryId"),
)


def _text(parent: etree._Element, tag: str, text: str) -> etree._Element:
    el = etree.SubElement(parent, tag)
    el.text = text
    return el


class AcknowledgementCompiler(Compiler):
    """Render acknowledgements for one source.

    Attributes:
        source: Source being acknowledged; supplies the party identities
        clock: Returns the creation time stamped into the header
    """

    def __init__(self, source: SourceConfig, clock: Callable[[], datetime] | None = None):
        self.source = source
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def compile(
        self,
        message_id: str,
        releases: list[Release],
        success: bool = True,
        error: str | None = None,
    ) -> bytes:
        """Render an AcknowledgementMessage.

        Args:
            message_id: MessageId of the delivery being acknowledged
            releases: Releases parsed from the delivery (may be empty)
            success: Whether ingestion succeeded
            error: Failure description included when success is False

        Returns:
            Serialized XML document
        """
        root = etree.Element(f"{{{ACK_NS}}}AcknowledgementMessage", nsmap={"ns3": ACK_NS, "xs": XS_NS})
        root.set("AvsVersionId", AVS_VERSION_ID)

        root.append(self._build_header(message_id))

        if releases:
            for release in releases:
                root.append(self._build_release_status(release, message_id, success, error))
        else:
            root.append(self._build_acknowledgement(message_id, success, error))

        logger.debug(
            f"Compiled {'success' if success else 'failure'} acknowledgement for "
            f"{message_id} with {len(releases)} releases"
        )
        return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)

    def _build_header(self, message_id: str) -> etree._Element:
        ack = self.source.acknowledgement
        header = etree.Element("MessageHeader")
        _text(header, "MessageId", message_id)

        sender = etree.SubElement(header, "MessageSender")
        _text(sender, "PartyId", ack.sender_party_id if ack else "")
        _text(etree.SubElement(sender, "PartyName"), "FullName", ack.sender_name if ack else "")

        recipient = etree.SubElement(header, "MessageRecipient")
        _text(
            recipient,
            "PartyId",
            (ack.recipient_party_id if ack else None) or self.source.name.upper(),
        )
        _text(
            etree.SubElement(recipient, "PartyName"),
            "FullName",
            (ack.recipient_name if ack else None) or self.source.name,
        )

        _text(header, "MessageCreatedDateTime", self.clock().isoformat())
        return header

    def _build_release_status(
        self, release: Release, message_id: str, success: bool, error: str | None
    ) -> etree._Element:
        status = etree.Element("ReleaseStatus")

        release_id = etree.SubElement(status, "ReleaseId")
        for field, tag in PREFERRED_RELEASE_IDS:
            value = getattr(release.release_ids, field)
            if value:
                _text(release_id, tag, value)
                break
        else:
            _text(release_id, "ProprietaryId", release.ref)

        _text(status, "ReleaseStatus", SUCCESS_RELEASE_STATUS if success else ERROR_RELEASE_STATUS)
        status.append(self._build_acknowledgement(message_id, success, error))
        return status

    def _build_acknowledgement(
        self, message_id: str, success: bool, error: str | None
    ) -> etree._Element:
        acknowledgement = etree.Element("Acknowledgement")
        _text(acknowledgement, "MessageType", "NewReleaseMessage")
        _text(acknowledgement, "MessageId", message_id)

        message_status = etree.SubElement(acknowledgement, "MessageStatus")
        _text(message_status, "Status", SUCCESS_MESSAGE_STATUS if success else ERROR_MESSAGE_STATUS)
        if not success and error:
            _text(message_status, "StatusMessage", error)
        return acknowledgement
