"""Routing parsed delivery documents into the release catalog."""

import logging
from collections.abc import Callable

from pydantic import BaseModel

from ddex_ingest.acknowledgement import Acknowledger
from ddex_ingest.exceptions import IngestError, NoIdentifierError, ParseError
from ddex_ingest.parsers import DeliveryParser
from ddex_ingest.parsers.delivery import read_message_id
from ddex_ingest.store import Catalog
from schemas.delivery import MessageKind

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    """Outcome of ingesting one document.

    Attributes:
        xml_url: Document location
        kind: Message kind
        message_timestamp: MessageCreatedDateTime of the document
        keys: Keys of release rows written
        skipped: Releases skipped as stale or as track releases
        errors: Per-release failures (releases without a usable identifier)
    """

    xml_url: str
    kind: MessageKind
    message_timestamp: str = ""
    keys: list[str] = []
    skipped: int = 0
    errors: list[str] = []


class DeliveryIngestor:
    """Parses a document and applies it to the catalog.

    Manifest messages are recorded and otherwise ignored, purge messages
    mark their release for delete, and every release of a NewReleaseMessage
    is merged into the catalog on its own. A release without a usable
    identifier fails alone; its siblings are still stored.
    """

    def __init__(
        self,
        catalog: Catalog,
        parser: DeliveryParser | None = None,
        acknowledger: Acknowledger | None = None,
    ):
        self.catalog = catalog
        self.parser = parser or DeliveryParser(users=catalog.users)
        self.acknowledger = acknowledger

    def ingest(
        self, source: str, xml_url: str, xml_bytes: bytes, acknowledge: bool = True
    ) -> IngestResult:
        """Ingest one delivery document.

        Args:
            source: Delivering source
            xml_url: Document location
            xml_bytes: Raw document
            acknowledge: Whether to acknowledge the document to its source

        Returns:
            IngestResult describing what was written

        Raises:
            ParseError: If the document cannot be parsed
        """
        try:
            delivery = self.parser.parse(source, xml_url, xml_bytes)
        except ParseError as e:
            logger.error(f"Failed to parse {xml_url}: {e.message}")
            if acknowledge and self.acknowledger is not None:
                self.acknowledger.acknowledge_failure(
                    source, xml_url, read_message_id(xml_bytes), e.message
                )
            raise

        self.catalog.xmls.upsert(source, xml_url, delivery.message_timestamp)
        result = IngestResult(
            xml_url=xml_url,
            kind=delivery.kind,
            message_timestamp=delivery.message_timestamp,
        )

        if delivery.kind == MessageKind.MANIFEST:
            logger.debug(f"Ignoring manifest {xml_url}")

        elif delivery.kind == MessageKind.PURGE_RELEASE:
            try:
                row = self.catalog.releases.mark_for_delete(
                    source, xml_url, delivery.message_timestamp, delivery.purge.release_ids
                )
            except NoIdentifierError as e:
                logger.error(f"Purge in {xml_url} names no usable identifier: {e.message}")
                result.errors.append(e.message)
            else:
                if row is None:
                    result.skipped += 1
                else:
                    result.keys.append(row.key)

        elif delivery.kind == MessageKind.NEW_RELEASE:
            for release in delivery.releases:
                try:
                    row = self.catalog.releases.upsert(
                        source, xml_url, delivery.message_timestamp, release
                    )
                except NoIdentifierError as e:
                    logger.error(f"Release {release.ref} in {xml_url}: {e.message}")
                    result.errors.append(e.message)
                    continue
                if row is None:
                    result.skipped += 1
                else:
                    result.keys.append(row.key)

            if acknowledge and self.acknowledger is not None:
                self.acknowledger.acknowledge_success(
                    source, xml_url, delivery.message_id, delivery.releases
                )

        logger.info(
            f"Ingested {delivery.kind.value} {xml_url}: {len(result.keys)} written, "
            f"{result.skipped} skipped, {len(result.errors)} failed"
        )
        return result

    def reparse(self, reader: Callable[[str], bytes], batch_size: int = 500) -> int:
        """Re-ingest every recorded document, in url order.

        Acknowledgements are not re-sent. Documents that fail to read or
        parse are logged and skipped.

        Args:
            reader: Returns the bytes of a recorded xml_url
            batch_size: Documents loaded from the catalog per page

        Returns:
            Number of documents re-ingested
        """
        count = 0
        cursor = ""
        while True:
            rows = self.catalog.xmls.all(cursor=cursor, limit=batch_size)
            if not rows:
                break
            for row in rows:
                try:
                    self.ingest(row.source, row.xml_url, reader(row.xml_url), acknowledge=False)
                    count += 1
                except IngestError as e:
                    logger.error(f"Reparse of {row.xml_url} failed: {e.message}")
            cursor = rows[-1].xml_url

        logger.info(f"Reparsed {count} documents")
        return count
