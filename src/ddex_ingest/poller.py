"""Discovery of new delivery documents in source buckets.

A poll resumes from the bucket's durable cursor and works through the
top-level entries listed after it:

1. List top-level prefixes and root-level objects after the cursor
2. Take them in batches; concurrently list every object under each prefix
   of the batch and concurrently fetch the XML documents found
3. Sort the batch's documents by MessageCreatedDateTime, since key order
   says nothing about message order, then ingest them one at a time
4. Advance the cursor to the batch's last entry once the batch is done
5. Repeat until the listing is exhausted

Only listing and fetching run in parallel. Ingestion is strictly
sequential so the catalog's staleness guard sees documents in order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from pydantic import BaseModel

from ddex_ingest.exceptions import IngestError
from ddex_ingest.ingest import DeliveryIngestor
from ddex_ingest.parsers import read_message_timestamp
from ddex_ingest.storage import ObjectStore
from ddex_ingest.store import CursorRepo
from schemas.source import SourceConfig

logger = logging.getLogger(__name__)

DELIMITER = "/"
SKIPPED_KEY_MARKER = "batchcomplete"


def is_delivery_document(key: str) -> bool:
    """XML documents other than batch-complete markers."""
    return key.lower().endswith(".xml") and SKIPPED_KEY_MARKER not in key.lower()


class PollResult(BaseModel):
    """Counters for one poll of one source."""

    source: str
    bucket: str
    batches: int = 0
    documents: int = 0
    ingested: int = 0
    failed: int = 0
    cursor: str = ""


class FetchedDocument(BaseModel):
    key: str
    body: bytes
    message_timestamp: str = ""


class DeliveryPoller:
    """Polls source buckets and feeds new documents to the ingestor.

    Attributes:
        store: Object store the buckets live in
        cursors: Durable per-bucket cursors
        ingestor: Applies each document to the catalog
        batch_size: Top-level entries processed per batch
        max_workers: Parallel listings / fetches within a batch
    """

    def __init__(
        self,
        store: ObjectStore,
        cursors: CursorRepo,
        ingestor: DeliveryIngestor,
        batch_size: int = 100,
        max_workers: int = 16,
    ):
        self.store = store
        self.cursors = cursors
        self.ingestor = ingestor
        self.batch_size = batch_size
        self.max_workers = max_workers

    def poll(self, source: SourceConfig, reset: bool = False) -> PollResult:
        """Ingest everything new in a source's bucket.

        Args:
            source: Source to poll; must have a bucket
            reset: Start from the beginning of the bucket instead of the cursor

        Returns:
            PollResult with batch and document counts

        Raises:
            ValueError: If the source has no bucket
            StorageError: If listing or fetching fails; the cursor stays at
                the last completed batch
        """
        if not source.bucket:
            raise ValueError(f"Source {source.name} has no bucket to poll")

        bucket = source.bucket
        marker = "" if reset else self.cursors.get(bucket)
        result = PollResult(source=source.name, bucket=bucket, cursor=marker)

        while True:
            listing = self.store.list_objects(bucket, delimiter=DELIMITER, marker=marker)
            entries = sorted([*listing.prefixes, *(o.key for o in listing.objects)])
            logger.info(
                f"Polling {bucket} from {marker!r}: {len(listing.prefixes)} prefixes, "
                f"{len(listing.objects)} objects"
            )
            if not entries:
                break

            for start in range(0, len(entries), self.batch_size):
                batch = entries[start : start + self.batch_size]
                self._process_batch(source.name, bucket, batch, result)

                marker = batch[-1]
                self.cursors.upsert(bucket, marker)
                result.cursor = marker
                result.batches += 1

            if not listing.truncated:
                break

        logger.info(
            f"Polled {source.name}: {result.batches} batches, {result.ingested} ingested, "
            f"{result.failed} failed"
        )
        return result

    def poll_all(self, sources: list[SourceConfig], reset: bool = False) -> list[PollResult]:
        """Poll every source that has a bucket."""
        results = []
        for source in sources:
            if not source.bucket:
                logger.info(f"Skipping source without bucket: {source.name}")
                continue
            results.append(self.poll(source, reset=reset))
        return results

    def _process_batch(
        self, source: str, bucket: str, batch: list[str], result: PollResult
    ) -> None:
        prefixes = [entry for entry in batch if entry.endswith(DELIMITER)]
        keys = [entry for entry in batch if not entry.endswith(DELIMITER)]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for prefix_keys in executor.map(lambda p: self._list_prefix(bucket, p), prefixes):
                keys.extend(prefix_keys)

            wanted = [key for key in keys if is_delivery_document(key)]
            documents = list(executor.map(lambda k: self._fetch(bucket, k), wanted))

        documents.sort(key=lambda d: d.message_timestamp)
        result.documents += len(documents)

        for document in documents:
            xml_url = self.store.url_for(bucket, document.key)
            logger.debug(f"Ingesting {xml_url} ({document.message_timestamp})")
            try:
                self.ingestor.ingest(source, xml_url, document.body)
                result.ingested += 1
            except IngestError as e:
                logger.error(f"Failed to ingest {xml_url}: {e.message}")
                result.failed += 1

    def _list_prefix(self, bucket: str, prefix: str) -> list[str]:
        """List every key under a prefix, following pagination."""
        keys: list[str] = []
        marker = ""
        while True:
            listing = self.store.list_objects(bucket, prefix=prefix, marker=marker)
            keys.extend(o.key for o in listing.objects)
            if not listing.truncated or not listing.objects:
                return keys
            marker = listing.objects[-1].key

    def _fetch(self, bucket: str, key: str) -> FetchedDocument:
        body = self.store.get_object(bucket, key)
        return FetchedDocument(key=key, body=body, message_timestamp=read_message_timestamp(body))
