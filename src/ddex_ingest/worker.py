"""Long-running poll loop over every configured source."""

import logging
import signal
from time import sleep

from ddex_ingest.config import Sources
from ddex_ingest.exceptions import IngestError
from ddex_ingest.poller import DeliveryPoller, PollResult

logger = logging.getLogger(__name__)


class PollWorker:
    """Polls every source, sleeps, and repeats until told to stop.

    SIGTERM and SIGINT request a shutdown that takes effect after the
    current round, so a poll is never abandoned mid-batch.

    Attributes:
        poller: Poller used for each source
        sources: Registry of sources to poll
        poll_interval: Seconds to sleep between rounds
        shutdown_requested: Set by the signal handler
    """

    def __init__(self, poller: DeliveryPoller, sources: Sources, poll_interval: float = 300):
        self.poller = poller
        self.sources = sources
        self.poll_interval = poll_interval
        self.shutdown_requested = False

        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

    def _handle_shutdown(self, signum, frame) -> None:
        logger.info("Shutdown signal received, will exit after current round")
        self.shutdown_requested = True

    def run_once(self) -> list[PollResult]:
        """Poll every source with a bucket once.

        A source whose poll fails is logged and retried next round; its
        cursor stays at the last completed batch.
        """
        results = []
        for source in self.sources.all():
            if self.shutdown_requested:
                break
            if not source.bucket:
                continue
            try:
                results.append(self.poller.poll(source))
            except IngestError as e:
                logger.error(f"Poll of {source.name} failed: {e.message}")
        return results

    def run_forever(self) -> None:
        while not self.shutdown_requested:
            self.run_once()
            if self.shutdown_requested:
                break
            sleep(self.poll_interval)

        logger.info("Poll worker exiting gracefully")
