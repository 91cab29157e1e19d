"""Acknowledging ingested deliveries back to their sources."""

import logging

from ddex_ingest.clients import AcknowledgementClient, ClientError
from ddex_ingest.compilers import AcknowledgementCompiler
from ddex_ingest.config import Sources
from schemas.release import Release
from schemas.source import SourceConfig

logger = logging.getLogger(__name__)


class Acknowledger:
    """Compiles and posts acknowledgements for sources that ask for them.

    Only sources with send_acknowledgements set and an acknowledgement
    endpoint configured are acknowledged. Transmission failures are logged
    and never interrupt ingestion.
    """

    def __init__(self, sources: Sources):
        self.sources = sources
        self._clients: dict[str, AcknowledgementClient] = {}

    def enabled_for(self, source: str) -> SourceConfig | None:
        config = self.sources.find_by_name(source)
        if config is None or not config.send_acknowledgements:
            return None
        if config.acknowledgement is None:
            logger.warning(f"Source {source} wants acknowledgements but has no endpoint configured")
            return None
        return config

    def client_for(self, config: SourceConfig) -> AcknowledgementClient:
        if config.name not in self._clients:
            self._clients[config.name] = AcknowledgementClient(config.acknowledgement)
        return self._clients[config.name]

    def acknowledge_success(self, source: str, xml_url: str, message_id: str, releases: list[Release]) -> bool:
        return self._acknowledge(source, xml_url, message_id, releases, success=True)

    def acknowledge_failure(self, source: str, xml_url: str, message_id: str, error: str) -> bool:
        return self._acknowledge(source, xml_url, message_id, [], success=False, error=error)

    def _acknowledge(
        self,
        source: str,
        xml_url: str,
        message_id: str,
        releases: list[Release],
        success: bool,
        error: str | None = None,
    ) -> bool:
        """Compile and post one acknowledgement.

        Returns:
            True if an acknowledgement was posted
        """
        config = self.enabled_for(source)
        if config is None:
            return False

        xml = AcknowledgementCompiler(config).compile(message_id, releases, success=success, error=error)
        try:
            self.client_for(config).post_status(xml)
        except ClientError as e:
            logger.error(f"Failed to acknowledge {xml_url} to {source}: {e.message}")
            return False

        logger.info(f"Acknowledged {xml_url} to {source} ({'success' if success else 'failure'})")
        return True

    def close(self) -> None:
        for client in self._clients.values():
            client.close()
        self._clients.clear()
