"""Client for a source's acknowledgement gateway."""

import logging
import threading
import time
from collections.abc import Callable

import httpx

from schemas.source import AcknowledgementConfig

from .client import Client
from .exceptions import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 60 * 60


class AcknowledgementClient(Client):
    """Posts AcknowledgementMessage documents to a source's gateway.

    The gateway issues a bearer token in exchange for basic-auth
    credentials. The token is cached for an hour and shared by every post
    made through this client.

    Example:
        with AcknowledgementClient(source.acknowledgement) as client:
            client.post_status(xml)
    """

    def __init__(
        self,
        config: AcknowledgementConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__({"base_url": config.base_url, "timeout": config.timeout})
        self.ack_config = config
        self.clock = clock
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    @property
    def token_path(self) -> str:
        return self.ack_config.token_path.format(party_id=self.ack_config.sender_party_id)

    @property
    def status_path(self) -> str:
        return self.ack_config.status_path.format(party_id=self.ack_config.sender_party_id)

    def bearer_token(self) -> str:
        """Return the cached bearer token, fetching a new one when expired.

        Raises:
            ValidationError: If the gateway answers with an empty token
            AuthenticationError: If the credentials are rejected
        """
        with self._token_lock:
            if self._token and self.clock() < self._token_expires_at:
                return self._token

            logger.info(f"Requesting bearer token from {self.base_url}{self.token_path}")
            response = self.post(
                self.token_path,
                auth=(self.ack_config.username, self.ack_config.password),
                headers={"Content-Type": "application/json"},
            )
            token = response.text.strip()
            if not token:
                raise ValidationError("Gateway returned an empty bearer token")

            self._token = token
            self._token_expires_at = self.clock() + TOKEN_TTL_SECONDS
            return token

    def invalidate_token(self) -> None:
        with self._token_lock:
            self._token = None
            self._token_expires_at = 0.0

    def post_status(self, xml: bytes) -> httpx.Response:
        """Post an acknowledgement document.

        Raises:
            ClientError: If the token cannot be obtained or the post fails
        """
        token = self.bearer_token()
        try:
            response = self.post(
                self.status_path,
                content=xml,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/xml",
                },
            )
        except AuthenticationError:
            self.invalidate_token()
            raise

        logger.info(f"Posted acknowledgement to {self.base_url}{self.status_path}")
        return response

    def send(self, xml: bytes) -> httpx.Response:
        return self.post_status(xml)
