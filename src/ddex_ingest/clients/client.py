"""Base HTTP client for endpoints operated by delivering sources."""

import logging
from abc import ABC, abstractmethod
from time import sleep
from typing import Any

import httpx

from .exceptions import (
    APIError,
    AuthenticationError,
    ConnectionError,
    NotFoundError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 502, 503, 504}


class Client(ABC):
    """Base class for source-facing HTTP clients.

    Wraps a lazily created httpx.Client and retries transient failures:
    connection errors, timeouts, 429 and gateway errors. Other error
    statuses are raised immediately.

    Config keys:
        base_url (required): Base URL for all requests
        timeout: Request timeout in seconds (default: 30)
        retry_attempts: Attempts per request, first one included (default: 3)
        retry_delay: Seconds to wait before the first retry; doubles each retry (default: 1)
        headers: Extra headers sent with every request
    """

    def __init__(self, config: dict):
        if "base_url" not in config:
            raise ValueError("config must include 'base_url'")

        self._config = config
        self._client: httpx.Client | None = None

    @property
    def base_url(self) -> str:
        return str(self._config["base_url"]).rstrip("/")

    @property
    def timeout(self) -> float:
        return float(self._config.get("timeout", 30))

    @property
    def retry_attempts(self) -> int:
        return max(1, int(self._config.get("retry_attempts", 3)))

    @property
    def retry_delay(self) -> float:
        return float(self._config.get("retry_delay", 1))

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._config.get("headers", {}))

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
            )
        return self._client

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Map error statuses to client exceptions.

        Raises:
            AuthenticationError: For 401 and 403
            NotFoundError: For 404
            RateLimitError: For 429
            APIError: For any other non-2xx status
        """
        if response.is_success:
            return response

        status_code = response.status_code
        url = response.url

        if status_code in (401, 403):
            raise AuthenticationError(f"Not authorized ({status_code}): {url}", status_code)
        if status_code == 404:
            raise NotFoundError(f"Endpoint not found: {url}")
        if status_code == 429:
            raise RateLimitError(f"Rate limit exceeded: {url}")
        raise APIError(f"API error {status_code}: {url}", status_code=status_code, body=response.text)

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request, retrying transient failures with exponential backoff.

        Args:
            method: HTTP method
            path: URL path appended to base_url
            **kwargs: Passed through to httpx.Client.request

        Returns:
            The successful response

        Raises:
            ConnectionError: If every attempt failed to reach the endpoint
            APIError: If the endpoint answered with a non-retryable error, or
                kept answering with a retryable one
        """
        last_exception: Exception | None = None
        delay = self.retry_delay

        for attempt in range(1, self.retry_attempts + 1):
            try:
                response = self.client.request(method, path, **kwargs)
                if response.status_code in RETRYABLE_STATUS_CODES and attempt < self.retry_attempts:
                    logger.warning(
                        f"{method} {path} answered {response.status_code} "
                        f"(attempt {attempt}/{self.retry_attempts})"
                    )
                    sleep(delay)
                    delay *= 2
                    continue
                return self._handle_response(response)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                logger.warning(f"{method} {path} failed (attempt {attempt}/{self.retry_attempts}): {e}")
                if attempt < self.retry_attempts:
                    sleep(delay)
                    delay *= 2

        raise ConnectionError(
            f"{method} {path} failed after {self.retry_attempts} attempts"
        ) from last_exception

    def get(self, path: str, **kwargs) -> httpx.Response:
        return self._request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> httpx.Response:
        return self._request("POST", path, **kwargs)

    @abstractmethod
    def send(self, *args, **kwargs) -> Any:
        """Deliver a payload to the endpoint. Implemented by subclasses."""
        pass
