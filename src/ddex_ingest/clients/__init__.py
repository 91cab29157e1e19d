"""HTTP clients for endpoints operated by delivering sources."""

from .acknowledgement_client import AcknowledgementClient
from .client import Client
from .exceptions import (
    APIError,
    AuthenticationError,
    ClientError,
    ConnectionError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)

__all__ = [
    "Client",
    "AcknowledgementClient",
    "ClientError",
    "ConnectionError",
    "APIError",
    "AuthenticationError",
    "RateLimitError",
    "NotFoundError",
    "ValidationError",
]
