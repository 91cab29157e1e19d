"""Source configuration schemas.

Sources are the labels / distributors that drop deliveries into object
storage. They are configured in a JSON file:

    {
      "sources": [
        {
          "name": "sme",
          "ddex_key": "...",
          "bucket": "sme-deliveries",
          "send_acknowledgements": true,
          "acknowledgement": {"base_url": "https://...", "username": "...", "password": "..."}
        }
      ]
    }
"""

from typing import Literal

from pydantic import BaseModel


class AcknowledgementConfig(BaseModel):
    """Endpoint and parties used to acknowledge deliveries back to a source.

    token_path and status_path may contain {party_id}, which is filled with
    sender_party_id.
    """

    base_url: str
    username: str
    password: str
    sender_party_id: str = ""
    sender_name: str = ""
    recipient_party_id: str | None = None
    recipient_name: str | None = None
    token_path: str = "/gateway/token/{party_id}"
    status_path: str = "/gateway/ddex/ern/post/status/{party_id}"
    timeout: float = 30


class SourceConfig(BaseModel):
    """A delivering source.

    Attributes:
        name: Unique source name stored on every row it delivers
        ddex_key: API key users authorize; scopes the user-directory match
        bucket: Object-store bucket polled for deliveries (None to skip polling)
        env: Deployment environment the source belongs to
        send_acknowledgements: Whether to acknowledge parsed deliveries
        acknowledgement: Acknowledgement endpoint configuration
    """

    name: str
    ddex_key: str = ""
    bucket: str | None = None
    env: Literal["production", "staging", "development"] | None = None
    send_acknowledgements: bool = False
    acknowledgement: AcknowledgementConfig | None = None

    model_config = {"extra": "allow"}


class SourcesFile(BaseModel):
    """Top-level shape of sources.json."""

    sources: list[SourceConfig] = []
