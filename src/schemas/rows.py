"""Persisted row schemas for the release catalog."""

from enum import Enum

from pydantic import BaseModel

from .release import Release


class ReleaseStatus(str, Enum):
    """Processing status of a release row.

    Blocked rows carry structural problems and wait for a corrective
    delivery. PublishPending, Failed and DeletePending rows are drained by
    the publisher, which moves them to Published or Deleted.
    """

    BLOCKED = "Blocked"
    PUBLISH_PENDING = "PublishPending"
    PUBLISHED = "Published"
    FAILED = "Failed"
    DELETE_PENDING = "DeletePending"
    DELETED = "Deleted"


class ReleaseRow(BaseModel):
    """A release as stored in the catalog.

    Attributes:
        source: Source that delivered the release
        key: Chosen identifier (ISRC, then ICPN, then GRid)
        status: Current processing status
        xml_url: Document the current version was read from
        message_timestamp: MessageCreatedDateTime of the current version
        release: Parsed release payload of the current version
        entity_type: Published entity kind ("track" or "album"), once published
        entity_id: Published entity id, once published
        publish_error_count: Number of failed publish attempts
        last_publish_error: Text of the most recent publish failure
        num_cleared: Recordings cleared by the rights-clearance feed
        num_not_cleared: Recordings not cleared by the rights-clearance feed
        prepend_artist: Operator override to prefix titles with the artist
    """

    source: str
    key: str
    status: ReleaseStatus
    xml_url: str | None = None
    message_timestamp: str | None = None
    release: Release | None = None

    release_type: str | None = None
    release_date: str | None = None

    entity_type: str | None = None
    entity_id: str | None = None
    block_hash: str | None = None
    block_number: int | None = None
    published_at: str | None = None

    publish_error_count: int = 0
    last_publish_error: str | None = None

    num_cleared: int | None = None
    num_not_cleared: int | None = None
    prepend_artist: bool = False

    created_at: str | None = None
    updated_at: str | None = None


class AssetRow(BaseModel):
    """Where a resource physically lived when it was last referenced."""

    source: str
    release_id: str
    ref: str
    xml_url: str
    file_path: str
    file_name: str


class XmlRow(BaseModel):
    """A delivery document that has been seen."""

    source: str
    xml_url: str
    message_timestamp: str
    created_at: str | None = None


class UserRow(BaseModel):
    """A catalog user who authorized publishing for an API key."""

    api_key: str
    id: str
    handle: str
    name: str
    created_at: str | None = None


class ClearanceRow(BaseModel):
    """Rights-clearance verdict for one recording of a release."""

    release_id: str
    track_id: str
    is_matched: bool | None = None
    is_cleared: bool | None = None
