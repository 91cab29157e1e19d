"""Parsed delivery document schema."""

from enum import Enum

from pydantic import BaseModel

from .release import PurgeRelease, Release


class MessageKind(str, Enum):
    """Root element of a DDEX message."""

    NEW_RELEASE = "NewReleaseMessage"
    PURGE_RELEASE = "PurgeReleaseMessage"
    MANIFEST = "ManifestMessage"


class SchemaGeneration(str, Enum):
    """Structural generation of the ERN schema a document was written in."""

    ERN3 = "ern3"
    ERN4 = "ern4"


class ParsedDelivery(BaseModel):
    """Result of parsing one delivery XML document.

    Attributes:
        source: Name of the source the document was delivered by
        xml_url: Location the document was read from
        kind: Message kind from the root element
        generation: Detected ERN schema generation
        message_id: MessageId from the header
        message_timestamp: MessageCreatedDateTime from the header (version marker)
        is_update: Whether the header marks this as an UpdateMessage
        releases: Releases for a NewReleaseMessage
        purge: Purged release identifiers for a PurgeReleaseMessage
    """

    source: str
    xml_url: str
    kind: MessageKind
    generation: SchemaGeneration = SchemaGeneration.ERN3
    message_id: str = ""
    message_timestamp: str = ""
    is_update: bool = False
    releases: list[Release] = []
    purge: PurgeRelease | None = None
