"""Exceptions raised while ingesting deliveries."""


class IngestError(Exception):
    """Base exception for all ingest errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class ParseError(IngestError):
    """Raised when a delivery document cannot be parsed."""

    def __init__(self, message: str, xml_url: str | None = None, *args, **kwargs):
        self.xml_url = xml_url
        super().__init__(message, *args, **kwargs)


class NoIdentifierError(IngestError):
    """Raised when a release has none of the key-eligible identifiers."""

    def __init__(self, message: str, release_ids: dict | None = None, *args, **kwargs):
        self.release_ids = release_ids or {}
        super().__init__(message, *args, **kwargs)


class StorageError(IngestError):
    """Raised when the object store cannot list or read an object."""

    def __init__(self, message: str, bucket: str | None = None, key: str | None = None, *args, **kwargs):
        self.bucket = bucket
        self.key = key
        super().__init__(message, *args, **kwargs)
