"""Object storage and local delivery access."""

from .local import iter_delivery_files, read_local
from .object_store import FilesystemObjectStore, ListResult, ObjectStore, ObjectSummary

__all__ = [
    "ObjectStore",
    "FilesystemObjectStore",
    "ListResult",
    "ObjectSummary",
    "iter_delivery_files",
    "read_local",
]
