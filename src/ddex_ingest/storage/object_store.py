"""Object-store access used by the delivery poller.

The poller only depends on the ObjectStore shape: a marker-based,
delimiter-aware listing and a whole-object read. FilesystemObjectStore
serves that shape from a directory tree, one subdirectory per bucket, with
the listing semantics of an S3 ListObjects call.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel

from ddex_ingest.exceptions import StorageError

logger = logging.getLogger(__name__)


class ObjectSummary(BaseModel):
    key: str
    size: int = 0


class ListResult(BaseModel):
    """One page of a bucket listing.

    Attributes:
        prefixes: Common prefixes rolled up at the delimiter
        objects: Objects directly under the listed prefix
        truncated: Whether more entries follow this page
    """

    prefixes: list[str] = []
    objects: list[ObjectSummary] = []
    truncated: bool = False


class ObjectStore(ABC):
    """Abstract base class for bucket storage.

    Attributes:
        scheme: URL scheme documents from this store are recorded under
    """

    scheme: str = "s3"

    @abstractmethod
    def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        delimiter: str | None = None,
        marker: str = "",
    ) -> ListResult:
        """List entries of a bucket in key order, strictly after marker.

        Args:
            bucket: Bucket name
            prefix: Only keys starting with this prefix
            delimiter: Roll keys up into common prefixes at this delimiter
            marker: Exclusive lower bound on returned keys and prefixes

        Raises:
            StorageError: If the bucket cannot be listed
        """
        pass

    @abstractmethod
    def get_object(self, bucket: str, key: str) -> bytes:
        """Read a whole object.

        Raises:
            StorageError: If the object cannot be read
        """
        pass

    def url_for(self, bucket: str, key: str) -> str:
        return f"{self.scheme}://{bucket}/{key}"

    def split_url(self, url: str) -> tuple[str, str]:
        """Inverse of url_for: return (bucket, key)."""
        scheme_prefix = f"{self.scheme}://"
        if not url.startswith(scheme_prefix):
            raise StorageError(f"Not a {self.scheme} url: {url}")
        bucket, _, key = url[len(scheme_prefix) :].partition("/")
        return bucket, key


class FilesystemObjectStore(ObjectStore):
    """Buckets as directories under a root.

    Attributes:
        root: Directory containing one subdirectory per bucket
        max_keys: Page size of a listing
    """

    def __init__(self, root: Path | str, max_keys: int = 1000, scheme: str = "s3"):
        self.root = Path(root)
        self.max_keys = max_keys
        self.scheme = scheme

    def _bucket_dir(self, bucket: str) -> Path:
        bucket_dir = self.root / bucket
        if not bucket_dir.is_dir():
            raise StorageError(f"No such bucket: {bucket}", bucket=bucket)
        return bucket_dir

    def _keys(self, bucket: str) -> list[str]:
        bucket_dir = self._bucket_dir(bucket)
        return sorted(
            path.relative_to(bucket_dir).as_posix()
            for path in bucket_dir.rglob("*")
            if path.is_file()
        )

    def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        delimiter: str | None = None,
        marker: str = "",
    ) -> ListResult:
        bucket_dir = self._bucket_dir(bucket)
        result = ListResult()
        count = 0

        for key in self._keys(bucket):
            if not key.startswith(prefix) or key <= marker:
                continue

            common_prefix = None
            if delimiter:
                index = key.find(delimiter, len(prefix))
                if index != -1:
                    common_prefix = key[: index + len(delimiter)]

            if common_prefix is not None:
                if common_prefix <= marker:
                    continue
                if result.prefixes and result.prefixes[-1] == common_prefix:
                    continue

            if count == self.max_keys:
                result.truncated = True
                break

            if common_prefix is not None:
                result.prefixes.append(common_prefix)
            else:
                size = (bucket_dir / key).stat().st_size
                result.objects.append(ObjectSummary(key=key, size=size))
            count += 1

        logger.debug(
            f"Listed {bucket}/{prefix} after {marker!r}: {len(result.prefixes)} prefixes, "
            f"{len(result.objects)} objects, truncated={result.truncated}"
        )
        return result

    def get_object(self, bucket: str, key: str) -> bytes:
        path = self._bucket_dir(bucket) / key
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {bucket}/{key}: {e}", bucket=bucket, key=key) from e
