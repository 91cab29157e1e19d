"""Reading deliveries from the local filesystem.

A local delivery is a single XML file, a directory tree of XML files, or a
.zip package. Documents inside a zip are addressed as "<zip path>!<member>".
"""

import logging
import zipfile
from collections.abc import Iterator
from pathlib import Path

from ddex_ingest.exceptions import StorageError

logger = logging.getLogger(__name__)

ZIP_MEMBER_SEPARATOR = "!"


def _is_xml(name: str) -> bool:
    return name.lower().endswith(".xml")


def iter_delivery_files(path: Path | str) -> Iterator[tuple[str, bytes]]:
    """Yield (xml_url, document bytes) for every XML document in a delivery.

    Args:
        path: XML file, directory, or zip package

    Raises:
        StorageError: If the path does not exist or is not a supported delivery
    """
    path = Path(path)

    if not path.exists():
        raise StorageError(f"Delivery not found: {path}")

    if path.is_dir():
        for xml_path in sorted(p for p in path.rglob("*") if p.is_file() and _is_xml(p.name)):
            yield str(xml_path), xml_path.read_bytes()

    elif path.suffix.lower() == ".zip":
        with zipfile.ZipFile(path) as archive:
            for member in sorted(n for n in archive.namelist() if _is_xml(n)):
                yield f"{path}{ZIP_MEMBER_SEPARATOR}{member}", archive.read(member)

    elif _is_xml(path.name):
        yield str(path), path.read_bytes()

    else:
        raise StorageError(f"Not an XML file, directory or zip: {path}")


def read_local(xml_url: str) -> bytes:
    """Read a document previously yielded by iter_delivery_files."""
    zip_path, separator, member = xml_url.partition(ZIP_MEMBER_SEPARATOR)
    try:
        if separator and zip_path.lower().endswith(".zip"):
            with zipfile.ZipFile(zip_path) as archive:
                return archive.read(member)
        return Path(xml_url).read_bytes()
    except (OSError, KeyError, zipfile.BadZipFile) as e:
        raise StorageError(f"Failed to read {xml_url}: {e}") from e
