"""Runtime configuration: source registry and data locations.

Locations resolve from explicit arguments first, then environment:

- DATA_DIR: directory for the database and default sources file (default: data)
- DDEX_SOURCES: path of sources.json (default: $DATA_DIR/sources.json)
- DDEX_DB_PATH: path of the SQLite catalog (default: $DATA_DIR/ddex.db)
- DDEX_STORE_ROOT: directory holding one subdirectory per bucket (default: $DATA_DIR/buckets)
"""

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from schemas.source import SourceConfig, SourcesFile

logger = logging.getLogger(__name__)


def data_dir() -> Path:
    return Path(os.environ.get("DATA_DIR", "data"))


def sources_path(path: Path | str | None = None) -> Path:
    if path is not None:
        return Path(path)
    if os.environ.get("DDEX_SOURCES"):
        return Path(os.environ["DDEX_SOURCES"])
    return data_dir() / "sources.json"


def database_path(path: Path | str | None = None) -> Path:
    if path is not None:
        return Path(path)
    if os.environ.get("DDEX_DB_PATH"):
        return Path(os.environ["DDEX_DB_PATH"])
    return data_dir() / "ddex.db"


def store_root(path: Path | str | None = None) -> Path:
    if path is not None:
        return Path(path)
    if os.environ.get("DDEX_STORE_ROOT"):
        return Path(os.environ["DDEX_STORE_ROOT"])
    return data_dir() / "buckets"


class Sources:
    """Registry of configured delivering sources."""

    def __init__(self, sources: list[SourceConfig] | None = None):
        self._sources = list(sources or [])

    @classmethod
    def load(cls, path: Path | str | None = None) -> "Sources":
        """Load and validate sources.json.

        A missing file yields an empty registry.

        Raises:
            ValueError: If the file is not valid JSON or fails validation
        """
        path = sources_path(path)
        if not path.exists():
            logger.warning(f"No sources file at {path}")
            return cls()

        try:
            data = json.loads(path.read_text())
            parsed = SourcesFile.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ValueError(f"Invalid sources file {path}: {e}") from e

        logger.debug(f"Loaded {len(parsed.sources)} sources from {path}")
        return cls(parsed.sources)

    def all(self) -> list[SourceConfig]:
        return list(self._sources)

    def find_by_name(self, name: str) -> SourceConfig | None:
        return next((s for s in self._sources if s.name == name), None)

    def find_by_bucket(self, bucket: str) -> SourceConfig | None:
        return next((s for s in self._sources if s.bucket and s.bucket == bucket), None)

    def find_by_xml_url(self, xml_url: str) -> SourceConfig | None:
        """Find the source whose bucket a recorded document url points into."""
        _, _, rest = xml_url.partition("://")
        bucket = rest.split("/", 1)[0] if rest else ""
        return self.find_by_bucket(bucket) if bucket else None

    def find_by_api_key(self, api_key: str) -> SourceConfig | None:
        return next((s for s in self._sources if s.ddex_key and s.ddex_key == api_key), None)

    def api_key_for(self, source: str) -> str | None:
        config = self.find_by_name(source)
        return config.ddex_key if config and config.ddex_key else None
