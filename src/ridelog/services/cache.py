"""Offline record cache for ridelog.

Persists one collection as a single JSON blob keyed by a fixed namespace,
``<data>/cache/<namespace>.json``. The repository only touches it while the
backend is unreachable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ridelog.errors import PersistenceError
from ridelog.lib.paths import get_cache_path

logger = logging.getLogger("ridelog.cache")

RIDES_NAMESPACE = "bikeAppRides"
PHOTOS_NAMESPACE = "bikeAppPhotos"


class LocalCache:
    """JSON blob store for one record collection."""

    def __init__(self, data_dir: Path, namespace: str) -> None:
        """Initialize the cache.

        Args:
            data_dir: Base data directory.
            namespace: Fixed key naming the blob.
        """
        self.data_dir = data_dir
        self.namespace = namespace
        self.path = get_cache_path(data_dir, namespace)

    def read_all(self) -> list[dict[str, Any]]:
        """Read every cached record.

        Returns:
            Cached records in stored order; empty if nothing was cached yet.

        Raises:
            PersistenceError: If the blob exists but cannot be read or parsed.
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read cache {self.path}: {e}") from e

        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise PersistenceError(f"Cache {self.path} does not hold a record list")

        logger.debug("Read %d records from %s", len(data), self.path)
        return data

    def write_all(self, records: list[dict[str, Any]]) -> Path:
        """Replace the cached blob with `records`.

        The blob is serialized in full before anything touches the disk, then
        written to a temporary file and moved over the old one, so a failed
        write leaves the previous blob intact.

        Args:
            records: Records in wire shape.

        Returns:
            Path to the written blob.

        Raises:
            PersistenceError: If serialization or the write fails.
        """
        try:
            content = json.dumps(records, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot serialize {self.namespace} records: {e}") from e

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.namespace}-", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            Path(tmp_name).replace(self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write cache {self.path}: {e}") from e

        logger.debug("Wrote %d records to %s", len(records), self.path)
        return self.path

    def clear(self) -> bool:
        """Remove the cached blob.

        Returns:
            True if a blob was removed.
        """
        if not self.path.exists():
            return False
        try:
            self.path.unlink()
        except OSError as e:
            raise PersistenceError(f"Cannot remove cache {self.path}: {e}") from e
        return True
