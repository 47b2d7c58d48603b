"""Data directory layout for ridelog.

Everything ridelog writes lives under one data directory::

    <data>/
        cache/<namespace>.json   offline record blobs
        logs/ridelog-*.log       run logs
"""

from __future__ import annotations

import re
from pathlib import Path

CACHE_DIR_NAME = "cache"
LOGS_DIR_NAME = "logs"

_NAMESPACE_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def get_cache_dir(data_dir: Path) -> Path:
    """Get the directory holding offline cache blobs."""
    return data_dir / CACHE_DIR_NAME


def get_cache_path(data_dir: Path, namespace: str) -> Path:
    """Get the blob path for a cache namespace.

    Args:
        data_dir: Base data directory.
        namespace: Fixed namespace key, e.g. ``bikeAppRides``.

    Returns:
        Path to the namespace's JSON file.

    Raises:
        ValueError: If the namespace is not a plain file-name token.
    """
    if not _NAMESPACE_RE.match(namespace):
        raise ValueError(f"Invalid cache namespace: {namespace!r}")
    return get_cache_dir(data_dir) / f"{namespace}.json"


def get_logs_dir(data_dir: Path) -> Path:
    """Get the log directory."""
    return data_dir / LOGS_DIR_NAME
