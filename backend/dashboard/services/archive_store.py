"""Flat directory of backup archives, addressed by file name."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class ArchiveNotFoundError(FileNotFoundError):
    pass


class ArchiveStore:
    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        # Keys are generated file names; the layout has no nesting.
        if not key or key in (".", "..") or "/" in key or "\\" in key or "\x00" in key:
            raise ValueError(f"Invalid archive key: {key!r}")
        return self.root / key

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def write(self, key: str, data: bytes) -> None:
        """
        Stores `data` under `key`.
        Writes a sibling temp file and renames it, so readers never see a partial archive.
        """
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.part")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        logger.info("archive_store: wrote key=%s size_bytes=%d", key, len(data))

    def read(self, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError:
            raise ArchiveNotFoundError(key) from None

    def delete(self, key: str) -> bool:
        """Removes the archive. Returns False (not an error) when it was already gone."""
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info("archive_store: delete of missing key=%s ignored", key)
            return False
        logger.info("archive_store: deleted key=%s", key)
        return True
