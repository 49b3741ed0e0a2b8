"""
Blob storage for submitted documents.

Path-based get/put contract; the pipeline never interprets paths beyond
passing them back to the store that issued them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)


class BlobNotFoundError(FileNotFoundError):
    """Raised when a blob path does not exist in the store."""


class BlobStore(ABC):
    """Interface for document blob storage."""

    @abstractmethod
    def put(self, path: str, data: bytes, content_type: str = "application/pdf") -> str:
        """Store data at path (overwrites). Returns the stored path."""
        ...

    @abstractmethod
    def get(self, path: str) -> bytes:
        """Return content at path. Raises BlobNotFoundError if missing."""
        ...

    @abstractmethod
    def exists(self, path: str) -> bool: ...

    @abstractmethod
    def delete(self, path: str) -> None: ...


class LocalBlobStore(BlobStore):
    """Filesystem-backed store rooted at a single directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        cleaned = path.strip().lstrip("/")
        if not cleaned:
            raise ValueError("Blob path must not be empty")
        full = (self.root / cleaned).resolve()
        if full != self.root and self.root not in full.parents:
            raise ValueError(f"Blob path escapes storage root: {path!r}")
        return full

    def put(self, path: str, data: bytes, content_type: str = "application/pdf") -> str:
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_bytes(data)
        logger.info("blob_stored: path=%s bytes=%d content_type=%s", path, len(data), content_type)
        return path

    def get(self, path: str) -> bytes:
        full = self._resolve(path)
        if not full.is_file():
            raise BlobNotFoundError(f"Blob not found: {path}")
        return full.read_bytes()

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def delete(self, path: str) -> None:
        full = self._resolve(path)
        if full.is_file():
            full.unlink()


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    """Return the configured blob store (cached)."""
    from pitchflow.config import get_settings

    return LocalBlobStore(get_settings().storage_dir)
