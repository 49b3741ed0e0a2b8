"""Document blob storage."""

from pitchflow.storage.blob_store import BlobNotFoundError, BlobStore, LocalBlobStore, get_blob_store

__all__ = ["BlobNotFoundError", "BlobStore", "LocalBlobStore", "get_blob_store"]
