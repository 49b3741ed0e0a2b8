"""Tests for the local blob store."""

from __future__ import annotations

import pytest

from pitchflow.storage.blob_store import BlobNotFoundError, LocalBlobStore


@pytest.fixture
def store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path)


def test_put_then_get(store: LocalBlobStore) -> None:
    path = store.put("uploads/1/deck.pdf", b"%PDF-1.4 data")
    assert path == "uploads/1/deck.pdf"
    assert store.exists(path)
    assert store.get(path) == b"%PDF-1.4 data"


def test_missing_blob_raises(store: LocalBlobStore) -> None:
    with pytest.raises(BlobNotFoundError):
        store.get("nope.pdf")


def test_delete_is_idempotent(store: LocalBlobStore) -> None:
    store.put("a.pdf", b"x")
    store.delete("a.pdf")
    store.delete("a.pdf")
    assert not store.exists("a.pdf")


@pytest.mark.parametrize("path", ["../escape.pdf", "a/../../escape.pdf", ""])
def test_rejects_paths_outside_root(store: LocalBlobStore, path: str) -> None:
    with pytest.raises(ValueError):
        store.put(path, b"x")
