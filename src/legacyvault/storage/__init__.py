"""Blob storage collaborators for vault payloads and public shares."""

from .blob import BlobNotFoundError, BlobStore, FileBlobStore, MemoryBlobStore, content_id

__all__ = [
    "BlobNotFoundError",
    "BlobStore",
    "FileBlobStore",
    "MemoryBlobStore",
    "content_id",
]
