"""Content-addressed blob stores.

The vault never stores ciphertext itself; it records the identifier of a
blob held by an external store.  Identifiers are the SHA-256 hex digest of
the content, so ``put`` is idempotent and ``get`` can verify what it
returns.

Backends:
- :class:`MemoryBlobStore` - process-local dictionary (tests, demos)
- :class:`FileBlobStore` - one file per blob under a directory
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class BlobNotFoundError(KeyError):
    """No blob is stored under the requested identifier."""


def content_id(data: bytes) -> str:
    """Return the content address of *data*."""
    return hashlib.sha256(data).hexdigest()


class BlobStore(ABC):
    """Abstract base class for blob store backends."""

    @abstractmethod
    def put(self, data: bytes) -> str:
        """Store *data* and return its identifier.

        Args:
            data: Blob contents

        Returns:
            Content identifier
        """

    @abstractmethod
    def get(self, blob_id: str) -> bytes:
        """Fetch a blob.

        Args:
            blob_id: Identifier returned by :meth:`put`

        Returns:
            Blob contents

        Raises:
            BlobNotFoundError: If the blob is not stored
        """

    @abstractmethod
    def exists(self, blob_id: str) -> bool:
        """Check whether a blob is stored."""


class MemoryBlobStore(BlobStore):
    """In-memory blob store."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    def put(self, data: bytes) -> str:
        blob_id = content_id(data)
        self._blobs[blob_id] = bytes(data)
        logger.debug("Stored blob %s (%dB)", blob_id[:12], len(data))
        return blob_id

    def get(self, blob_id: str) -> bytes:
        try:
            return self._blobs[blob_id]
        except KeyError:
            raise BlobNotFoundError(blob_id) from None

    def exists(self, blob_id: str) -> bool:
        return blob_id in self._blobs


class FileBlobStore(BlobStore):
    """Blob store keeping one file per blob in a directory.

    Blobs are re-hashed on read; a file whose content no longer matches its
    name is reported as missing rather than returned.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, blob_id: str) -> Path:
        if len(blob_id) != 64 or any(c not in "0123456789abcdef" for c in blob_id):
            raise BlobNotFoundError(blob_id)
        return self.root / blob_id

    def put(self, data: bytes) -> str:
        blob_id = content_id(data)
        path = self.root / blob_id
        if not path.exists():
            tmp = path.with_suffix(".tmp")
            tmp.write_bytes(data)
            tmp.replace(path)
            logger.debug("Wrote blob %s (%dB)", blob_id[:12], len(data))
        return blob_id

    def get(self, blob_id: str) -> bytes:
        path = self._path(blob_id)
        if not path.exists():
            raise BlobNotFoundError(blob_id)
        data = path.read_bytes()
        if content_id(data) != blob_id:
            logger.warning("Blob %s failed content verification", blob_id[:12])
            raise BlobNotFoundError(blob_id)
        return data

    def exists(self, blob_id: str) -> bool:
        try:
            return self._path(blob_id).exists()
        except BlobNotFoundError:
            return False
