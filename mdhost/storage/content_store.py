"""
Content Store

Content-addressed blob storage. A payload is stored under the SHA-1 of
its bytes, so identical content is kept exactly once no matter how many
files or revisions reference it.

WHAT THIS MODULE MUST NOT DO:
=============================
- Update or delete stored content (write-once)
- Know anything about file names or revision order
- Compare payload bytes once addresses match
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, Union
import logging
import os
import tempfile

from ..contracts.base import ContentAddress, ErrorCode, Result


logger = logging.getLogger(__name__)


class ContentStore:
    """
    Abstract content store interface.

    Implementations can use different storage systems (memory, disk,
    key-value service) while keeping the same write-once semantics.
    """

    def put(self, data: bytes) -> Result:
        """Store `data` if absent; Result value is its ContentAddress."""
        raise NotImplementedError

    def get(self, address: ContentAddress) -> Result:
        """Result value is the stored bytes, or REVISION_NOT_FOUND."""
        raise NotImplementedError

    def contains(self, address: ContentAddress) -> bool:
        raise NotImplementedError

    @staticmethod
    def _not_found(address: ContentAddress) -> Result:
        return Result.fail(
            ErrorCode.REVISION_NOT_FOUND,
            "Revision not found.",
            sha=address.hex
        )


# =============================================================================
# IN-MEMORY CONTENT STORE (Reference Implementation)
# =============================================================================

class InMemoryContentStore(ContentStore):
    """
    In-memory implementation of the content store.

    Writes are idempotent and commutative, so no locking is needed:
    two racing puts of the same bytes assign the same value to the
    same key.
    """

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}

    def put(self, data: bytes) -> Result:
        address = ContentAddress.compute(data)
        if address.hex not in self._blobs:
            self._blobs[address.hex] = bytes(data)
        return Result.success(address)

    def get(self, address: ContentAddress) -> Result:
        data = self._blobs.get(address.hex)
        if data is None:
            return self._not_found(address)
        return Result.success(data)

    def contains(self, address: ContentAddress) -> bool:
        return address.hex in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)


# =============================================================================
# FILE-BASED CONTENT STORE
# =============================================================================

class FileContentStore(ContentStore):
    """
    One file per blob, spread into subdirectories by digest prefix.

    Blobs are written to a temp file in the target directory, fsynced,
    then renamed into place. A reader never sees a partial blob and a
    crash never leaves truncated bytes under a valid address.
    """

    def __init__(self, root: Union[str, Path]):
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def blob_path(self, address: ContentAddress) -> Path:
        return self._root / address.hex[:2] / address.hex

    def put(self, data: bytes) -> Result:
        address = ContentAddress.compute(data)
        path = self.blob_path(address)

        if path.exists():
            return Result.success(address)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error("failed to store blob %s: %s", address.hex, e)
            return Result.fail(
                ErrorCode.STORAGE_ERROR,
                f"Could not store revision bytes: {e}",
                sha=address.hex
            )

        return Result.success(address)

    def get(self, address: ContentAddress) -> Result:
        path = self.blob_path(address)
        try:
            return Result.success(path.read_bytes())
        except FileNotFoundError:
            return self._not_found(address)
        except OSError as e:
            logger.error("failed to read blob %s: %s", address.hex, e)
            return Result.fail(
                ErrorCode.STORAGE_ERROR,
                f"Could not read revision bytes: {e}",
                sha=address.hex
            )

    def contains(self, address: ContentAddress) -> bool:
        return self.blob_path(address).exists()
