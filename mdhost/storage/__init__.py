"""
Storage Layer

RESPONSIBILITY: Content-addressed blob persistence and the name index
ALLOWED INPUTS: Raw revision bytes, content addresses, file names
OUTPUTS: ContentAddress, bytes, FileRecord (always wrapped in Result)

WHAT THIS LAYER MUST NOT DO:
============================
- Render, parse or interpret revision content
- Delete or rewrite stored blobs (write-once)
- Reorder or drop addresses from a file history (append-only)
- Know about the transport protocol

Both capabilities are abstract interfaces; the orchestrator never
depends on a concrete backend.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import os

from .content_store import ContentStore, InMemoryContentStore, FileContentStore
from .file_registry import (
    FileRegistry, InMemoryFileRegistry, SqliteFileRegistry, NameLockTable
)


BLOBS_DIRNAME = "blobs"
REGISTRY_FILENAME = "files.db"


@dataclass(frozen=True)
class StorageConfig:
    """Configuration for the storage backends."""
    backend_type: str = "memory"  # "memory" or "file"
    storage_dir: Optional[str] = None

    def __post_init__(self):
        if self.backend_type == "file" and not self.storage_dir:
            raise ValueError("storage_dir is required for the file backend")


def create_content_store(config: Optional[StorageConfig] = None) -> ContentStore:
    """Create content store based on configuration."""
    config = config or StorageConfig()
    if config.backend_type == "file":
        return FileContentStore(os.path.join(config.storage_dir, BLOBS_DIRNAME))
    return InMemoryContentStore()


def create_file_registry(config: Optional[StorageConfig] = None) -> FileRegistry:
    """Create file registry based on configuration."""
    config = config or StorageConfig()
    if config.backend_type == "file":
        return SqliteFileRegistry(os.path.join(config.storage_dir, REGISTRY_FILENAME))
    return InMemoryFileRegistry()


__all__ = [
    "ContentStore",
    "FileContentStore",
    "FileRegistry",
    "InMemoryContentStore",
    "InMemoryFileRegistry",
    "NameLockTable",
    "SqliteFileRegistry",
    "StorageConfig",
    "create_content_store",
    "create_file_registry",
]
