"""
Registry and Audit Contracts

Immutable records exchanged between the storage layer, the orchestrator
and the protocol layer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from enum import Enum

from .base import ContentAddress, ErrorCode, Result, Timestamp


DEFAULT_CONTENT_TYPE = "text/markdown"


# =============================================================================
# FILE REGISTRY CONTRACTS
# =============================================================================

@dataclass(frozen=True)
class FileRecord:
    """
    Named entry in the file registry.

    INVARIANTS:
    - `revisions` only ever grows by appending (see with_revision)
    - The last element of `revisions` is the latest revision
    - A record is never mutated; appends produce a new record
    """
    name: str
    content_type: str = DEFAULT_CONTENT_TYPE
    revisions: Tuple[ContentAddress, ...] = field(default_factory=tuple)
    created_at: Timestamp = field(default_factory=Timestamp.now)

    def __post_init__(self):
        if not self.name or not isinstance(self.name, str):
            raise ValueError("FileRecord name must be a non-empty string")
        if not self.content_type:
            raise ValueError("FileRecord content_type must be a non-empty string")

    def latest(self) -> Result:
        """Most recently appended address, or NO_REVISIONS."""
        if not self.revisions:
            return Result.fail(
                ErrorCode.NO_REVISIONS,
                "No revisions found for this file.",
                name=self.name
            )
        return Result.success(self.revisions[-1])

    def with_revision(self, address: ContentAddress) -> FileRecord:
        """Return a new record with `address` appended to the history."""
        return FileRecord(
            name=self.name,
            content_type=self.content_type,
            revisions=self.revisions + (address,),
            created_at=self.created_at
        )

    @property
    def revision_count(self) -> int:
        return len(self.revisions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "content_type": self.content_type,
            "revisions": [address.hex for address in self.revisions],
            "created_at": self.created_at.to_iso(),
        }


# =============================================================================
# OBSERVABILITY CONTRACTS
# =============================================================================

class AuditEventType(Enum):
    """Explicit audit event types."""
    FILE = "file"
    REVISION = "revision"
    ERROR = "error"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str  # Which layer generated this
    action: str
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
