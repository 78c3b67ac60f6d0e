"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto
import hashlib
import string


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Every failure a store, registry or orchestrator call can produce
    is enumerated here.
    """
    # Registry errors
    FILE_NOT_FOUND = auto()
    FILE_ALREADY_EXISTS = auto()
    INVALID_NAME = auto()
    INVALID_CONTENT_TYPE = auto()
    NO_REVISIONS = auto()

    # Content store errors
    REVISION_NOT_FOUND = auto()

    # Transport / backend errors
    IO_ERROR = auto()
    STORAGE_ERROR = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: str) -> Error:
        """Build an error stamped with the current time."""
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple(sorted((k, str(v)) for k, v in context.items()))
        )

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)

    @staticmethod
    def fail(code: ErrorCode, message: str, **context: str) -> Result:
        return Result.failure(Error.create(code, message, **context))


# =============================================================================
# IDENTITY TYPES (Immutable, hash-verified)
# =============================================================================

_HEX_DIGITS = frozenset(string.hexdigits.lower())


@dataclass(frozen=True)
class ContentAddress:
    """
    Content-derived identifier of a revision payload.

    The address is the SHA-1 digest of the raw bytes, kept as lowercase
    hex. It is both the storage key and the public revision id.

    TRUST BOUNDARY:
    Two payloads with the same address are treated as identical content.
    Full bytes are never compared once addresses match.
    """
    hex: str

    DIGEST_SIZE = 20  # bytes (160-bit)

    def __post_init__(self):
        if not isinstance(self.hex, str) or len(self.hex) != self.DIGEST_SIZE * 2:
            raise ValueError("ContentAddress must be a 40 character hex string")
        if not set(self.hex) <= _HEX_DIGITS:
            raise ValueError(f"ContentAddress contains non-hex characters: {self.hex!r}")

    @staticmethod
    def compute(data: bytes) -> ContentAddress:
        """Derive the address of a byte payload."""
        return ContentAddress(hex=hashlib.sha1(data).hexdigest())

    @staticmethod
    def from_hex(text: str) -> ContentAddress:
        """Parse the canonical string form (case-insensitive)."""
        if not isinstance(text, str):
            raise ValueError("ContentAddress must be parsed from a string")
        return ContentAddress(hex=text.strip().lower())

    @property
    def digest(self) -> bytes:
        return bytes.fromhex(self.hex)

    def __str__(self) -> str:
        return self.hex


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        # Ensure UTC timezone
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    @staticmethod
    def from_iso(iso_string: str) -> Timestamp:
        dt = datetime.fromisoformat(iso_string.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return Timestamp(value=dt)

    def to_iso(self) -> str:
        return self.value.isoformat()
