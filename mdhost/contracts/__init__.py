"""
Contracts Module

This module defines the explicit types shared between layers. Storage
backends, the revision orchestrator and the protocol layer communicate
ONLY through these contracts.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Failures are explicit Error values carried inside a Result
3. Content identity is hash-based: the address IS the storage key
4. All timestamps use UTC and are never mutated
"""

from .base import (
    ContentAddress,
    Error,
    ErrorCode,
    Result,
    Timestamp,
)
from .records import AuditEventType, AuditLogEntry, FileRecord

__all__ = [
    "AuditEventType",
    "AuditLogEntry",
    "ContentAddress",
    "Error",
    "ErrorCode",
    "FileRecord",
    "Result",
    "Timestamp",
]
