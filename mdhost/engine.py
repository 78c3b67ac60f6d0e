"""
Revision Orchestrator

Binds the content store and the file registry together. This is the
only place that knows a revision is "bytes in the store plus an address
in a file history".

DESIGN PRINCIPLES:
==================
1. Depends only on the ContentStore / FileRegistry interfaces
2. Content is durably stored BEFORE the registry references it
3. Errors from either store pass through unchanged
4. No automatic retries; a failed add_revision is safe to re-issue
"""

from __future__ import annotations
from typing import Optional
import logging

from .contracts.base import ContentAddress, ErrorCode, Result
from .contracts.records import AuditEventType, DEFAULT_CONTENT_TYPE, FileRecord
from .observability import AuditLog
from .storage import ContentStore, FileRegistry


logger = logging.getLogger(__name__)


class RevisionOrchestrator:
    """
    Creates files, appends revisions and resolves the latest revision.

    ORPHANS:
    ========
    add_revision stores content and then appends its address in two
    separate steps. If the append fails, the stored blob stays
    unreferenced. That is harmless: a retry with the same bytes maps to
    the same address and reuses it.
    """

    def __init__(
        self,
        content_store: ContentStore,
        file_registry: FileRegistry,
        audit_log: Optional[AuditLog] = None
    ):
        self._content_store = content_store
        self._file_registry = file_registry
        self._audit_log = audit_log or AuditLog(layer_name="engine")

    # =========================================================================
    # WRITE INTERFACE
    # =========================================================================

    def create_file(self, name: str, content_type: str = DEFAULT_CONTENT_TYPE) -> Result:
        """Register a new, empty file. No content store interaction."""
        invalid = self._check_name(name)
        if invalid:
            return invalid
        if not isinstance(content_type, str) or not content_type.strip():
            return Result.fail(
                ErrorCode.INVALID_CONTENT_TYPE,
                "Content type must be non-empty",
                name=name
            )

        result = self._file_registry.create(name, content_type)
        if result.is_success:
            logger.info("created file %r (%s)", name, content_type)
            self._audit_log.record(
                action="file_created",
                event_type=AuditEventType.FILE,
                entity_id=name,
                metadata=(("content_type", content_type),)
            )
        return result

    def add_revision(self, name: str, data: bytes) -> Result:
        """
        Store `data` and append its address to the history of `name`.

        Result value is the ContentAddress of `data`.
        """
        existing = self.get_file(name)
        if existing.is_failure:
            return existing

        stored = self._content_store.put(data)
        if stored.is_failure:
            return stored
        address: ContentAddress = stored.value

        appended = self._file_registry.append_revision(name, address)
        if appended.is_failure:
            logger.warning(
                "revision %s stored but not appended to %r: %s",
                address.hex, name, appended.error.message
            )
            return appended

        record: FileRecord = appended.value
        logger.info(
            "appended revision %s to %r (position %d)",
            address.hex, name, record.revision_count - 1
        )
        self._audit_log.record(
            action="revision_added",
            event_type=AuditEventType.REVISION,
            entity_id=name,
            metadata=(("sha", address.hex), ("size", str(len(data))))
        )
        return Result.success(address)

    # =========================================================================
    # READ INTERFACE
    # =========================================================================

    def get_file(self, name: str) -> Result:
        invalid = self._check_name(name)
        if invalid:
            return invalid
        return self._file_registry.get(name)

    def file_exists(self, name: str) -> Result:
        if not name:
            return Result.success(False)
        return self._file_registry.exists(name)

    def resolve_latest(self, name: str) -> Result:
        """
        Bytes of the latest revision of `name`.

        First failure wins: FILE_NOT_FOUND, then NO_REVISIONS, then
        REVISION_NOT_FOUND.
        """
        found = self.get_file(name)
        if found.is_failure:
            return found

        latest = self._file_registry.latest(found.value)
        if latest.is_failure:
            return latest

        return self._content_store.get(latest.value)

    def resolve_revision(self, address: ContentAddress) -> Result:
        return self._content_store.get(address)

    def resolve_revision_hex(self, sha: str) -> Result:
        """Like resolve_revision, for an address still in string form."""
        try:
            address = ContentAddress.from_hex(sha)
        except ValueError:
            return Result.fail(ErrorCode.REVISION_NOT_FOUND, "Revision not found.", sha=sha)
        return self.resolve_revision(address)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    @property
    def content_store(self) -> ContentStore:
        return self._content_store

    @property
    def file_registry(self) -> FileRegistry:
        return self._file_registry

    @staticmethod
    def _check_name(name: str) -> Optional[Result]:
        if not name or not isinstance(name, str):
            return Result.fail(ErrorCode.INVALID_NAME, "File name must be a non-empty string.")
        return None
