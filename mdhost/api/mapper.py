"""
API Mapper
==========

Translates orchestrator results into transport terms: error kinds into
(status, error_code, error_message) and FileRecords into DTO dicts.
This is the ONLY place an ErrorCode becomes an HTTP status.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..contracts.base import Error, ErrorCode
from ..contracts.records import FileRecord


@dataclass(frozen=True)
class ErrorMapping:
    """Wire representation of one failure."""
    status_code: int
    error_code: str
    error_message: str

    def to_dict(self) -> Dict[str, str]:
        return {"error_code": self.error_code, "error_message": self.error_message}


FILE_NOT_FOUND = ErrorMapping(404, "file_notfound", "File was not found.")
NO_REVISIONS = ErrorMapping(500, "file_norevisions", "No revisions found for this file.")
REVISION_NOT_FOUND = ErrorMapping(500, "rev_notfound", "Revision not found.")
SHA_MISSING = ErrorMapping(500, "sha_missing", "SHA missing.")
EXISTS_ERROR = ErrorMapping(500, "exists_err", "Could not detect if file exists.")
FILE_CREATION = ErrorMapping(404, "file_creation", "Could not create new file.")
IO_ERROR = ErrorMapping(500, "io", "Could not read request body.")
STORAGE_WRITE = ErrorMapping(500, "storage", "Could not store revision bytes.")
STORAGE_READ = ErrorMapping(500, "storage", "Could not read from storage.")
INVALID_REQUEST = ErrorMapping(422, "invalid_request", "Request parameters are invalid.")
INTERNAL_ERROR = ErrorMapping(500, "internal", "Internal server error.")

# Errors raised by routing itself (unknown path, wrong method)
HTTP_STATUS_ERRORS: Dict[int, ErrorMapping] = {
    404: ErrorMapping(404, "not_found", "Resource not found."),
    405: ErrorMapping(405, "method_not_allowed", "Method not allowed."),
}

DEFAULT_ERROR_MAP: Dict[ErrorCode, ErrorMapping] = {
    ErrorCode.FILE_NOT_FOUND: FILE_NOT_FOUND,
    ErrorCode.INVALID_NAME: FILE_NOT_FOUND,
    ErrorCode.INVALID_CONTENT_TYPE: FILE_CREATION,
    ErrorCode.FILE_ALREADY_EXISTS: FILE_CREATION,
    ErrorCode.NO_REVISIONS: NO_REVISIONS,
    ErrorCode.REVISION_NOT_FOUND: REVISION_NOT_FOUND,
    ErrorCode.IO_ERROR: IO_ERROR,
    ErrorCode.STORAGE_ERROR: STORAGE_WRITE,
}

# Per-route overrides
READ_OVERRIDES: Dict[ErrorCode, ErrorMapping] = {ErrorCode.STORAGE_ERROR: STORAGE_READ}


def map_error(
    error: Error,
    overrides: Optional[Mapping[ErrorCode, ErrorMapping]] = None
) -> ErrorMapping:
    """Resolve the wire mapping for `error`, route overrides first."""
    if overrides and error.code in overrides:
        return overrides[error.code]
    return DEFAULT_ERROR_MAP.get(error.code, STORAGE_WRITE)


def map_http_status(status_code: int) -> ErrorMapping:
    """Wire mapping for a framework-level HTTP error."""
    mapping = HTTP_STATUS_ERRORS.get(status_code)
    if mapping is None:
        mapping = ErrorMapping(status_code, "http_error", f"HTTP error {status_code}.")
    return mapping


def map_file_to_dto(record: FileRecord) -> Dict[str, Any]:
    """Map FileRecord to the metadata DTO."""
    return record.to_dict()


def revision_media_type(data: bytes) -> str:
    """Text when the bytes are valid UTF-8, opaque bytes otherwise."""
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return "application/octet-stream"
    return "text/plain; charset=utf-8"
