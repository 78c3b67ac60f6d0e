"""
Observability & Audit Layer

RESPONSIBILITY: Logging setup, append-only audit trail of mutations
ALLOWED INPUTS: Audit records from the orchestrator
OUTPUTS: AuditLogEntry lists, summary reports

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Filter or interpret events (only record them)
- Block other layer operations beyond a short append
"""

from __future__ import annotations
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple
import hashlib
import logging
import sys
import threading

from ..contracts.base import Timestamp
from ..contracts.records import AuditEventType, AuditLogEntry


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO", stream=None) -> None:
    """Install a single stream handler on the package logger."""
    root = logging.getLogger("mdhost")
    root.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in list(root.handlers):
        if getattr(handler, "_mdhost_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._mdhost_handler = True
    root.addHandler(handler)


# =============================================================================
# AUDIT LOG
# =============================================================================

class AuditLog:
    """
    Append-only audit collector.

    Entries are immutable. The collector keeps the newest `max_entries`
    of them and drops the oldest beyond that; `total_recorded` still
    counts every append. Appends are serialised so concurrent request
    threads get distinct sequence numbers.
    """

    DEFAULT_MAX_ENTRIES = 1000

    def __init__(self, layer_name: str = "engine", max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._layer_name = layer_name
        self._entries: Deque[AuditLogEntry] = deque(maxlen=max_entries)
        self._sequence: int = 0
        self._lock = threading.Lock()

    def record(
        self,
        action: str,
        event_type: AuditEventType,
        entity_id: Optional[str] = None,
        metadata: Tuple[Tuple[str, str], ...] = ()
    ) -> AuditLogEntry:
        """Append an entry for `action` and return it."""
        timestamp = Timestamp.now()
        with self._lock:
            self._sequence += 1
            entry_hash = hashlib.sha256(
                f"{self._layer_name}_{action}|{timestamp.to_iso()}|{self._sequence}".encode()
            ).hexdigest()[:16]
            entry = AuditLogEntry(
                entry_id=f"audit_{entry_hash}",
                event_type=event_type,
                timestamp=timestamp,
                layer=self._layer_name,
                action=action,
                entity_id=entity_id,
                metadata=metadata
            )
            self._entries.append(entry)
        return entry

    def get_entries(
        self,
        action: Optional[str] = None,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        with self._lock:
            entries = list(self._entries)

        if action:
            entries = [e for e in entries if e.action == action]

        if event_type:
            entries = [e for e in entries if e.event_type == event_type]

        return entries

    def summary(self) -> Dict:
        """Counts per action, for diagnostics."""
        with self._lock:
            entries = list(self._entries)
        by_action: Dict[str, int] = {}
        for entry in entries:
            by_action[entry.action] = by_action.get(entry.action, 0) + 1
        return {
            'total_entries': len(entries),
            'total_recorded': self._sequence,
            'by_action': by_action,
            'generated_at': Timestamp.now().to_iso()
        }

    @property
    def layer_name(self) -> str:
        return self._layer_name

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    @property
    def max_entries(self) -> int:
        return self._entries.maxlen

    @property
    def total_recorded(self) -> int:
        return self._sequence


__all__ = ["AuditLog", "configure_logging", "LOG_FORMAT"]
