"""
File Registry

Mutable index from a file name to its FileRecord. The registry holds
only content addresses; revision bytes live in the content store.

BOUNDARY ENFORCEMENT:
=====================
- Histories are append-only; no operation removes or reorders an address
- append_revision is atomic per name: read history, append, write back
  happen as one indivisible step
- Appends to different names never wait on each other's name lock
- Reads are unsynchronised and see either the pre- or post-append record
"""

from __future__ import annotations
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Union
import logging
import sqlite3
import threading

from ..contracts.base import ContentAddress, ErrorCode, Result, Timestamp
from ..contracts.records import DEFAULT_CONTENT_TYPE, FileRecord


logger = logging.getLogger(__name__)


class FileRegistry:
    """
    Abstract file registry interface.

    Every operation returns a Result; backend failures surface as
    STORAGE_ERROR rather than as exceptions.
    """

    def exists(self, name: str) -> Result:
        """Result value is a bool; an absent name is False, not an error."""
        raise NotImplementedError

    def create(self, name: str, content_type: str = DEFAULT_CONTENT_TYPE) -> Result:
        """Create an empty-history record, or FILE_ALREADY_EXISTS."""
        raise NotImplementedError

    def get(self, name: str) -> Result:
        """Result value is the FileRecord, or FILE_NOT_FOUND."""
        raise NotImplementedError

    def append_revision(self, name: str, address: ContentAddress) -> Result:
        """Atomically append `address`; Result value is the updated record."""
        raise NotImplementedError

    def names(self) -> Result:
        """Sorted list of every registered name."""
        raise NotImplementedError

    def latest(self, file: FileRecord) -> Result:
        """Last address of the history, or NO_REVISIONS."""
        return file.latest()

    @staticmethod
    def _not_found(name: str) -> Result:
        return Result.fail(ErrorCode.FILE_NOT_FOUND, "File was not found.", name=name)

    @staticmethod
    def _already_exists(name: str) -> Result:
        return Result.fail(
            ErrorCode.FILE_ALREADY_EXISTS,
            "A file with this name already exists.",
            name=name
        )


# =============================================================================
# NAME-SCOPED LOCKING
# =============================================================================

class NameLockTable:
    """
    Hands out one lock per file name.

    The table mutex is held only while looking up or inserting a lock,
    never while the caller holds the name lock.
    """

    def __init__(self):
        self._mutex = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def lock_for(self, name: str) -> threading.Lock:
        with self._mutex:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        with self.lock_for(name):
            yield

    def __len__(self) -> int:
        return len(self._locks)


# =============================================================================
# IN-MEMORY FILE REGISTRY (Reference Implementation)
# =============================================================================

class InMemoryFileRegistry(FileRegistry):
    """
    In-memory implementation of the file registry.

    Records are immutable and replaced by a single dict assignment, so
    unlocked readers never observe a torn history.
    """

    def __init__(self):
        self._files: Dict[str, FileRecord] = {}
        self._locks = NameLockTable()

    def exists(self, name: str) -> Result:
        return Result.success(name in self._files)

    def create(self, name: str, content_type: str = DEFAULT_CONTENT_TYPE) -> Result:
        with self._locks.hold(name):
            if name in self._files:
                return self._already_exists(name)
            record = FileRecord(name=name, content_type=content_type)
            self._files[name] = record
        return Result.success(record)

    def get(self, name: str) -> Result:
        record = self._files.get(name)
        if record is None:
            return self._not_found(name)
        return Result.success(record)

    def append_revision(self, name: str, address: ContentAddress) -> Result:
        with self._locks.hold(name):
            current = self._files.get(name)
            if current is None:
                return self._not_found(name)
            updated = current.with_revision(address)
            self._files[name] = updated
        return Result.success(updated)

    def names(self) -> Result:
        return Result.success(sorted(self._files))


# =============================================================================
# SQLITE FILE REGISTRY
# =============================================================================

class SqliteFileRegistry(FileRegistry):
    """
    Persistent registry backed by SQLite.

    append_revision runs inside BEGIN IMMEDIATE and computes the next
    position from MAX(position) in the same transaction. Writers
    serialise on the database write lock and the (name, position)
    primary key rejects a duplicate slot.

    BEGIN IMMEDIATE takes the database-wide write lock, not a per-name
    one. Appends to different names therefore wait on each other for
    the length of one short transaction.
    """

    BUSY_TIMEOUT_SECONDS = 30.0

    def __init__(self, db_path: Union[str, Path]):
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_conn() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript('''
                CREATE TABLE IF NOT EXISTS files (
                    name TEXT PRIMARY KEY,
                    content_type TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS revisions (
                    name TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    sha TEXT NOT NULL,
                    PRIMARY KEY (name, position),
                    FOREIGN KEY (name) REFERENCES files(name)
                );
            ''')

    @contextmanager
    def _get_conn(self):
        """Get database connection (autocommit; transactions are explicit)."""
        conn = sqlite3.connect(
            self._db_path,
            timeout=self.BUSY_TIMEOUT_SECONDS,
            isolation_level=None
        )
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self):
        """Write transaction holding the database reserved lock."""
        with self._get_conn() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _load(self, conn: sqlite3.Connection, name: str):
        row = conn.execute(
            "SELECT name, content_type, created_at FROM files WHERE name = ?",
            (name,)
        ).fetchone()
        if row is None:
            return None

        shas = conn.execute(
            "SELECT sha FROM revisions WHERE name = ? ORDER BY position",
            (name,)
        ).fetchall()

        return FileRecord(
            name=row["name"],
            content_type=row["content_type"],
            revisions=tuple(ContentAddress.from_hex(r["sha"]) for r in shas),
            created_at=Timestamp.from_iso(row["created_at"])
        )

    @staticmethod
    def _storage_error(action: str, name: str, e: Exception) -> Result:
        logger.error("registry %s failed for %r: %s", action, name, e)
        return Result.fail(
            ErrorCode.STORAGE_ERROR,
            f"Registry {action} failed: {e}",
            name=name
        )

    def exists(self, name: str) -> Result:
        try:
            with self._get_conn() as conn:
                row = conn.execute(
                    "SELECT 1 FROM files WHERE name = ?", (name,)
                ).fetchone()
        except sqlite3.Error as e:
            return self._storage_error("exists", name, e)
        return Result.success(row is not None)

    def create(self, name: str, content_type: str = DEFAULT_CONTENT_TYPE) -> Result:
        record = FileRecord(name=name, content_type=content_type)
        try:
            with self._transaction() as conn:
                conn.execute(
                    "INSERT INTO files (name, content_type, created_at) VALUES (?, ?, ?)",
                    (record.name, record.content_type, record.created_at.to_iso())
                )
        except sqlite3.IntegrityError:
            return self._already_exists(name)
        except sqlite3.Error as e:
            return self._storage_error("create", name, e)
        return Result.success(record)

    def get(self, name: str) -> Result:
        try:
            with self._get_conn() as conn:
                record = self._load(conn, name)
        except sqlite3.Error as e:
            return self._storage_error("get", name, e)
        if record is None:
            return self._not_found(name)
        return Result.success(record)

    def append_revision(self, name: str, address: ContentAddress) -> Result:
        try:
            with self._transaction() as conn:
                exists = conn.execute(
                    "SELECT 1 FROM files WHERE name = ?", (name,)
                ).fetchone()
                if exists is None:
                    return self._not_found(name)

                position = conn.execute(
                    "SELECT COALESCE(MAX(position), -1) + 1 FROM revisions WHERE name = ?",
                    (name,)
                ).fetchone()[0]
                conn.execute(
                    "INSERT INTO revisions (name, position, sha) VALUES (?, ?, ?)",
                    (name, position, address.hex)
                )
                record = self._load(conn, name)
        except sqlite3.Error as e:
            return self._storage_error("append", name, e)
        return Result.success(record)

    def names(self) -> Result:
        try:
            with self._get_conn() as conn:
                rows = conn.execute("SELECT name FROM files ORDER BY name").fetchall()
        except sqlite3.Error as e:
            return self._storage_error("names", "*", e)
        return Result.success([r["name"] for r in rows])
