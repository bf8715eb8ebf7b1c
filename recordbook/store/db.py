"""
RecordStore — SQLite-backed persistence layer for short text records.

Usage::

    store = RecordStore(data_dir="~/.recordbook")
    handle = store.open("example.db")

    rec = store.create(handle, "Buy milk")
    store.update(handle, rec.id, "Buy bread")
    for rec in store.list(handle):
        print(rec.id, rec.name)

    # Whole-file backup / restore
    store.export_to(handle, "~/Backups/example.db")
    handle = store.import_from(handle, "~/Downloads/example.db")
"""

import logging
import os
import sqlite3
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

from recordbook.exceptions import (
    ExportFailedError,
    HandleClosedError,
    ImportFailedError,
    PermissionDeniedError,
    StaleHandleError,
    StorageUnavailableError,
    StoreError,
)
from recordbook.store.models import Handle, HandleState, Record
from recordbook.store.transfer import (
    ByteDestination,
    ByteSource,
    LocalFileSource,
    as_destination,
    as_source,
    copy_exact,
)

__all__ = ["RecordStore", "DEFAULT_DB_NAME"]

logger = logging.getLogger(__name__)

# Path to the SQL schema file bundled with this package
_SCHEMA_PATH = Path(__file__).parent / "migrations" / "schema.sql"

DEFAULT_DB_NAME = "example.db"


@dataclass
class _FileSlot:
    """Per-file mutex and generation counter shared by every handle to it."""
    lock:       threading.RLock = field(default_factory=threading.RLock)
    generation: int             = 0


class RecordStore:
    """
    CRUD and whole-file backup / restore over SQLite files in *data_dir*.

    The database file and schema are created automatically on first open.
    Connections are opened per call and closed before the file lock is
    released, so no connection ever outlives an import's file swap.
    """

    # Shared across instances: two stores over the same directory must
    # still serialise against each other and agree on generations.
    # Entries live for the process: dropping one would reset its generation
    # and let a stale handle pass the check again.  One small entry per
    # database path is fine for a desktop app.
    _slots: dict[Path, _FileSlot] = {}
    _slots_lock = threading.Lock()

    def __init__(self, data_dir: Union[str, os.PathLike]) -> None:
        self._data_dir = Path(data_dir).expanduser()
        self._schema_sql = _SCHEMA_PATH.read_text(encoding="utf-8")

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # ── Internal helpers ──────────────────────────────────────────────────

    def _resolve(self, name: str) -> Path:
        if not name or name in (".", "..") or os.sep in name or (os.altsep and os.altsep in name):
            raise StorageUnavailableError(f"Invalid database name: {name!r}")
        return self._data_dir / name

    @classmethod
    def _slot(cls, path: Path) -> _FileSlot:
        key = path.resolve()
        with cls._slots_lock:
            slot = cls._slots.get(key)
            if slot is None:
                slot = cls._slots[key] = _FileSlot()
            return slot

    @contextmanager
    def _connection(self, path: Path) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and is always closed."""
        try:
            conn = sqlite3.connect(str(path))
        except sqlite3.Error as exc:
            raise StorageUnavailableError(f"Cannot open database {path}: {exc}") from exc
        try:
            # Rollback journal keeps the main file self-contained for copying
            conn.execute("PRAGMA journal_mode=DELETE")
            yield conn
            conn.commit()
        except (sqlite3.Error, ValueError) as exc:
            # ValueError covers text SQLite cannot encode (lone surrogates)
            conn.rollback()
            raise StorageUnavailableError(f"Database error on {path}: {exc}") from exc
        finally:
            conn.close()

    @contextmanager
    def _locked(self, handle: Handle) -> Iterator[_FileSlot]:
        """Hold the file lock for *handle*, failing if the handle is not current."""
        slot = self._slot(handle.path)
        with slot.lock:
            if handle.state is HandleState.CLOSED:
                raise HandleClosedError(f"{handle} is closed")
            if handle.generation != slot.generation:
                raise StaleHandleError(
                    f"{handle} was invalidated by an import "
                    f"(current generation {slot.generation})"
                )
            yield slot

    def _ensure_schema(self, path: Path) -> None:
        """Create tables if they don't already exist."""
        with self._connection(path) as conn:
            conn.executescript(self._schema_sql)

    def _stage_import(self, source: ByteSource, target: Path) -> Path:
        """
        Copy *source* into a temp file beside *target* and prove it opens
        as an SQLite database.  Returns the staged path; the caller removes
        it if it is not swapped in.
        """
        try:
            size = source.size()
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".import", dir=target.parent
            )
        except PermissionError as exc:
            raise PermissionDeniedError(f"Access denied: {exc.filename}") from exc
        except OSError as exc:
            raise ImportFailedError(f"Cannot import from {source!r}: {exc}") from exc

        staged = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as writer, source.open() as reader:
                copy_exact(reader, writer, size)
                writer.flush()
                os.fsync(writer.fileno())
            self._ensure_schema(staged)
        except PermissionDeniedError:
            staged.unlink(missing_ok=True)
            raise
        except (OSError, StoreError) as exc:
            staged.unlink(missing_ok=True)
            raise ImportFailedError(f"Cannot import from {source!r}: {exc}") from exc
        return staged

    @staticmethod
    def _row_to_record(row: tuple) -> Record:
        return Record(id=row[0], name=row[1])

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def open(self, name: str = DEFAULT_DB_NAME) -> Handle:
        """
        Open (creating if absent) the database file *name* in the data dir.

        Idempotent: reopening never duplicates the schema or loses rows.

        Raises:
            StorageUnavailableError: Directory or file cannot be created/opened.
        """
        path = self._resolve(name)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot create {self._data_dir}: {exc}") from exc

        slot = self._slot(path)
        with slot.lock:
            self._ensure_schema(path)
            handle = Handle(name=name, path=path, generation=slot.generation)
        logger.info("Opened %s", handle)
        return handle

    def close(self, handle: Handle) -> None:
        """Mark *handle* closed.  Closing twice is a no-op."""
        if handle.state is HandleState.CLOSED:
            return
        with self._slot(handle.path).lock:
            handle.state = HandleState.CLOSED
        logger.debug("Closed %s", handle)

    # ── CRUD ──────────────────────────────────────────────────────────────

    def create(self, handle: Handle, name: str) -> Optional[Record]:
        """
        Insert a record named *name*.

        Returns:
            The stored Record, or None if *name* is blank (no-op).
        """
        with self._locked(handle):
            if not name.strip():
                logger.debug("create() ignored blank name")
                return None
            with self._connection(handle.path) as conn:
                cur = conn.execute("INSERT INTO names (name) VALUES (?)", (name,))
                record = Record(id=cur.lastrowid, name=name)
        logger.debug("Created %s", record)
        return record

    def get(self, handle: Handle, record_id: int) -> Optional[Record]:
        """Return the record with *record_id*, or None."""
        with self._locked(handle), self._connection(handle.path) as conn:
            row = conn.execute(
                "SELECT id, name FROM names WHERE id=?", (record_id,)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def list(self, handle: Handle) -> list[Record]:
        """Return every record in insertion order."""
        with self._locked(handle), self._connection(handle.path) as conn:
            rows = conn.execute("SELECT id, name FROM names ORDER BY id").fetchall()
        return [self._row_to_record(r) for r in rows]

    def update(self, handle: Handle, record_id: int, new_name: str) -> bool:
        """
        Rename the record with *record_id*.

        Returns:
            True if the row existed and was changed; False if it is absent or
            *new_name* is blank.
        """
        with self._locked(handle):
            if not new_name.strip():
                logger.debug("update() ignored blank name for id=%s", record_id)
                return False
            with self._connection(handle.path) as conn:
                cur = conn.execute(
                    "UPDATE names SET name=? WHERE id=?", (new_name, record_id)
                )
                return cur.rowcount > 0

    def delete(self, handle: Handle, record_id: int) -> bool:
        """
        Delete a single record by id.

        Returns:
            True if a row was deleted, False if id not found.
        """
        with self._locked(handle), self._connection(handle.path) as conn:
            cur = conn.execute("DELETE FROM names WHERE id=?", (record_id,))
            return cur.rowcount > 0

    # ── Backup / restore ──────────────────────────────────────────────────

    def export_to(
        self,
        handle: Handle,
        destination: Union[ByteDestination, str, os.PathLike],
    ) -> None:
        """
        Copy the database file verbatim to *destination*.

        Raises:
            ExportFailedError: The database file is missing or the copy failed.
            PermissionDeniedError: The destination refused access.
        """
        dest = as_destination(destination)
        with self._locked(handle):
            source = LocalFileSource(handle.path)
            try:
                size = source.size()
                with source.open() as reader:
                    dest.write_atomically(reader, size)
            except FileNotFoundError as exc:
                raise ExportFailedError(f"Database file missing: {handle.path}") from exc
            except OSError as exc:
                raise ExportFailedError(f"Cannot export to {dest!r}: {exc}") from exc
        logger.info("Exported %s to %r", handle, dest)

    def import_from(
        self,
        handle: Handle,
        source: Union[ByteSource, str, os.PathLike],
    ) -> Handle:
        """
        Replace the database file with the bytes of *source*.

        The source is staged and checked first; only then is *handle*
        closed, the file swapped in and a new handle returned.  Every other
        handle to the same file becomes stale.  If anything fails before the
        swap, the old file and *handle* stay untouched.

        Raises:
            ImportFailedError: *source* is unreadable, not a database, or the
                swap failed.
            PermissionDeniedError: The source refused access.
        """
        src = as_source(source)
        with self._locked(handle) as slot:
            staged = self._stage_import(src, handle.path)
            try:
                journal = handle.path.with_name(handle.path.name + "-journal")
                if journal.exists():
                    logger.warning("Discarding leftover journal %s", journal)
                    journal.unlink()
                os.replace(staged, handle.path)
            except OSError as exc:
                raise ImportFailedError(f"Cannot replace {handle.path}: {exc}") from exc
            finally:
                staged.unlink(missing_ok=True)

            handle.state = HandleState.CLOSED
            slot.generation += 1
            new_handle = Handle(name=handle.name, path=handle.path, generation=slot.generation)
        logger.info("Imported %r into %s", src, new_handle)
        return new_handle
