"""
SerialExecutor — runs RecordStore operations off the caller's thread.

A single worker thread gives the store a single-writer queue: calls made
one after another apply in issue order, and each returns a Future.

Usage::

    with SerialExecutor(store, store.open("example.db")) as ex:
        ex.create("A"); ex.create("B")
        records = ex.list().result()
"""

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Union

from recordbook.store.db import RecordStore
from recordbook.store.models import Handle, Record
from recordbook.store.transfer import ByteDestination, ByteSource

__all__ = ["SerialExecutor"]

logger = logging.getLogger(__name__)


class SerialExecutor:
    """
    Queue of store operations bound to one handle.

    ``import_from`` retargets the executor: operations queued after it run
    against the handle the import returned.  Started work is never
    cancelled; shutdown() waits for the queue to drain.
    """

    def __init__(self, store: RecordStore, handle: Handle) -> None:
        self._store  = store
        self._handle = handle
        self._pool   = ThreadPoolExecutor(max_workers=1, thread_name_prefix="recordbook-store")

    @property
    def handle(self) -> Handle:
        """The handle the next queued operation will use."""
        return self._handle

    def _submit(self, method, *args) -> Future:
        # Read the handle when the job runs, not when it is queued.
        return self._pool.submit(lambda: method(self._handle, *args))

    def create(self, name: str) -> "Future[Optional[Record]]":
        return self._submit(self._store.create, name)

    def get(self, record_id: int) -> "Future[Optional[Record]]":
        return self._submit(self._store.get, record_id)

    def list(self) -> "Future[list[Record]]":
        return self._submit(self._store.list)

    def update(self, record_id: int, new_name: str) -> "Future[bool]":
        return self._submit(self._store.update, record_id, new_name)

    def delete(self, record_id: int) -> "Future[bool]":
        return self._submit(self._store.delete, record_id)

    def export_to(self, destination: Union[ByteDestination, str, os.PathLike]) -> "Future[None]":
        return self._submit(self._store.export_to, destination)

    def import_from(self, source: Union[ByteSource, str, os.PathLike]) -> "Future[Handle]":
        def _run() -> Handle:
            self._handle = self._store.import_from(self._handle, source)
            return self._handle
        return self._pool.submit(_run)

    def shutdown(self, close_handle: bool = True) -> None:
        """Drain pending operations and stop the worker thread."""
        self._pool.shutdown(wait=True)
        if close_handle:
            self._store.close(self._handle)
        logger.debug("SerialExecutor for %s shut down", self._handle)

    def __enter__(self) -> "SerialExecutor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
