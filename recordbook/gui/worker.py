"""
StoreWorker — runs RecordStore operations in a background thread.

Usage (MainWindow)::

    self._thread = QThread()
    self._worker = StoreWorker(store, handle)
    self._worker.moveToThread(self._thread)
    self.request.connect(self._worker.execute)      # queued → issue order
    self._worker.records_changed.connect(self._page.load_records)
    self._worker.failed.connect(self._page.show_error)
    self._thread.start()
    self.request.emit("create", ("Buy milk",))

Signals
───────
records_changed(list)  — store.list() result after every list / mutation
applied(str, bool)     — create / update / delete finished; bool is whether a row changed
exported(str)          — destination path after a successful export
imported(int)          — record count after a successful import
failed(str)            — human-readable error message
"""

import logging

from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from recordbook.store.db import RecordStore
from recordbook.store.models import Handle

__all__ = ["StoreWorker", "OPERATIONS"]

logger = logging.getLogger(__name__)

# Operations a caller may request; mutations are followed by a fresh list.
OPERATIONS = ("list", "create", "update", "delete", "export", "import")


class StoreWorker(QObject):
    """
    Owns the store handle on the worker thread.

    Requests arrive over a queued signal connection, so they run one at a
    time in the order they were emitted.  All interaction with the GUI must
    go through signals — never touch Qt widgets from inside execute().
    """

    records_changed = pyqtSignal(object)
    applied         = pyqtSignal(str, bool)
    exported        = pyqtSignal(str)
    imported        = pyqtSignal(int)
    failed          = pyqtSignal(str)

    def __init__(self, store: RecordStore, handle: Handle) -> None:
        super().__init__()
        self._store  = store
        self._handle = handle

    @property
    def handle(self) -> Handle:
        return self._handle

    @pyqtSlot(str, object)
    def execute(self, operation: str, args: tuple) -> None:
        """Run *operation* with *args*; connect a queued signal to this slot."""
        try:
            self._dispatch(operation, args)
        except Exception as exc:  # noqa: BLE001
            logger.exception("StoreWorker %s failed", operation)
            self.failed.emit(str(exc))

    def _dispatch(self, operation: str, args: tuple) -> None:
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown store operation: {operation!r}")

        if operation == "create":
            self.applied.emit(operation, self._store.create(self._handle, *args) is not None)
        elif operation == "update":
            self.applied.emit(operation, self._store.update(self._handle, *args))
        elif operation == "delete":
            self.applied.emit(operation, self._store.delete(self._handle, *args))
        elif operation == "export":
            (dest,) = args
            self._store.export_to(self._handle, dest)
            self.exported.emit(str(dest))
            return
        elif operation == "import":
            (src,) = args
            self._handle = self._store.import_from(self._handle, src)

        records = self._store.list(self._handle)
        if operation == "import":
            self.imported.emit(len(records))
        self.records_changed.emit(records)
