"""
MainWindow — top-level application window for the recordbook GUI.

Hosts RecordListPage and a StoreWorker living on its own QThread.  Every
store call is sent to the worker as a queued request, so operations run in
the order the user issued them and never block the UI thread.  After each
call the worker lists the records again and the page re-renders.
"""

import logging
from typing import Optional

from PyQt6.QtCore import QThread, pyqtSignal
from PyQt6.QtWidgets import QFileDialog, QMainWindow, QWidget

from recordbook.gui.pages.record_list import RecordListPage
from recordbook.gui.worker import StoreWorker
from recordbook.store.db import DEFAULT_DB_NAME, RecordStore
from recordbook.store.models import Handle

__all__ = ["MainWindow"]

logger = logging.getLogger(__name__)

_DB_FILE_FILTER = "SQLite database (*.db *.sqlite);;All files (*)"


class MainWindow(QMainWindow):
    """Root window: wires the page's buttons to the background store worker."""

    # (operation, args) — connected to StoreWorker.execute across threads
    request = pyqtSignal(str, object)

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        handle: Optional[Handle] = None,
        parent: QWidget = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Record Book")
        self.resize(420, 560)

        if store is None:
            from recordbook.cli.main import default_data_dir
            store = RecordStore(default_data_dir())
        self._store = store
        handle = handle or store.open(DEFAULT_DB_NAME)

        self._build_ui()
        self._start_worker(handle)
        self._connect_actions()

        self.request.emit("list", ())

    # ── UI construction ────────────────────────────────────────────────────

    def _build_ui(self) -> None:
        self._page = RecordListPage()
        self.setCentralWidget(self._page)

    def _start_worker(self, handle: Handle) -> None:
        self._thread = QThread()
        self._worker = StoreWorker(self._store, handle)
        self._worker.moveToThread(self._thread)

        self.request.connect(self._worker.execute)
        self._worker.records_changed.connect(self._on_records_changed)
        self._worker.applied.connect(self._on_applied)
        self._worker.failed.connect(self._on_failed)
        self._worker.exported.connect(self._on_exported)
        self._worker.imported.connect(self._on_imported)

        self._thread.start()

    # ── Action wiring ──────────────────────────────────────────────────────

    def _connect_actions(self) -> None:
        self._page._create_btn.clicked.connect(self._on_create_clicked)
        self._page._name_edit.returnPressed.connect(self._on_create_clicked)
        self._page._update_btn.clicked.connect(self._on_update_clicked)
        self._page._delete_btn.clicked.connect(self._on_delete_clicked)
        self._page._export_btn.clicked.connect(self._on_export_clicked)
        self._page._import_btn.clicked.connect(self._on_import_clicked)

    def _on_create_clicked(self) -> None:
        vm = self._page.view_model
        if not vm.can_submit:
            return
        self.request.emit("create", (vm.current_name,))

    def _on_update_clicked(self) -> None:
        vm = self._page.view_model
        if not (vm.can_submit and vm.can_modify_selection):
            return
        self.request.emit("update", (vm.selected.id, vm.current_name))

    def _on_delete_clicked(self) -> None:
        vm = self._page.view_model
        if vm.selected is None:
            return
        self.request.emit("delete", (vm.selected.id,))

    def _on_export_clicked(self) -> None:
        dest, _ = QFileDialog.getSaveFileName(
            self, "Export database", DEFAULT_DB_NAME, _DB_FILE_FILTER
        )
        if dest:
            self.export_to(dest)

    def _on_import_clicked(self) -> None:
        src, _ = QFileDialog.getOpenFileName(
            self, "Import database", "", _DB_FILE_FILTER
        )
        if src:
            self.import_from(src)

    # ── Worker callbacks ───────────────────────────────────────────────────

    def _on_records_changed(self, records: list) -> None:
        self._page.load_records(records)
        self._page.clear_error()
        self._page.set_busy(False)

    def _on_applied(self, operation: str, changed: bool) -> None:
        # Input is kept when the row vanished or the name was blank
        if changed and operation in ("create", "update"):
            self._page.clear_input()

    def _on_failed(self, error: str) -> None:
        self._page.set_busy(False)
        self._page.show_error(error)

    def _on_exported(self, dest: str) -> None:
        self._page.clear_error()
        self.statusBar().showMessage(f"Exported → {dest}", 5000)

    def _on_imported(self, count: int) -> None:
        self.statusBar().showMessage(f"Imported {count} records", 5000)

    # ── Public API ─────────────────────────────────────────────────────────

    def export_to(self, dest: str) -> None:
        """Queue a copy of the database file to *dest*."""
        self.request.emit("export", (dest,))

    def import_from(self, src: str) -> None:
        """Queue a replacement of the database file with *src*."""
        self._page.set_busy(True)
        self.request.emit("import", (src,))

    def shutdown(self) -> None:
        """Stop the worker thread and close the store handle.  Idempotent."""
        if not self._thread.isRunning():
            return
        self._thread.quit()
        self._thread.wait(3000)  # wait up to 3s
        self._store.close(self._worker.handle)

    def closeEvent(self, event) -> None:
        self.shutdown()
        super().closeEvent(event)
