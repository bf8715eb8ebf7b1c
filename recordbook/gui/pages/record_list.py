"""
RecordListPage — the single screen of the recordbook GUI.

Lets the user type a name, create it, select a row and update or delete it,
and export / import the whole database file.  Store failures appear in an
inline notice instead of a modal dialog.

Layout
──────
  ┌─────────────────────────────────────────┐
  │ [Enter task name____________] [Create]  │
  │ ┌─────────────────────────────────────┐ │
  │ │ Buy bread                           │ │
  │ │ Call Bob                            │ │
  │ └─────────────────────────────────────┘ │
  │                     [Update] [Delete]   │
  │ ⚠ error notice                          │
  │ [Export Db]               [Import Db]   │
  └─────────────────────────────────────────┘
"""

import logging

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from recordbook.gui.viewmodels import RecordListViewModel

__all__ = ["RecordListPage"]

logger = logging.getLogger(__name__)


class RecordListPage(QWidget):
    """Create, rename, delete and back up text records."""

    def __init__(self, parent: QWidget = None) -> None:
        super().__init__(parent)
        self._vm = RecordListViewModel()
        self._build_ui()
        self._sync_buttons()

    # ── UI construction ────────────────────────────────────────────────────

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(10)

        # Input row
        input_row = QHBoxLayout()
        self._name_edit = QLineEdit()
        self._name_edit.setPlaceholderText("Enter task name")
        self._name_edit.textChanged.connect(self._on_text_changed)
        input_row.addWidget(self._name_edit)
        self._create_btn = QPushButton("Create")
        input_row.addWidget(self._create_btn)
        layout.addLayout(input_row)

        # Record list
        self._list = QListWidget()
        self._list.currentRowChanged.connect(self._on_row_changed)
        layout.addWidget(self._list)

        # Row actions
        action_row = QHBoxLayout()
        action_row.addStretch()
        self._update_btn = QPushButton("Update")
        self._delete_btn = QPushButton("Delete")
        action_row.addWidget(self._update_btn)
        action_row.addWidget(self._delete_btn)
        layout.addLayout(action_row)

        # Error notice
        self._error_label = QLabel("")
        self._error_label.setWordWrap(True)
        self._error_label.setStyleSheet("color: #c0392b;")
        self._error_label.setVisible(False)
        layout.addWidget(self._error_label)

        # Backup row
        backup_row = QHBoxLayout()
        self._export_btn = QPushButton("Export Db")
        self._import_btn = QPushButton("Import Db")
        backup_row.addWidget(self._export_btn)
        backup_row.addStretch()
        backup_row.addWidget(self._import_btn)
        layout.addLayout(backup_row)

    # ── Slots ──────────────────────────────────────────────────────────────

    def _on_text_changed(self, text: str) -> None:
        self._vm.current_name = text
        self._sync_buttons()

    def _on_row_changed(self, row: int) -> None:
        self._vm.select_row(row)
        self._sync_buttons()

    def _sync_buttons(self) -> None:
        idle = not self._vm.busy
        self._create_btn.setEnabled(idle and self._vm.can_submit)
        self._update_btn.setEnabled(
            idle and self._vm.can_submit and self._vm.can_modify_selection
        )
        self._delete_btn.setEnabled(idle and self._vm.can_modify_selection)
        self._export_btn.setEnabled(idle)
        self._import_btn.setEnabled(idle)

    def _refresh_list(self) -> None:
        selected_id = self._vm.selected.id if self._vm.selected else None
        self._list.blockSignals(True)
        self._list.clear()
        for row, rec in enumerate(self._vm.records):
            item = QListWidgetItem(rec.name)
            item.setData(Qt.ItemDataRole.UserRole, rec.id)
            self._list.addItem(item)
            if rec.id == selected_id:
                self._list.setCurrentRow(row)
        self._list.blockSignals(False)

    # ── Public API ─────────────────────────────────────────────────────────

    @property
    def view_model(self) -> RecordListViewModel:
        return self._vm

    def load_records(self, records) -> None:
        """Populate the list with *records* (list[Record]) in the given order."""
        self._vm.load(records)
        self._refresh_list()
        self._sync_buttons()

    def clear_input(self) -> None:
        """Empty the name box after a successful create / update."""
        self._vm.submitted()
        self._name_edit.clear()

    def set_busy(self, busy: bool) -> None:
        self._vm.busy = busy
        self._sync_buttons()

    def show_error(self, message: str) -> None:
        """Display a store failure as an inline notice."""
        self._vm.set_error(message)
        self._error_label.setText(f"⚠ {message}")
        self._error_label.setVisible(True)

    def clear_error(self) -> None:
        self._vm.clear_error()
        self._error_label.clear()
        self._error_label.setVisible(False)
