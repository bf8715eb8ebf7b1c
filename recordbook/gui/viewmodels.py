"""
GUI ViewModels — pure-Python observable state containers.

No Qt imports here; every class is testable without a display.
Qt widgets observe these objects and update themselves in response to state
changes.  (Signal emission is handled by the Qt layer, not here.)

Public API
──────────
RecordListViewModel — record list + input text + selection + error notice
"""

import logging
from typing import Optional

from recordbook.store.models import Record

__all__ = ["RecordListViewModel"]

logger = logging.getLogger(__name__)


class RecordListViewModel:
    """
    Manages the state shown on the record list page.

    Attributes
    ──────────
    records        — records in the order the store listed them
    current_name   — text in the input box
    selected       — the highlighted Record, or None
    error_message  — last store failure shown to the user, or ""
    busy           — True while an import is running
    """

    def __init__(self) -> None:
        self.records:       list[Record]     = []
        self.current_name:  str               = ""
        self.selected:      Optional[Record]  = None
        self.error_message: str               = ""
        self.busy:          bool              = False

    def load(self, records: list[Record]) -> None:
        """Replace the record list (called after every store.list())."""
        self.records = list(records)
        # Keep the selection only if that id is still present
        if self.selected is not None:
            self.selected = next((r for r in self.records if r.id == self.selected.id), None)

    def select_row(self, row: int) -> None:
        """Select by list row; out-of-range rows clear the selection."""
        self.selected = self.records[row] if 0 <= row < len(self.records) else None

    @property
    def can_submit(self) -> bool:
        """True iff the input text is non-blank (create / update allowed)."""
        return bool(self.current_name.strip())

    @property
    def can_modify_selection(self) -> bool:
        return self.selected is not None

    def submitted(self) -> None:
        """Clear the input after a successful create / update."""
        self.current_name = ""

    def set_error(self, message: str) -> None:
        logger.warning("Store error shown to user: %s", message)
        self.error_message = message

    def clear_error(self) -> None:
        self.error_message = ""
