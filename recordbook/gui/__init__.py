"""
gui — PyQt6 front-end for recordbook.

Public API
──────────
MainWindow            — top-level application window
viewmodels            — pure-Python observable state containers
pages                 — the record list page
"""

from recordbook.gui.main_window import MainWindow
from recordbook.gui import viewmodels

__all__ = ["MainWindow", "viewmodels"]
