"""
CLI entry point for recordbook.

Usage
─────
  # Add, rename and remove records
  python -m recordbook add "Buy milk"
  python -m recordbook rename 1 "Buy bread"
  python -m recordbook delete 1

  # List records
  python -m recordbook list

  # Back up / restore the whole database file
  python -m recordbook export ~/Backups/example.db
  python -m recordbook import ~/Downloads/example.db

  # Launch the desktop window
  python -m recordbook gui

Subcommands are implemented as standalone functions (cmd_list, cmd_add, …)
so they can be unit-tested without invoking argparse.
"""

import argparse
import logging
import os
import sys
from typing import Optional

from recordbook.exceptions import RecordBookError
from recordbook.store.db import DEFAULT_DB_NAME, RecordStore
from recordbook.store.models import Handle, Record

__all__ = [
    "build_parser",
    "default_data_dir",
    "cmd_list",
    "cmd_add",
    "cmd_rename",
    "cmd_delete",
    "cmd_export",
    "cmd_import",
    "main",
]

logger = logging.getLogger(__name__)

_DATA_DIR_ENV = "RECORDBOOK_DIR"


def default_data_dir() -> str:
    """$RECORDBOOK_DIR if set, else ~/.recordbook."""
    return os.environ.get(_DATA_DIR_ENV) or "~/.recordbook"


# ── Argument parser ────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Subcommands: list | add | rename | delete | export | import | gui
    """
    parser = argparse.ArgumentParser(
        prog="recordbook",
        description="Local SQLite record book with file backup / restore",
    )
    parser.add_argument(
        "--data-dir",
        default=default_data_dir(),
        metavar="DIR",
        help=f"Directory holding database files (default: ${_DATA_DIR_ENV} or ~/.recordbook)",
    )
    parser.add_argument(
        "--db",
        default=DEFAULT_DB_NAME,
        metavar="NAME",
        help=f"Database file name inside the data directory (default: {DEFAULT_DB_NAME})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable verbose debug logging",
    )

    sub = parser.add_subparsers(dest="subcommand")

    # ── list ──────────────────────────────────────────────────────────────
    sub.add_parser("list", help="List records in insertion order")

    # ── add ───────────────────────────────────────────────────────────────
    add = sub.add_parser("add", help="Create a record")
    add.add_argument("name", metavar="NAME", help="Record text")

    # ── rename ────────────────────────────────────────────────────────────
    ren = sub.add_parser("rename", help="Change the text of a record")
    ren.add_argument("id", type=int, metavar="ID", help="Record id")
    ren.add_argument("name", metavar="NAME", help="New record text")

    # ── delete ────────────────────────────────────────────────────────────
    dele = sub.add_parser("delete", help="Delete a record")
    dele.add_argument("id", type=int, metavar="ID", help="Record id")

    # ── export / import ───────────────────────────────────────────────────
    exp = sub.add_parser("export", help="Copy the database file to DEST")
    exp.add_argument("dest", metavar="DEST", help="Destination file path")

    imp = sub.add_parser("import", help="Replace the database file with SRC")
    imp.add_argument("src", metavar="SRC", help="Source database file path")

    # ── gui ───────────────────────────────────────────────────────────────
    sub.add_parser("gui", help="Open the desktop window")

    return parser


# ── Command implementations ───────────────────────────────────────────────────


def _print_record(rec: Record) -> None:
    print(f"[{rec.id:>4}]  {rec.name}")


def cmd_list(store: RecordStore, handle: Handle) -> None:
    """Print every record to stdout."""
    records = store.list(handle)
    if not records:
        print("0 records found.")
        return
    for rec in records:
        _print_record(rec)


def cmd_add(store: RecordStore, handle: Handle, name: str) -> Optional[Record]:
    """Create a record; blank names are ignored with a notice."""
    rec = store.create(handle, name)
    if rec is None:
        print("Nothing to add: name is blank.")
        return None
    _print_record(rec)
    return rec


def cmd_rename(store: RecordStore, handle: Handle, record_id: int, name: str) -> bool:
    """Rename record *record_id*; returns False if nothing changed."""
    if not name.strip():
        print("Nothing to rename: name is blank.")
        return False
    changed = store.update(handle, record_id, name)
    if not changed:
        print(f"No record with id={record_id}")
    return changed


def cmd_delete(store: RecordStore, handle: Handle, record_id: int) -> bool:
    """Delete record *record_id*; returns False if it did not exist."""
    removed = store.delete(handle, record_id)
    if not removed:
        print(f"No record with id={record_id}")
    return removed


def cmd_export(store: RecordStore, handle: Handle, dest: str) -> None:
    """Copy the database file to *dest*."""
    store.export_to(handle, dest)
    print(f"Exported → {dest}")


def cmd_import(store: RecordStore, handle: Handle, src: str) -> Handle:
    """Replace the database file with *src* and return the reopened handle."""
    new_handle = store.import_from(handle, src)
    count = len(store.list(new_handle))
    print(f"Imported {count} records from {src}")
    return new_handle


def _run_gui(store: RecordStore, handle: Handle) -> int:
    # Deferred: the CLI must work without PyQt6 installed.
    from PyQt6.QtWidgets import QApplication
    from recordbook.gui.main_window import MainWindow

    app = QApplication.instance() or QApplication(sys.argv)
    win = MainWindow(store=store, handle=handle)
    win.show()
    return app.exec()


# ── Entry point ───────────────────────────────────────────────────────────────


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point. Returns exit code."""
    parser = build_parser()
    ns = parser.parse_args(argv)

    level = logging.DEBUG if ns.debug else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")

    if ns.subcommand is None:
        parser.print_help()
        return 0

    store = RecordStore(data_dir=ns.data_dir)
    try:
        handle = store.open(ns.db)

        if ns.subcommand == "gui":
            return _run_gui(store, handle)

        if ns.subcommand == "list":
            cmd_list(store, handle)
        elif ns.subcommand == "add":
            if cmd_add(store, handle, ns.name) is None:
                return 1
        elif ns.subcommand == "rename":
            if not cmd_rename(store, handle, ns.id, ns.name):
                return 1
        elif ns.subcommand == "delete":
            if not cmd_delete(store, handle, ns.id):
                return 1
        elif ns.subcommand == "export":
            cmd_export(store, handle, ns.dest)
        elif ns.subcommand == "import":
            handle = cmd_import(store, handle, ns.src)
    except RecordBookError as exc:
        logger.debug("%s failed", ns.subcommand, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    store.close(handle)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
