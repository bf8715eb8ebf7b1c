"""Data models for the store module."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

__all__ = ["Record", "HandleState", "Handle"]


@dataclass(frozen=True)
class Record:
    """
    One row of the ``names`` table.

    Fields
    ──────
    id   — SQLite AUTOINCREMENT id, never reused after delete
    name — the text as entered by the user
    """
    id:   int
    name: str

    def __str__(self) -> str:
        return f"Record(id={self.id}, name={self.name!r})"


class HandleState(str, Enum):
    OPEN   = "open"
    CLOSED = "closed"


@dataclass(eq=False)
class Handle:
    """
    An open reference to one database file.

    ``generation`` is the file generation the handle was opened against;
    an import through any handle bumps the file's generation and every
    older handle becomes stale.
    """
    name:       str
    path:       Path
    generation: int
    state:      HandleState = HandleState.OPEN

    @property
    def is_open(self) -> bool:
        return self.state is HandleState.OPEN

    def __str__(self) -> str:
        return f"Handle({self.name!r}, gen={self.generation}, {self.state.value})"
