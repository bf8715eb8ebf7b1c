"""recordbook — a local SQLite record book with whole-file backup / restore."""

__version__ = "0.1.0"
