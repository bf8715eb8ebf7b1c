"""
Project-wide custom exception hierarchy.
All modules raise subclasses of RecordBookError — never bare Exception.
"""

__all__ = [
    "RecordBookError",
    "StoreError",
    "StorageUnavailableError",
    "PermissionDeniedError",
    "ExportFailedError",
    "ImportFailedError",
    "StaleHandleError",
    "HandleClosedError",
]


class RecordBookError(Exception):
    """Root exception for all recordbook errors."""


# ── Store ─────────────────────────────────────────────────────────────────────

class StoreError(RecordBookError):
    """Base class for record store errors."""


class StorageUnavailableError(StoreError):
    """Raised when the database directory or file cannot be created or opened."""


class PermissionDeniedError(StoreError):
    """Raised when the host refuses access to an export / import location."""


class ExportFailedError(StoreError):
    """Raised when the database file cannot be copied out."""


class ImportFailedError(StoreError):
    """Raised when a source file cannot be read or swapped in atomically."""


class StaleHandleError(StoreError):
    """Raised when a handle was invalidated by an import through another handle."""


class HandleClosedError(StaleHandleError):
    """Raised when an operation is attempted on a closed handle."""
