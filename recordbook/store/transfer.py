"""
Byte-stream sources and destinations for database export / import.

The store never talks to a file picker or share sheet directly; the host
hands it a ByteSource (import) or ByteDestination (export).  Local paths are
coerced with as_source() / as_destination().

Usage::

    dest = as_destination("~/Backups/example.db")
    with LocalFileSource(db_path).open() as reader:
        dest.write_atomically(reader, size=db_path.stat().st_size)
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Union

from recordbook.exceptions import PermissionDeniedError

__all__ = [
    "ByteSource",
    "ByteDestination",
    "LocalFileSource",
    "LocalFileDestination",
    "as_source",
    "as_destination",
    "copy_exact",
]

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class ByteSource(ABC):
    """A readable byte stream of known total length."""

    @abstractmethod
    def size(self) -> int:
        """Total number of bytes the stream will yield."""
        ...

    @abstractmethod
    def open(self) -> BinaryIO:
        """Return a binary reader positioned at offset 0; the caller closes it."""
        ...


class ByteDestination(ABC):
    """A writable target that publishes its content all at once."""

    @abstractmethod
    def write_atomically(self, reader: BinaryIO, size: int) -> None:
        """
        Copy exactly *size* bytes from *reader*.

        Readers of the destination must see either the previous content or
        the complete new content, never a partial copy.

        Raises:
            PermissionDeniedError: The host refused access.
            OSError: Any other I/O failure.
        """
        ...


def copy_exact(reader: BinaryIO, writer: BinaryIO, size: int) -> None:
    """Copy *reader* into *writer*, raising OSError unless exactly *size* bytes moved."""
    copied = 0
    while True:
        chunk = reader.read(_CHUNK_SIZE)
        if not chunk:
            break
        writer.write(chunk)
        copied += len(chunk)
    if copied != size:
        raise OSError(f"short copy: expected {size} bytes, got {copied}")


class LocalFileSource(ByteSource):
    """A file on the local filesystem."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path).expanduser()

    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except PermissionError as exc:
            raise PermissionDeniedError(f"Access denied: {self.path}") from exc

    def open(self) -> BinaryIO:
        try:
            return open(self.path, "rb")
        except PermissionError as exc:
            raise PermissionDeniedError(f"Access denied: {self.path}") from exc

    def __repr__(self) -> str:
        return f"LocalFileSource({str(self.path)!r})"


class LocalFileDestination(ByteDestination):
    """
    A file on the local filesystem, replaced via temp file + os.replace.

    The temp file lives in the target directory so the final rename never
    crosses a filesystem boundary.
    """

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path).expanduser()

    def write_atomically(self, reader: BinaryIO, size: int) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
        except PermissionError as exc:
            raise PermissionDeniedError(f"Access denied: {self.path.parent}") from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as writer:
                copy_exact(reader, writer, size)
                writer.flush()
                os.fsync(writer.fileno())
            os.replace(tmp_path, self.path)
        except PermissionError as exc:
            raise PermissionDeniedError(f"Access denied: {self.path}") from exc
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        logger.debug("Wrote %d bytes to %s", size, self.path)

    def __repr__(self) -> str:
        return f"LocalFileDestination({str(self.path)!r})"


def as_source(source: Union[ByteSource, str, os.PathLike]) -> ByteSource:
    """Return *source* unchanged if it is a ByteSource, else wrap it as a local path."""
    if isinstance(source, ByteSource):
        return source
    return LocalFileSource(source)


def as_destination(
    destination: Union[ByteDestination, str, os.PathLike],
) -> ByteDestination:
    """Return *destination* unchanged if it is a ByteDestination, else wrap it as a local path."""
    if isinstance(destination, ByteDestination):
        return destination
    return LocalFileDestination(destination)

