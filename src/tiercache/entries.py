"""Content writers used to hand entry bytes to a store.

A writer reports the size of its content and streams it to a destination.
Stores call ``write_to`` once per write; the access layer never relies on a
caller's writer being safe to drain twice and uses ``capture_writer`` to turn
it into a replayable ``BytesWriter`` instead.
"""

import io
import shutil
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from tiercache.errors import ContentSizeMismatchError


@runtime_checkable
class ContentWriter(Protocol):
    """Deferred source of an entry's bytes."""

    def size(self) -> int:
        """Exact number of bytes ``write_to`` will emit."""
        ...

    def write_to(self, output: BinaryIO) -> None:
        """Write the content to *output*."""
        ...


class BytesWriter:
    """Writer over an in-memory payload. Safe to drain any number of times."""

    def __init__(self, data: bytes):
        self._data = bytes(data)

    @property
    def data(self) -> bytes:
        return self._data

    def size(self) -> int:
        return len(self._data)

    def write_to(self, output: BinaryIO) -> None:
        output.write(self._data)

    def __repr__(self) -> str:
        return f"BytesWriter(size={len(self._data)})"


class FileWriter:
    """Writer that streams a file from disk.

    Attributes:
        path: File whose content is written
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._size = self.path.stat().st_size

    def size(self) -> int:
        return self._size

    def write_to(self, output: BinaryIO) -> None:
        with open(self.path, "rb") as f:
            shutil.copyfileobj(f, output)


def capture_writer(writer: ContentWriter) -> BytesWriter:
    """Drain a writer once into memory and return a replayable copy.

    Args:
        writer: Caller-supplied writer

    Returns:
        BytesWriter holding exactly the bytes the writer produced

    Raises:
        ContentSizeMismatchError: If the writer emitted a different number of
            bytes than ``writer.size()`` declared
    """
    if isinstance(writer, BytesWriter):
        return writer

    expected = writer.size()
    buffer = io.BytesIO()
    writer.write_to(buffer)
    data = buffer.getvalue()
    if len(data) != expected:
        raise ContentSizeMismatchError(expected, len(data))
    return BytesWriter(data)
