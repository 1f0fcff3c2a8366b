"""Pooled scratch buffers for copying remote content into memory."""

import queue
from contextlib import contextmanager
from typing import BinaryIO, Iterator

DEFAULT_BUFFER_SIZE = 64 * 1024


class BufferPool:
    """Thread-safe pool of reusable ``bytearray`` buffers.

    A buffer handed out by ``acquire`` belongs to the caller until the
    ``with`` block exits. The pool never blocks: when it is empty a new
    buffer is allocated, and buffers returned past ``max_pooled`` are
    dropped.

    Attributes:
        buffer_size: Size in bytes of each buffer
        max_pooled: Maximum number of idle buffers kept for reuse
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE, max_pooled: int = 16):
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")
        self.buffer_size = buffer_size
        self.max_pooled = max_pooled
        self._idle: "queue.LifoQueue[bytearray]" = queue.LifoQueue(maxsize=max_pooled)

    @contextmanager
    def acquire(self) -> Iterator[bytearray]:
        """Borrow a buffer for the duration of a ``with`` block."""
        try:
            buffer = self._idle.get_nowait()
        except queue.Empty:
            buffer = bytearray(self.buffer_size)
        try:
            yield buffer
        finally:
            try:
                self._idle.put_nowait(buffer)
            except queue.Full:
                pass

    def idle_count(self) -> int:
        """Number of buffers currently waiting in the pool."""
        return self._idle.qsize()


def copy_stream(source: BinaryIO, dest: BinaryIO, buffer: bytearray) -> int:
    """Copy *source* to *dest* through *buffer*.

    Uses ``readinto`` when the source supports it, ``read`` otherwise (the
    botocore streaming body only offers ``read``).

    Returns:
        Number of bytes copied
    """
    readinto = getattr(source, "readinto", None)
    total = 0
    with memoryview(buffer) as view:
        while True:
            if readinto is not None:
                count = readinto(view)
                if not count:
                    break
                dest.write(view[:count])
            else:
                chunk = source.read(len(buffer))
                if not chunk:
                    break
                count = len(chunk)
                dest.write(chunk)
            total += count
    return total
