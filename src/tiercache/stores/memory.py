"""In-process cache store."""

import io
import threading

from tiercache.entries import ContentWriter, capture_writer
from tiercache.keys import CacheKey
from tiercache.stores.base import EntryConsumer


class InMemoryStore:
    """Dictionary-backed cache tier.

    The lock only guards the dictionary; writers are drained and consumers
    run outside it.
    """

    def __init__(self):
        self._entries: dict[CacheKey, bytes] = {}
        self._lock = threading.Lock()
        self.closed = False

    def load(self, key: CacheKey, consumer: EntryConsumer) -> bool:
        with self._lock:
            data = self._entries.get(key)
        if data is None:
            return False
        consumer(io.BytesIO(data))
        return True

    def store(self, key: CacheKey, writer: ContentWriter) -> None:
        data = capture_writer(writer).data
        with self._lock:
            self._entries[key] = data

    def get(self, key: CacheKey):
        """Return the raw bytes stored under *key*, or None."""
        with self._lock:
            return self._entries.get(key)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return f"InMemoryStore(entries={len(self)})"
