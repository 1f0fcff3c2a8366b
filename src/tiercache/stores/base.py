"""Capability shared by the local and remote cache tiers."""

from typing import BinaryIO, Callable, Protocol, runtime_checkable

from tiercache.entries import ContentWriter
from tiercache.keys import CacheKey

EntryConsumer = Callable[[BinaryIO], None]


@runtime_checkable
class CacheStore(Protocol):
    """A single cache tier.

    Implementations must be safe to call from several threads at once.
    """

    def load(self, key: CacheKey, consumer: EntryConsumer) -> bool:
        """Look up *key* and hand its content to *consumer*.

        The reader passed to *consumer* is only valid during the call.

        Returns:
            True if the entry was found and *consumer* was called once,
            False if the entry does not exist
        """
        ...

    def store(self, key: CacheKey, writer: ContentWriter) -> None:
        """Persist the writer's bytes under *key*, replacing any entry."""
        ...

    def close(self) -> None:
        """Release any resources held by the store."""
        ...
