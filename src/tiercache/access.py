"""Two-tier cache access.

Reads consult the local tier first and fall back to the remote tier, copying
remote hits into the local tier so the next lookup is served locally. Writes
go to both tiers, local first.

Each key is processed as an independent unit of work. Units share nothing
but the two store handles and the scratch buffer pool, so a batch can be
fanned out over a thread pool (``max_workers > 1``) without changing its
outcome. Failures are collected per key and raised together as a
``BatchError`` once the whole batch has been processed.
"""

import io
from concurrent.futures import ThreadPoolExecutor
from typing import Any, BinaryIO, Callable, Hashable, Iterable, Optional

from tiercache.buffers import DEFAULT_BUFFER_SIZE, BufferPool, copy_stream
from tiercache.closer import close_all
from tiercache.entries import BytesWriter, ContentWriter, capture_writer
from tiercache.errors import BatchError, CacheWriteError, KeyFailure, TierUnavailableError
from tiercache.logging_config import get_logger
from tiercache.stores.base import CacheStore

logger = get_logger(__name__)

EntryProcessor = Callable[[Any, BinaryIO], None]
WriterFactory = Callable[[Any], ContentWriter]
UnitOfWork = Callable[[], list[KeyFailure]]


class CacheAccess:
    """Batch load/store over a local and a remote cache tier.

    Attributes:
        local: Fast, private tier consulted first
        remote: Shared, slower tier used on local miss
        max_workers: Number of threads a batch may use (1 runs inline)
    """

    def __init__(
        self,
        local: CacheStore,
        remote: CacheStore,
        max_workers: int = 1,
        buffer_pool: Optional[BufferPool] = None,
    ):
        """Initialize the access layer.

        Args:
            local: Local cache tier
            remote: Remote cache tier
            max_workers: Maximum threads used to process one batch
            buffer_pool: Scratch buffers for copying remote content
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.local = local
        self.remote = remote
        self.max_workers = max_workers
        self._buffers = buffer_pool or BufferPool(DEFAULT_BUFFER_SIZE)

    def load(self, keys: Iterable[Hashable], processor: EntryProcessor) -> None:
        """Load a batch of keys.

        ``processor(key, reader)`` is called once for every key occurrence
        found in either tier. Keys missing from both tiers are skipped. The
        reader is only valid during the call. With ``max_workers > 1`` the
        processor is called from worker threads, in no particular order.

        Args:
            keys: Keys to load; duplicates are loaded independently
            processor: Receives each found entry

        Raises:
            BatchError: If any key failed; raised after all keys ran
        """
        units = [(key, self._load_unit(key, processor)) for key in keys]
        self._run_batch("load", units)

    def store(self, keys: Iterable[Hashable], writer_factory: WriterFactory) -> None:
        """Store a batch of keys in both tiers.

        ``writer_factory(key)`` is called once per key occurrence. Its writer
        is drained once and the captured bytes are written to the local tier,
        then the remote tier. Repeated occurrences of a key are written in
        input order, so the last one wins in both tiers.

        Args:
            keys: Keys to store
            writer_factory: Produces the content writer for a key

        Raises:
            BatchError: If any key failed; raised after all keys ran
        """
        occurrences: dict[Hashable, int] = {}
        for key in keys:
            occurrences[key] = occurrences.get(key, 0) + 1

        units = [
            (key, self._store_unit(key, count, writer_factory))
            for key, count in occurrences.items()
        ]
        self._run_batch("store", units)

    def close(self) -> None:
        """Close both tiers, local first.

        Raises:
            CacheCloseError: If either close failed
        """
        close_all([self.local, self.remote])

    def __enter__(self) -> "CacheAccess":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _run_batch(self, operation: str, units: list[tuple[Hashable, UnitOfWork]]) -> None:
        if not units:
            return

        if self.max_workers == 1 or len(units) == 1:
            results = [unit() for _, unit in units]
        else:
            workers = min(self.max_workers, len(units))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tiercache") as pool:
                futures = [pool.submit(unit) for _, unit in units]
            results = [future.result() for future in futures]

        failures = [failure for result in results for failure in result]
        if failures:
            logger.error(f"{operation} failed for {len(failures)} of {len(units)} key(s)")
            raise BatchError(operation, failures)

    def _load_unit(self, key: Hashable, processor: EntryProcessor) -> UnitOfWork:
        def unit() -> list[KeyFailure]:
            try:
                self._load_one(key, processor)
            except Exception as e:
                return [KeyFailure(key, e)]
            return []

        return unit

    def _store_unit(self, key: Hashable, count: int, writer_factory: WriterFactory) -> UnitOfWork:
        def unit() -> list[KeyFailure]:
            failures = []
            for _ in range(count):
                try:
                    self._store_one(key, writer_factory)
                except Exception as e:
                    failures.append(KeyFailure(key, e))
            return failures

        return unit

    def _load_one(self, key: Hashable, processor: EntryProcessor) -> None:
        if self._load_local(key, processor):
            logger.debug(f"Local hit for {key}")
            return

        content = self._load_remote(key)
        if content is None:
            logger.debug(f"Miss for {key}")
            return

        logger.debug(f"Remote hit for {key} ({len(content)} bytes), mirroring locally")
        self._mirror(key, content)
        processor(key, io.BytesIO(content))

    def _load_local(self, key: Hashable, processor: EntryProcessor) -> bool:
        """Serve *key* from the local tier.

        A local tier failure before anything was delivered counts as a miss.
        Errors raised by *processor* itself always propagate.
        """
        delivered = False
        processed = False

        def deliver(reader: BinaryIO) -> None:
            nonlocal delivered, processed
            delivered = True
            processor(key, reader)
            processed = True

        try:
            return self.local.load(key, deliver)
        except Exception as e:
            if not delivered:
                logger.warning(f"Local read failed for {key}, falling back to remote: {e}")
                return False
            if not processed:
                raise
            raise TierUnavailableError("local", key, e) from e

    def _load_remote(self, key: Hashable) -> Optional[bytes]:
        """Read *key* fully into memory from the remote tier.

        Returns:
            The entry's bytes, or None if the remote tier does not have it
        """
        content: Optional[bytes] = None

        def materialize(reader: BinaryIO) -> None:
            nonlocal content
            output = io.BytesIO()
            with self._buffers.acquire() as buffer:
                copy_stream(reader, output, buffer)
            content = output.getvalue()

        try:
            found = self.remote.load(key, materialize)
        except Exception as e:
            raise TierUnavailableError("remote", key, e) from e

        return content if found else None

    def _mirror(self, key: Hashable, content: bytes) -> None:
        try:
            self.local.store(key, BytesWriter(content))
        except Exception as e:
            logger.warning(f"Failed to mirror {key} into local tier: {e}")

    def _store_one(self, key: Hashable, writer_factory: WriterFactory) -> None:
        # A writer that fails here reaches neither tier
        writer = capture_writer(writer_factory(key))

        errors = []
        for tier, target in (("local", self.local), ("remote", self.remote)):
            try:
                target.store(key, writer)
            except Exception as e:
                logger.error(f"Failed to store {key} in {tier} tier: {e}")
                errors.append(TierUnavailableError(tier, key, e))

        if errors:
            raise CacheWriteError(key, errors) from errors[0].cause
        logger.debug(f"Stored {key} ({writer.size()} bytes) in both tiers")
