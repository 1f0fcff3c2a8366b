"""Local disk cache store.

Entries live at ``{cache_dir}/{hash[:2]}/{hash}``. Writes go to a temporary
file in the entry's directory and are renamed into place, so readers never
see a partially written entry.
"""

import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from tiercache.entries import ContentWriter
from tiercache.errors import ContentSizeMismatchError
from tiercache.keys import CacheKey
from tiercache.logging_config import get_logger
from tiercache.stores.base import EntryConsumer

logger = get_logger(__name__)

TEMP_SUFFIX = ".tmp"


class DiskStore:
    """Local cache tier backed by a directory tree.

    Attributes:
        cache_dir: Root directory for cache entries
    """

    def __init__(self, cache_dir: Path):
        """Initialize the disk store.

        Args:
            cache_dir: Root directory for cache storage (created if missing)
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def get_entry_path(self, key: CacheKey) -> Path:
        """Get the path where an entry is stored.

        Args:
            key: Cache key

        Returns:
            Path in the cache directory
        """
        return self.cache_dir / key.hash_code[:2] / key.hash_code

    def contains(self, key: CacheKey) -> bool:
        return self.get_entry_path(key).is_file()

    def load(self, key: CacheKey, consumer: EntryConsumer) -> bool:
        """Hand the entry's file to *consumer* if it exists.

        Args:
            key: Cache key
            consumer: Called with the open file

        Returns:
            True if the entry exists, False otherwise
        """
        entry_path = self.get_entry_path(key)
        try:
            f = open(entry_path, "rb")
        except FileNotFoundError:
            return False

        with f:
            consumer(f)
        return True

    def store(self, key: CacheKey, writer: ContentWriter) -> None:
        """Write an entry atomically.

        Args:
            key: Cache key
            writer: Source of the entry's bytes

        Raises:
            ContentSizeMismatchError: If the writer's output does not match
                its declared size (the entry is left untouched)
        """
        entry_path = self.get_entry_path(key)
        entry_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=entry_path.parent, prefix=f".{key.hash_code[:12]}-", suffix=TEMP_SUFFIX
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                writer.write_to(f)
            written = tmp_path.stat().st_size
            expected = writer.size()
            if written != expected:
                raise ContentSizeMismatchError(expected, written)
            os.replace(tmp_path, entry_path)
        except BaseException:
            # Clean up partial write
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Stored {key} ({written} bytes) at {entry_path}")

    def remove(self, key: CacheKey) -> bool:
        """Delete an entry.

        Returns:
            True if an entry was removed
        """
        entry_path = self.get_entry_path(key)
        try:
            entry_path.unlink()
        except FileNotFoundError:
            return False
        return True

    def get_cache_size(self) -> int:
        """Get the total size of cached entries in bytes."""
        if not self.cache_dir.exists():
            return 0

        total_size = 0
        for path in self.cache_dir.rglob("*"):
            if path.is_file() and not path.name.endswith(TEMP_SUFFIX):
                total_size += path.stat().st_size
        return total_size

    def get_cache_size_mb(self) -> float:
        return self.get_cache_size() / (1024 * 1024)

    def clear(self, older_than_days: Optional[int] = None) -> int:
        """Remove cached entries.

        Args:
            older_than_days: Only remove entries last modified before this
                many days ago. Temporary files of in-progress writes are
                always kept.

        Returns:
            Number of files removed
        """
        if not self.cache_dir.exists():
            return 0

        cutoff = None
        if older_than_days is not None:
            cutoff = datetime.now() - timedelta(days=older_than_days)

        removed = 0
        for path in self.cache_dir.rglob("*"):
            if not path.is_file() or path.name.endswith(TEMP_SUFFIX):
                continue
            if cutoff is not None and datetime.fromtimestamp(path.stat().st_mtime) >= cutoff:
                continue
            path.unlink(missing_ok=True)
            removed += 1

        # Clean up empty directories
        for path in sorted(self.cache_dir.rglob("*"), key=lambda p: len(p.parts), reverse=True):
            if path.is_dir() and not any(path.iterdir()):
                path.rmdir()

        logger.info(f"Removed {removed} file(s) from {self.cache_dir}")
        return removed

    def close(self) -> None:
        """Nothing to release; entries are closed after each access."""

    def __repr__(self) -> str:
        return f"DiskStore({str(self.cache_dir)!r})"
