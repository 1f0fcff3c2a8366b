"""Content-addressed cache keys.

Keys are SHA-256 hex digests of the cached content, the same identifiers the
stores use for file names and object keys.
"""

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path

_HEX_RE = re.compile(r"^[0-9a-f]+$")


@dataclass(frozen=True, order=True)
class CacheKey:
    """Immutable identifier for a cache entry.

    Attributes:
        hash_code: Lowercase hex digest identifying the entry
    """

    hash_code: str

    def __post_init__(self) -> None:
        normalized = self.hash_code.strip().lower()
        if not normalized or not _HEX_RE.match(normalized):
            raise ValueError(f"Invalid cache key: {self.hash_code!r}")
        object.__setattr__(self, "hash_code", normalized)

    def __str__(self) -> str:
        return self.hash_code

    @property
    def hash_prefix(self) -> str:
        """First 12 characters of the digest, used as a directory name."""
        return self.hash_code[:12]

    @classmethod
    def of_bytes(cls, data: bytes) -> "CacheKey":
        """Key for an in-memory payload."""
        return cls(hashlib.sha256(data).hexdigest())

    @classmethod
    def of_file(cls, file_path: Path) -> "CacheKey":
        """Key for a file's content.

        Reads in 8 KiB chunks so arbitrarily large files are handled without
        loading the entire file into memory.

        Args:
            file_path: Path to the file to hash

        Returns:
            CacheKey holding the full SHA-256 hex digest

        Raises:
            FileNotFoundError: If the file does not exist
        """
        sha256 = hashlib.sha256()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                sha256.update(chunk)
        return cls(sha256.hexdigest())
