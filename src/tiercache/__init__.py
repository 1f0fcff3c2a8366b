"""tiercache - two-tier content-addressed cache access.

This package provides:
- A batch access layer that reads local-first with remote fallback and
  mirroring, and writes to both tiers
- A local disk tier and a Cloudflare R2 remote tier
- A command-line interface for fetching and pushing entries
"""

__version__ = "0.1.0"

from tiercache.access import CacheAccess
from tiercache.entries import BytesWriter, ContentWriter, FileWriter
from tiercache.errors import (
    BatchError,
    CacheCloseError,
    CacheError,
    CacheWriteError,
    ContentSizeMismatchError,
    KeyFailure,
    TierUnavailableError,
)
from tiercache.keys import CacheKey

__all__ = [
    "__version__",
    "CacheAccess",
    "CacheKey",
    "ContentWriter",
    "BytesWriter",
    "FileWriter",
    "CacheError",
    "BatchError",
    "KeyFailure",
    "TierUnavailableError",
    "CacheWriteError",
    "ContentSizeMismatchError",
    "CacheCloseError",
]
