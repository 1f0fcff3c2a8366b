"""Cache tiers usable behind CacheAccess."""

from .base import CacheStore, EntryConsumer
from .disk import DiskStore
from .memory import InMemoryStore
from .r2 import R2Store

__all__ = ["CacheStore", "EntryConsumer", "DiskStore", "InMemoryStore", "R2Store"]
