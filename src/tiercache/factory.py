"""Build a CacheAccess from configuration."""

from tiercache.access import CacheAccess
from tiercache.buffers import BufferPool
from tiercache.config import CacheConfig
from tiercache.stores.disk import DiskStore
from tiercache.stores.r2 import R2Store


def build_cache_access(config: CacheConfig) -> CacheAccess:
    """Wire a disk-backed local tier and an R2 remote tier together.

    Args:
        config: Cache configuration

    Returns:
        CacheAccess owning both stores

    Raises:
        ValueError: If the R2 endpoint or credentials are not configured
    """
    if not config.r2_endpoint_url:
        raise ValueError(
            "R2 endpoint not configured. Run: tiercache config set r2.endpoint_url <url>"
        )

    local = DiskStore(config.local_dir)
    remote = R2Store(
        bucket=config.r2_bucket,
        endpoint_url=config.r2_endpoint_url,
        region=config.r2_region,
        prefix=config.r2_prefix,
    )
    return CacheAccess(
        local,
        remote,
        max_workers=config.max_workers,
        buffer_pool=BufferPool(config.buffer_size),
    )
