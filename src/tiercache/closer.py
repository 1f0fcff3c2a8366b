"""Release several resources, reporting every failure."""

from typing import Iterable, Protocol

from tiercache.errors import CacheCloseError
from tiercache.logging_config import get_logger

logger = get_logger(__name__)


class Closeable(Protocol):
    def close(self) -> None: ...


def close_all(resources: Iterable[Closeable]) -> None:
    """Close every resource in order, even when an earlier close fails.

    Args:
        resources: Objects with a ``close()`` method

    Raises:
        CacheCloseError: If any close failed; carries all failures, the first
            one chained as the cause
    """
    errors: list[BaseException] = []
    for resource in resources:
        try:
            resource.close()
        except Exception as e:
            logger.error(f"Failed to close {resource!r}: {e}")
            errors.append(e)

    if errors:
        raise CacheCloseError(errors) from errors[0]
