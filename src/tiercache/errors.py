"""Exceptions raised by the tiered cache access layer.

A key that is missing from both tiers is not an error. Everything else that
goes wrong while loading, storing or closing is reported through one of the
classes below, all of which derive from ``CacheError``.
"""

from dataclasses import dataclass
from typing import Any, Optional


class CacheError(Exception):
    """Base class for all tiercache errors."""


class TierUnavailableError(CacheError):
    """A single tier failed while serving a key.

    Attributes:
        tier: Tier name ("local" or "remote")
        key: Key being processed when the tier failed
        cause: Underlying exception raised by the store
    """

    def __init__(self, tier: str, key: Any, cause: BaseException):
        super().__init__(f"{tier} tier failed for {key}: {cause}")
        self.tier = tier
        self.key = key
        self.cause = cause


class ContentSizeMismatchError(CacheError):
    """A content writer produced a different byte count than it declared."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Content writer declared {expected} bytes but wrote {actual}"
        )
        self.expected = expected
        self.actual = actual


class CacheWriteError(CacheError):
    """Storing a key failed in one or both tiers.

    Attributes:
        key: Key whose write failed
        errors: Every tier failure encountered for the key, local first
    """

    def __init__(self, key: Any, errors: list[TierUnavailableError]):
        tiers = ", ".join(error.tier for error in errors)
        super().__init__(f"Failed to store {key} in: {tiers}")
        self.key = key
        self.errors = errors


class CacheCloseError(CacheError):
    """Releasing one or more stores failed.

    The first failure is the primary cause (also chained as ``__cause__``);
    any later ones are kept in ``suppressed``.
    """

    def __init__(self, errors: list[BaseException]):
        super().__init__(
            f"Failed to close {len(errors)} resource(s): "
            + "; ".join(str(error) for error in errors)
        )
        self.errors = errors

    @property
    def primary(self) -> BaseException:
        return self.errors[0]

    @property
    def suppressed(self) -> list[BaseException]:
        return self.errors[1:]


@dataclass
class KeyFailure:
    """The failure recorded for one key occurrence in a batch.

    Attributes:
        key: Key that failed
        error: Exception describing the failure
    """

    key: Any
    error: BaseException


class BatchError(CacheError):
    """One or more keys in a batch failed.

    Raised only after every key in the batch has been processed.
    """

    def __init__(self, operation: str, failures: list[KeyFailure]):
        super().__init__(
            f"{operation} failed for {len(failures)} key(s): "
            + "; ".join(f"{f.key}: {f.error}" for f in failures)
        )
        self.operation = operation
        self.failures = failures

    def error_for(self, key: Any) -> Optional[BaseException]:
        """Return the first recorded error for a key, if any."""
        for failure in self.failures:
            if failure.key == key:
                return failure.error
        return None
