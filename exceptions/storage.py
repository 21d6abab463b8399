"""
Durable client storage exceptions.
"""

from .base import StorefrontException


class StorageException(StorefrontException):
    """Base exception for durable storage errors."""
    pass


class StorageWriteException(StorageException):
    """
    Raised when a durable write fails.

    The mutation that triggered the write is not applied in memory.
    """

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Failed to persist '{key}': {reason}",
            details={'key': key, 'reason': reason}
        )
        self.key = key
        self.reason = reason


class CorruptSnapshotException(StorageException):
    """Raised internally when a persisted snapshot can't be decoded."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Corrupt snapshot under '{key}': {reason}",
            details={'key': key, 'reason': reason}
        )
        self.key = key
        self.reason = reason


class StorageReadException(StorageException):
    """Raised when the durable storage can't be read at all (not a corrupt value)."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Failed to read '{key}': {reason}",
            details={'key': key, 'reason': reason}
        )
        self.key = key
        self.reason = reason
