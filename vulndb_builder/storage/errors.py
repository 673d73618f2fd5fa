"""
Storage errors.

StorageError is the single error kind raised by the storage engine adapter
and propagated unchanged by the DB access layer. Corruption-class read
failures and ordinary query failures are not distinguished.
"""


class StorageError(Exception):
    """Raised when the embedded store rejects an operation."""

    def __init__(self, message: str, bucket: str = None):
        self.bucket = bucket
        super().__init__(message)
