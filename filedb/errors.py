"""filedb error types."""


class FileDBError(Exception):
    """Base class for all filedb errors."""


class ConcurrentModification(FileDBError):
    """Raised when an update keeps losing the race for a key.

    Another writer committed a new version between this attempt's read
    and its locked version check, and the retry budget ran out. Nothing
    was written by the failing call.

    Attributes:
        key: The key being updated.
        attempts: How many attempts were made before giving up.
    """

    def __init__(self, key: str, attempts: int = 1) -> None:
        self.key = key
        self.attempts = attempts
        super().__init__(
            f"Concurrent modification of key {key!r} "
            f"(gave up after {attempts} attempt(s))"
        )


class StorageError(FileDBError):
    """Raised when the filesystem fails underneath an operation.

    The underlying ``OSError`` is chained as ``__cause__``.

    Attributes:
        key: The key involved, or None for store-level operations.
        op: Short name of the failing operation (``"read"``, ``"stage"``...).
    """

    def __init__(self, message: str, *, key: str | None = None, op: str = "") -> None:
        self.key = key
        self.op = op
        super().__init__(message)


class LockTimeout(StorageError):
    """Raised when a key's lock is not acquired within the configured timeout."""


class EncodingError(FileDBError):
    """Raised when an entry cannot be encoded or a stored entry cannot be decoded."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class InvalidKey(FileDBError, ValueError):
    """Raised for keys that are empty, escape the root or use a reserved name."""


class NotAStore(FileDBError):
    """Raised when opening a non-empty directory that lacks the store marker."""
