"""filedb: a one-file-per-key document store with optimistic updates."""

from .codecs import Codec, codec, json_codec, pickle_codec
from .config import StoreConfig, config_from_env
from .entries import Entry
from .errors import (
    ConcurrentModification,
    EncodingError,
    FileDBError,
    InvalidKey,
    LockTimeout,
    NotAStore,
    StorageError,
)
from .namespaced import Namespaced
from .retry import FOREVER, Backoff, Finite, Infinite, Retries
from .store import DELETE, Store, open_store

__all__ = [
    "Backoff",
    "Codec",
    "ConcurrentModification",
    "DELETE",
    "EncodingError",
    "Entry",
    "FOREVER",
    "FileDBError",
    "Finite",
    "Infinite",
    "InvalidKey",
    "LockTimeout",
    "Namespaced",
    "NotAStore",
    "Retries",
    "StorageError",
    "Store",
    "StoreConfig",
    "codec",
    "config_from_env",
    "json_codec",
    "open_store",
    "pickle_codec",
]
