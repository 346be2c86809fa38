"""Store: the public API and the optimistic update engine."""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from .codecs import Codec, codec as resolve_codec
from .config import StoreConfig
from .entries import MISSING, Entry, EntryFiles
from .errors import ConcurrentModification, InvalidKey, NotAStore, StorageError
from .keys import KeyPaths, validate_key
from .locks import FileLocker
from .retry import Backoff, Retries, as_retries

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _Delete:
    """Returned by an update function to remove the key."""

    def __repr__(self) -> str:
        return "DELETE"


DELETE: Any = _Delete()

ApplyFn = Callable[[Any], Any]
"""Update function: existing doc (None if absent) -> new doc, or DELETE."""


@dataclass(frozen=True)
class _Done:
    doc: Any


@dataclass(frozen=True)
class _Conflict:
    expected: int
    found: int


class Store(Generic[T]):
    """A directory of versioned documents, one file per key.

    Reads never lock. Writes go through ``update()``: read the entry,
    apply the caller's function, stage the result next to the entry
    file, then lock the key only long enough to check that the version
    is unchanged and rename the staged file into place. A version
    mismatch means another writer won; the attempt is discarded and,
    budget permitting, redone from a fresh read.

    Use ``Store.open()`` or ``open_store()`` rather than the constructor,
    which does not check the root.

    Args:
        root: The store directory.
        codec: Entry encoding (default JSON).
        retries: Default retry budget for ``set()`` and ``update()``.
        backoff: Pause between conflicting attempts.
        lock_timeout: Seconds to wait for a key lock; None blocks.
    """

    def __init__(
        self,
        root: str | os.PathLike,
        *,
        codec: Codec[T] | None = None,
        retries: int | Retries = 0,
        backoff: Backoff | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        self._paths = KeyPaths(Path(root))
        self._files: EntryFiles[T] = EntryFiles(self._paths, codec or resolve_codec("json"))
        self._locker = FileLocker(timeout=lock_timeout)
        self.retries = as_retries(retries)
        self.backoff = backoff if backoff is not None else Backoff()

    @classmethod
    def open(
        cls,
        root: str | os.PathLike,
        *,
        create: bool = False,
        **kwargs: Any,
    ) -> Store:
        """Open the store at ``root``, initializing it if the directory is empty.

        Raises:
            StorageError: If ``root`` is missing (and ``create`` is False)
                or unreadable.
            NotAStore: If ``root`` has content but no store marker.
        """
        path = Path(root)
        try:
            if create:
                path.mkdir(parents=True, exist_ok=True)
            with os.scandir(path) as it:
                empty = next(it, None) is None
        except OSError as exc:
            raise StorageError(f"Cannot open store at {path}: {exc}", op="open") from exc

        store = cls(path, **kwargs)
        marker = store._paths.marker
        if empty:
            try:
                marker.mkdir(mode=0o700)
            except FileExistsError:
                pass
            except OSError as exc:
                raise StorageError(f"Cannot create {marker}: {exc}", op="open") from exc
            else:
                logger.info("Initialized store at %s", path)
        elif not marker.exists():
            raise NotAStore(f"{path} is not empty and has no {marker.name} marker")
        return store

    @property
    def root(self) -> Path:
        return self._paths.root

    @property
    def codec(self) -> Codec[T]:
        return self._files.codec

    # -- Read operations --

    def get(self, key: str, default: Any = None) -> T | Any:
        """The document for ``key``, or ``default`` if it does not exist."""
        entry = self._files.read(key)
        if entry is None:
            return default
        return entry.doc

    def get_entry(self, key: str) -> Entry[T]:
        """The full entry for ``key``; ``Entry(0, None)`` if absent."""
        entry = self._files.read(key)
        return entry if entry is not None else MISSING

    def version(self, key: str) -> int:
        """Current version of ``key``, 0 if absent."""
        return self._files.read_version(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        try:
            return self._paths.entry_path(key).is_file()
        except InvalidKey:
            return False

    def list(self, prefix: str = "", *, recursive: bool = False) -> list[str]:
        """Keys directly under ``prefix`` (all descendants if ``recursive``).

        Lock files, temp files, the store marker and directories are
        skipped. A prefix with no directory yields an empty list.
        """
        return sorted(self._files.keys(prefix, recursive=recursive))

    # -- Write operations --

    def set(self, key: str, doc: T, retries: int | Retries | None = None) -> None:
        """Store ``doc`` under ``key``, replacing any current document."""
        if doc is None or doc is DELETE:
            raise ValueError("Cannot set a None document; use delete()")
        self.update(key, lambda _: doc, retries)

    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""
        self.update(key, lambda _: DELETE, 0)

    def update(
        self,
        key: str,
        apply: ApplyFn,
        retries: int | Retries | None = None,
    ) -> T | None:
        """Atomically replace the document for ``key`` with ``apply(doc)``.

        ``apply`` receives the current document (None if absent) and
        returns the new one, or ``DELETE`` (or None) to remove the key.
        It may be called several times when other writers interfere, so
        it should not have side effects.

        Args:
            key: The key to update.
            apply: The update function.
            retries: Extra attempts allowed after a conflict: an int,
                ``Finite(n)`` or ``FOREVER``. Defaults to the store's.

        Returns:
            The committed document, or None if the key was removed.

        Raises:
            ConcurrentModification: If every allowed attempt conflicted.
            StorageError: On filesystem failure.
            EncodingError: If the new document cannot be encoded or the
                stored entry cannot be decoded.
            Exception: Whatever ``apply`` raises, unchanged.
        """
        validate_key(key)
        policy = self.retries if retries is None else as_retries(retries)
        attempts = 0
        while True:
            attempts += 1
            outcome = self._attempt(key, apply)
            if isinstance(outcome, _Done):
                return outcome.doc
            if not policy.allows(attempts - 1):
                logger.warning(
                    "Giving up on %r after %d attempt(s): version moved from %d to %d",
                    key, attempts, outcome.expected, outcome.found,
                )
                raise ConcurrentModification(key, attempts)
            pause = self.backoff.wait()
            logger.debug(
                "Conflict on %r (expected version %d, found %d); retried after %.3fs",
                key, outcome.expected, outcome.found, pause,
            )

    def _attempt(self, key: str, apply: ApplyFn) -> _Done | _Conflict:
        old = self._files.read(key) or MISSING

        new_doc = apply(old.doc)
        if new_doc is None or new_doc is DELETE:
            # A racing writer fails its own version check afterwards.
            self._files.remove(key)
            logger.debug("Deleted %r (was version %d)", key, old.version)
            return _Done(None)

        tmp_path = self._files.stage(key, Entry(old.version + 1, new_doc))
        try:
            with self._locker.held(self._paths.lock_path(key), key=key):
                found = self._files.read_version(key)
                if found != old.version:
                    return _Conflict(expected=old.version, found=found)
                self._files.commit(tmp_path, key)
        finally:
            self._files.discard(tmp_path)
        logger.debug("Committed %r at version %d", key, old.version + 1)
        return _Done(new_doc)


def open_store(
    root: str | os.PathLike,
    *,
    config: StoreConfig | None = None,
    **overrides: Any,
) -> Store:
    """Open a store with sensible defaults.

    Args:
        root: The store directory.
        config: Base settings (see ``config_from_env()``). Defaults to
            ``StoreConfig()``.
        **overrides: Any ``StoreConfig`` field, replacing the value
            from ``config``: ``codec`` (``"json"``, ``"pickle"`` or a
            ``Codec``), ``create``, ``retries``, ``backoff_low``,
            ``backoff_high``, ``lock_timeout``.

    Returns:
        An opened ``Store``.
    """
    base = config if config is not None else StoreConfig()
    fields = {f.name for f in dataclasses.fields(StoreConfig)}
    unknown = set(overrides) - fields
    if unknown:
        raise ValueError(f"Unknown store option(s): {', '.join(sorted(unknown))}")
    settings = dataclasses.replace(base, **overrides)

    return Store.open(
        root,
        create=settings.create,
        codec=resolve_codec(settings.codec),
        retries=settings.retries,
        backoff=Backoff(settings.backoff_low, settings.backoff_high),
        lock_timeout=settings.lock_timeout,
    )
