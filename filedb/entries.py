"""Entry store: one versioned entry per file."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Generic, Iterable, TypeVar

from .errors import EncodingError, StorageError
from .keys import MARKER, TEMP_SUFFIX, KeyPaths, is_artifact, join, validate_prefix

if TYPE_CHECKING:
    from .codecs import Codec

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Entry(Generic[T]):
    """The persisted unit for a key: a document and its version.

    ``Entry(0, None)`` stands for "no such key" and is never written.
    """

    version: int
    doc: T | None = None

    @property
    def exists(self) -> bool:
        return self.version > 0


MISSING: Entry = Entry(0, None)


class EntryFiles(Generic[T]):
    """Raw read/stage/commit/remove of entry files under a root.

    Nothing here locks. The update engine decides when a staged file may
    be committed.
    """

    def __init__(self, paths: KeyPaths, codec: Codec[T]) -> None:
        self.paths = paths
        self.codec = codec

    def read(self, key: str) -> Entry[T] | None:
        """Decode the entry for ``key``, or None if there is no entry file."""
        path = self.paths.entry_path(key)
        try:
            raw = path.read_bytes()
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            # A directory, or a path running through an entry file, is not an entry.
            return None
        except OSError as exc:
            raise StorageError(f"Cannot read key {key!r}: {exc}", key=key, op="read") from exc
        try:
            return self.codec.decode(raw)
        except Exception as exc:
            raise EncodingError(
                f"Cannot decode entry for key {key!r} with {self.codec.name} codec: {exc}",
                key=key,
            ) from exc

    def read_version(self, key: str) -> int:
        entry = self.read(key)
        return entry.version if entry is not None else 0

    def stage(self, key: str, entry: Entry[T]) -> Path:
        """Write ``entry`` to a fresh temp file beside the key's entry file.

        The file is flushed, synced and closed before returning. On any
        failure the temp file is removed before the error propagates.
        """
        try:
            raw = self.codec.encode(entry)
        except Exception as exc:
            raise EncodingError(
                f"Cannot encode document for key {key!r} with {self.codec.name} codec: {exc}",
                key=key,
            ) from exc
        if not isinstance(raw, bytes):
            raise EncodingError(
                f"Codec {self.codec.name!r} returned {type(raw).__name__}, expected bytes",
                key=key,
            )

        directory, prefix = self.paths.temp_location(key)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=prefix, suffix=TEMP_SUFFIX)
        except OSError as exc:
            raise StorageError(f"Cannot stage key {key!r}: {exc}", key=key, op="stage") from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(raw)
                handle.flush()
                os.fsync(handle.fileno())
        except BaseException as exc:
            self.discard(tmp_path)
            if isinstance(exc, OSError):
                raise StorageError(
                    f"Cannot stage key {key!r}: {exc}", key=key, op="stage"
                ) from exc
            raise
        return tmp_path

    def commit(self, tmp_path: Path, key: str) -> None:
        """Atomically replace the key's entry file with ``tmp_path``."""
        try:
            os.replace(tmp_path, self.paths.entry_path(key))
        except OSError as exc:
            raise StorageError(f"Cannot commit key {key!r}: {exc}", key=key, op="commit") from exc

    def remove(self, key: str) -> None:
        """Remove the key's entry file. A missing file is not an error."""
        try:
            self.paths.entry_path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise StorageError(f"Failed to remove key {key!r}: {exc}", key=key, op="remove") from exc

    def discard(self, tmp_path: Path) -> None:
        """Delete a staged temp file if it is still there."""
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            # Leaves an orphan temp file; listing already skips it.
            logger.warning("Could not remove temp file %s: %s", tmp_path, exc)
        else:
            logger.debug("Discarded temp file %s", tmp_path)

    def keys(self, prefix: str = "", *, recursive: bool = False) -> Iterable[str]:
        """Keys of entry files under ``prefix``, skipping store artifacts."""
        prefix = validate_prefix(prefix)
        directory = self.paths.prefix_dir(prefix)
        try:
            with os.scandir(directory) as it:
                children = list(it)
        except (FileNotFoundError, NotADirectoryError):
            return
        except OSError as exc:
            raise StorageError(
                f"Cannot list prefix {prefix!r}: {exc}", key=prefix or None, op="list"
            ) from exc
        for child in children:
            if is_artifact(child.name) or (not prefix and child.name == MARKER):
                continue
            if child.is_dir(follow_symlinks=False):
                if recursive:
                    yield from self.keys(join(prefix, child.name), recursive=True)
                continue
            yield join(prefix, child.name)
