"""Key validation and key-to-path mapping."""

from pathlib import Path

from .errors import InvalidKey

MARKER = ".filedb"
LOCK_SUFFIX = "...lock"
TEMP_SUFFIX = "...tmp"
RESERVED_SUFFIXES = (LOCK_SUFFIX, TEMP_SUFFIX)


def validate_key(key: str) -> str:
    """Return ``key`` unchanged if it is a legal key, else raise ``InvalidKey``.

    A key is a ``/``-separated relative path. Segments may not be empty,
    ``.`` or ``..``, and may not end with a reserved artifact suffix, so
    no key can name a lock file, a temp file or anything outside the root.
    """
    if not isinstance(key, str):
        raise InvalidKey(f"Key must be a string, not {type(key).__name__}")
    if not key:
        raise InvalidKey("Key must not be empty")
    if "\\" in key or "\x00" in key:
        raise InvalidKey(f"Key contains an illegal character: {key!r}")
    segments = key.split("/")
    if segments[0] == MARKER:
        raise InvalidKey(f"Key uses the reserved name {MARKER!r}: {key!r}")
    for segment in segments:
        if segment in ("", ".", ".."):
            raise InvalidKey(f"Key has an empty or relative segment: {key!r}")
        if segment.endswith(RESERVED_SUFFIXES):
            raise InvalidKey(f"Key ends with a reserved suffix: {key!r}")
    return key


def validate_prefix(prefix: str) -> str:
    """Normalize a listing prefix. ``""`` and ``"/"`` mean the root."""
    stripped = prefix.strip("/") if isinstance(prefix, str) else prefix
    if stripped == "":
        return ""
    return validate_key(stripped)


def join(prefix: str, name: str) -> str:
    return f"{prefix}/{name}" if prefix else name


def is_artifact(name: str) -> bool:
    """True for lock and temp files, which share directories with entries."""
    return name.endswith(RESERVED_SUFFIXES)


class KeyPaths:
    """Maps keys to their entry file, temp-file location and lock file.

    All three live in the same directory, so a staged temp file can be
    renamed over the entry in one step.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def marker(self) -> Path:
        return self.root / MARKER

    def entry_path(self, key: str) -> Path:
        return self.root.joinpath(*validate_key(key).split("/"))

    def lock_path(self, key: str) -> Path:
        path = self.entry_path(key)
        return path.with_name(path.name + LOCK_SUFFIX)

    def temp_location(self, key: str) -> tuple[Path, str]:
        """Directory and name prefix for ``tempfile.mkstemp``.

        Combined with ``TEMP_SUFFIX`` this yields
        ``<dir>/<name>.<random>...tmp``.
        """
        path = self.entry_path(key)
        return path.parent, f"{path.name}."

    def prefix_dir(self, prefix: str) -> Path:
        prefix = validate_prefix(prefix)
        if not prefix:
            return self.root
        return self.root.joinpath(*prefix.split("/"))
