"""Codecs: encode/decode a versioned entry to and from bytes."""

from __future__ import annotations

import json
import pickle
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from .entries import Entry

T = TypeVar("T")


@dataclass(frozen=True)
class Codec(Generic[T]):
    """Turns an ``Entry`` into bytes and back.

    A codec owns the whole on-disk record, so it must round-trip both
    ``version`` and ``doc`` by value. The store never looks inside the
    document.
    """

    name: str
    encode: Callable[[Entry[T]], bytes]
    decode: Callable[[bytes], Entry[T]]


def _checked(version: Any, doc: Any) -> Entry:
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ValueError(f"Stored version must be a positive integer, got {version!r}")
    return Entry(version, doc)


def json_codec(
    to_json: Callable[[Any], Any] | None = None,
    from_json: Callable[[Any], Any] | None = None,
) -> Codec:
    """JSON record ``{"doc": ..., "version": n}`` in UTF-8.

    Args:
        to_json: Converts a document into a JSON-compatible value before
            encoding. Defaults to identity.
        from_json: Rebuilds a document from its decoded JSON value.
            Defaults to identity.
    """

    def encode(entry: Entry) -> bytes:
        doc = to_json(entry.doc) if to_json is not None else entry.doc
        record = {"version": entry.version, "doc": doc}
        return json.dumps(record, sort_keys=True).encode("utf-8")

    def decode(raw: bytes) -> Entry:
        record = json.loads(raw.decode("utf-8"))
        if not isinstance(record, dict) or set(record) != {"version", "doc"}:
            raise ValueError("Stored record must have exactly 'version' and 'doc'")
        doc = record["doc"]
        if from_json is not None:
            doc = from_json(doc)
        return _checked(record["version"], doc)

    return Codec(name="json", encode=encode, decode=decode)


def pickle_codec(protocol: int = pickle.HIGHEST_PROTOCOL) -> Codec:
    """Pickled ``{"version": n, "doc": ...}`` dict, for arbitrary Python docs.

    Only open stores written by trusted processes with this codec.
    """

    def encode(entry: Entry) -> bytes:
        return pickle.dumps({"version": entry.version, "doc": entry.doc}, protocol=protocol)

    def decode(raw: bytes) -> Entry:
        record = pickle.loads(raw)
        if not isinstance(record, dict) or set(record) != {"version", "doc"}:
            raise ValueError("Stored record must have exactly 'version' and 'doc'")
        return _checked(record["version"], record["doc"])

    return Codec(name="pickle", encode=encode, decode=decode)


def codec(name: str | Codec) -> Codec:
    """Resolve a codec by name (``"json"`` or ``"pickle"``), or pass one through."""
    if isinstance(name, Codec):
        return name
    if name == "json":
        return json_codec()
    if name == "pickle":
        return pickle_codec()
    raise ValueError(f"Unknown codec: {name!r}")
