"""Namespaced: key-prefixed view over a Store."""

from __future__ import annotations

from typing import Any, Iterable

from .retry import Retries
from .store import ApplyFn, Store


class Namespaced:
    """A namespaced view over a Store.

    Keys are prefixed with ``namespace/``, which on disk is a
    subdirectory of the store root. Nested namespaces are supported by
    wrapping another Namespaced instance.

    Args:
        store: A Store or another Namespaced.
        namespace: The namespace name (must not contain ``/``).
    """

    def __init__(self, store: Store | Namespaced, namespace: str) -> None:
        if not namespace or "/" in namespace:
            raise ValueError("Namespace names must be non-empty and cannot contain '/'")
        if not isinstance(store, (Store, Namespaced)):
            raise TypeError(
                f"Namespaced requires a Store, "
                f"not {type(store).__name__}"
            )

        if isinstance(store, Namespaced):
            self._store: Store = store._store
            self.namespace = f"{store.namespace}/{namespace}"
        else:
            self._store = store
            self.namespace = namespace

    def _prefixed(self, key: str) -> str:
        return f"{self.namespace}/{key}"

    def _strip(self, key: str) -> str:
        return key[len(self.namespace) + 1:]

    # -- Read operations --

    def get(self, key: str, default: Any = None) -> Any:
        return self._store.get(self._prefixed(key), default)

    def version(self, key: str) -> int:
        return self._store.version(self._prefixed(key))

    def list(self, prefix: str = "") -> list[str]:
        """Direct child keys in this namespace, without the namespace prefix."""
        full = self._prefixed(prefix.strip("/")) if prefix.strip("/") else self.namespace
        return [self._strip(k) for k in self._store.list(full)]

    def descendant_keys(self) -> Iterable[str]:
        """All keys under this namespace, including nested."""
        for key in self._store.list(self.namespace, recursive=True):
            yield self._strip(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return self._prefixed(key) in self._store

    # -- Write operations --

    def set(self, key: str, doc: Any, retries: int | Retries | None = None) -> None:
        self._store.set(self._prefixed(key), doc, retries)

    def delete(self, key: str) -> None:
        self._store.delete(self._prefixed(key))

    def update(self, key: str, apply: ApplyFn, retries: int | Retries | None = None) -> Any:
        return self._store.update(self._prefixed(key), apply, retries)
