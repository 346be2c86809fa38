"""Store configuration, from keyword arguments or the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .codecs import Codec
from .retry import FOREVER, Retries, as_retries


@dataclass(frozen=True)
class StoreConfig:
    # Encoding of entry files: "json", "pickle" or a Codec
    codec: str | Codec = "json"

    # Create the root directory if it does not exist
    create: bool = False

    # Default retry budget for set() and update()
    retries: int | Retries = 0

    # Jittered pause between conflicting attempts, in seconds
    backoff_low: float = 0.05
    backoff_high: float = 0.1

    # None blocks forever on a held key lock
    lock_timeout: float | None = None


def _env_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_retries(name: str, raw: str) -> Retries:
    value = raw.strip().lower()
    if value in ("forever", "inf", "infinite", "-1"):
        return FOREVER
    try:
        return as_retries(int(value))
    except ValueError:
        raise ValueError(f"{name} must be a count >= 0 or 'forever', got {raw!r}") from None


def config_from_env(
    environ: Mapping[str, str] | None = None, prefix: str = "FILEDB_"
) -> StoreConfig:
    """Build a ``StoreConfig`` from ``<prefix>*`` environment variables.

    Unset variables keep the ``StoreConfig`` defaults. Recognized names:
    ``CODEC``, ``CREATE``, ``RETRIES`` (a count, or ``forever``),
    ``BACKOFF_LOW``, ``BACKOFF_HIGH`` and ``LOCK_TIMEOUT`` (seconds, or
    ``none`` to block forever).
    """
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}

    def raw(name: str) -> str | None:
        return env.get(prefix + name)

    if (codec := raw("CODEC")) is not None:
        values["codec"] = codec.strip().lower()
    if (create := raw("CREATE")) is not None:
        values["create"] = _env_bool(create)
    if (retries := raw("RETRIES")) is not None:
        values["retries"] = _env_retries(prefix + "RETRIES", retries)
    if (low := raw("BACKOFF_LOW")) is not None:
        values["backoff_low"] = _env_float(prefix + "BACKOFF_LOW", low)
    if (high := raw("BACKOFF_HIGH")) is not None:
        values["backoff_high"] = _env_float(prefix + "BACKOFF_HIGH", high)
    if (timeout := raw("LOCK_TIMEOUT")) is not None:
        if timeout.strip().lower() in ("", "none"):
            values["lock_timeout"] = None
        else:
            values["lock_timeout"] = _env_float(prefix + "LOCK_TIMEOUT", timeout)

    return StoreConfig(**values)  # type: ignore[arg-type]
