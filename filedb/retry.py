"""Retry budgets and backoff for conflicting updates."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Callable, Union


@dataclass(frozen=True)
class Finite:
    """Retry at most ``count`` times after the first attempt.

    ``Finite(0)`` makes a single attempt and fails on its first conflict.
    """

    count: int

    def __post_init__(self) -> None:
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise TypeError(f"Retry count must be an int, not {type(self.count).__name__}")
        if self.count < 0:
            raise ValueError("Retry count must be >= 0; use Infinite() to retry forever")

    def allows(self, retries_done: int) -> bool:
        return retries_done < self.count


@dataclass(frozen=True)
class Infinite:
    """Retry until the update commits or fails with a non-conflict error."""

    def allows(self, retries_done: int) -> bool:
        return True


Retries = Union[Finite, Infinite]

FOREVER = Infinite()


def as_retries(value: int | Retries) -> Retries:
    """Accept a plain int as shorthand for ``Finite(value)``."""
    if isinstance(value, (Finite, Infinite)):
        return value
    return Finite(value)


@dataclass(frozen=True)
class Backoff:
    """Uniformly jittered pause between attempts, in seconds.

    The delay does not grow with the attempt number.
    """

    low: float = 0.05
    high: float = 0.1
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.low < 0 or self.high < self.low:
            raise ValueError(f"Invalid backoff range: [{self.low}, {self.high}]")

    def delay(self) -> float:
        return random.uniform(self.low, self.high)

    def wait(self) -> float:
        seconds = self.delay()
        self.sleep(seconds)
        return seconds
