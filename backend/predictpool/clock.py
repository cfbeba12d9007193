"""Height sources consulted for window checks."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Monotonically non-decreasing height counter."""

    def current_height(self) -> int:
        """Return the height every window check of an operation is evaluated at."""


class FixedClock:
    """Clock pinned to one height, used by one-shot CLI invocations."""

    def __init__(self, height: int) -> None:
        if height < 0:
            raise ValueError("height must be non-negative")
        self._height = height

    def current_height(self) -> int:
        return self._height


class ChainClock:
    """Height derived from wall time: one block every ``block_seconds`` since genesis.

    Readings never decrease, even if the system clock is stepped back.
    """

    def __init__(
        self,
        genesis: datetime,
        block_seconds: float,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        if block_seconds <= 0:
            raise ValueError("block_seconds must be positive")
        if genesis.tzinfo is None:
            genesis = genesis.replace(tzinfo=timezone.utc)
        self._genesis = genesis
        self._block_seconds = block_seconds
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._last = 0
        self._lock = threading.Lock()

    def current_height(self) -> int:
        elapsed = (self._now() - self._genesis).total_seconds()
        height = max(0, int(elapsed // self._block_seconds))
        with self._lock:
            self._last = max(self._last, height)
            return self._last


class ManualClock:
    """Clock advanced explicitly by its owner."""

    def __init__(self, height: int = 0) -> None:
        if height < 0:
            raise ValueError("height must be non-negative")
        self._height = height

    def current_height(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise ValueError("clock cannot move backwards")
        self._height += blocks
        return self._height

    def set_height(self, height: int) -> int:
        if height < self._height:
            raise ValueError(f"clock cannot move backwards from {self._height} to {height}")
        self._height = height
        return self._height


__all__ = ["ChainClock", "Clock", "FixedClock", "ManualClock"]
