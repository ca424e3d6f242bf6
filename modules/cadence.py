"""
cadence.py
----------
Periodic asyncio tickers: the decision cadence and the settlement poll.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def binary_period(expiry_seconds: float, min_period: float = 5.0, scale: float = 0.5) -> float:
    """Seconds between binary signals for a given expiry."""
    return max(min_period, expiry_seconds * scale)


class PeriodicTask:
    """
    Calls ``action`` every ``period`` seconds while ``gate()`` holds.

    The period is read once per ``start()``; changing it only takes effect
    after ``stop()`` + ``start()``. ``stop()`` cancels the pending sleep so
    nothing fires afterwards, even if a tick was due.
    """

    def __init__(
        self,
        name: str,
        action: Callable[[], None],
        period: float,
        gate: Optional[Callable[[], bool]] = None,
    ):
        self.name = name
        self.action = action
        self.period = period
        self.gate = gate or (lambda: True)
        self._task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_active:
            return
        self._task = asyncio.create_task(self._loop(self.period))
        logger.debug("%s started (period=%.2fs)", self.name, self.period)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug("%s stopped", self.name)

    async def _loop(self, period: float) -> None:
        while True:
            await asyncio.sleep(period)
            if not self.gate():
                continue
            try:
                self.action()
            except Exception:
                logger.exception("%s tick failed", self.name)


class CadenceScheduler(PeriodicTask):
    """Decision-generation ticker, gated on session state and the feed."""

    def __init__(
        self,
        on_tick: Callable[[], None],
        *,
        is_running: Callable[[], bool],
        is_connected: Callable[[], bool],
        current_price: Callable[[], float],
        period: float,
    ):
        super().__init__("CadenceScheduler", on_tick, period, gate=self._can_fire)
        self._is_running = is_running
        self._is_connected = is_connected
        self._current_price = current_price

    def _can_fire(self) -> bool:
        return (
            self._is_running()
            and self._is_connected()
            and (self._current_price() or 0) > 0
        )
