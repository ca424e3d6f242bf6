"""
price_feed.py
-------------
Reconnecting WebSocket ticker feed. Keeps the latest price and a bounded
rolling history of PricePoints, and reports whether the transport is
currently connected.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Deque, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from core.message_handler import parse_tick
from models.price_point import PricePoint
from utils.config_manager import DEFAULT_WS_URL

PriceListener = Callable[[PricePoint], None]


class PriceFeed:
    def __init__(
        self,
        url: str = DEFAULT_WS_URL,
        *,
        history_size: int = 150,
        reconnect_delay: float = 3.0,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._clock = clock

        self.history: Deque[PricePoint] = deque(maxlen=history_size)
        self.latest_price: float = 0.0
        self.connected = False

        self._listeners: List[PriceListener] = []
        self._stop = False
        self._task: Optional[asyncio.Task] = None
        self.ws = None

    def add_listener(self, fn: PriceListener) -> None:
        self._listeners.append(fn)

    def remove_listener(self, fn: PriceListener) -> None:
        if fn in self._listeners:
            self._listeners.remove(fn)

    def recent(self, n: int) -> List[PricePoint]:
        return list(self.history)[-n:]

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def start(self) -> asyncio.Task:
        """Spawn the connection loop; a second call returns the live task."""
        if self._task is None or self._task.done():
            self._stop = False
            self._task = asyncio.create_task(self.run())
        return self._task

    def stop(self) -> None:
        self._stop = True

    async def run(self) -> None:
        while not self._stop:
            try:
                await self._connect_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.logger.warning("WS session failed: %s", exc)
            finally:
                self.connected = False
            if self._stop:
                break
            self.logger.info("🔁 Reconnecting in %.1fs ...", self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)

    async def _connect_once(self) -> None:
        async with websockets.connect(self.url) as ws:
            self.ws = ws
            self.connected = True
            self.logger.info("✅ WS connect → %s", self.url)
            try:
                async for raw in ws:
                    self._handle_ws_message(raw)
                    if self._stop:
                        break
            except ConnectionClosed as e:
                self.logger.info("WS closed (code=%s reason=%s)", e.code, e.reason)
            finally:
                self.connected = False
                self.ws = None
                self.logger.info("Disconnected from %s", self.url)

    async def graceful_shutdown(self) -> None:
        self._stop = True
        self.connected = False
        if self.ws is not None:
            try:
                await self.ws.close()
            except Exception as exc:
                self.logger.debug("WS close failed: %s", exc)
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    # ------------------------------------------------------------------ #
    # Ticks
    # ------------------------------------------------------------------ #
    def _handle_ws_message(self, raw_msg) -> Optional[PricePoint]:
        price = parse_tick(raw_msg)
        if price is None:
            return None
        return self.record(price)

    def record(self, price: float) -> PricePoint:
        """Store a validated price; timestamps never move backwards."""
        ts = self._clock()
        if self.history and ts < self.history[-1].timestamp:
            ts = self.history[-1].timestamp
        point = PricePoint(timestamp=ts, value=price)
        self.latest_price = price
        self.history.append(point)
        for fn in self._listeners:
            try:
                fn(point)
            except Exception:
                self.logger.exception("Price listener failed")
        return point
