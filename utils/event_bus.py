# --------------------------------------------------------------------
# utils/event_bus.py
# --------------------------------------------------------------------
"""A super-light, asyncio-based pub/sub. Each session owns one bus so
handlers never leak between sessions (or tests)."""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

_Handler = Callable[[object], Union[Awaitable[None], None]]


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[_Handler]] = defaultdict(list)
        self._q: Optional[asyncio.Queue[Tuple[str, object]]] = None
        # background task started lazily on first publish
        self._task: Optional[asyncio.Task] = None

    # -------------------------------------------------------------- #
    def subscribe(self, topic: str, fn: _Handler) -> None:
        self._subs[topic].append(fn)

    def publish(self, topic: str, payload: object) -> None:
        if self._task is None or self._task.done():
            self._q = asyncio.Queue()
            self._task = asyncio.create_task(self._worker())
        self._q.put_nowait((topic, payload))

    async def drain(self) -> None:
        """Wait until every published event has been handled."""
        if self._q is not None and self._task is not None and not self._task.done():
            await self._q.join()

    async def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._q = None

    # -------------------------------------------------------------- #
    async def _worker(self) -> None:
        q = self._q
        while True:
            topic, payload = await q.get()
            try:
                for fn in self._subs.get(topic, []):
                    try:
                        res = fn(payload)
                        if asyncio.iscoroutine(res):
                            await res
                    except Exception:  # keep bus alive
                        logger.exception("[event_bus] handler error on %s", topic)
            finally:
                q.task_done()
