import asyncio
import json
from unittest.mock import patch

import pytest

from core.message_handler import parse_tick
from modules.price_feed import PriceFeed

# ------------------------- Fixtures ------------------------- #

class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

@pytest.fixture
def clock():
    return _Clock()

@pytest.fixture
def feed(clock):
    return PriceFeed("wss://example.invalid/ws", history_size=5, reconnect_delay=0.01, clock=clock)

class FakeWebSocket:
    """Async-iterable stand-in for a websockets connection."""

    def __init__(self, frames):
        self._frames = list(frames)
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True
        return False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._frames:
            raise StopAsyncIteration
        await asyncio.sleep(0)
        return self._frames.pop(0)

    async def close(self):
        self.closed = True

# ------------------------- Tests ------------------------- #

@pytest.mark.parametrize(
    "raw, expected",
    [
        ('{"c": "64000.5"}', 64000.5),
        ('{"price": 101}', 101.0),
        ({"price": 7.5}, 7.5),
        ("not json", None),
        ("[1, 2, 3]", None),
        ('{"c": "abc"}', None),
        ('{"price": 0}', None),
        ('{"price": -3}', None),
        ('{"price": "NaN"}', None),
        ('{"price": null}', None),
        ('{"e": "24hrMiniTicker"}', None),
    ],
)
def test_parse_tick(raw, expected):
    assert parse_tick(raw) == expected

def test_valid_tick_updates_state(feed):
    point = feed._handle_ws_message(json.dumps({"c": "100.5"}))

    assert feed.latest_price == 100.5
    assert point.value == 100.5
    assert point.timestamp == 1000.0
    assert list(feed.history) == [point]

def test_malformed_tick_keeps_previous_price(feed, caplog):
    feed._handle_ws_message('{"price": 42}')
    assert feed._handle_ws_message("{broken") is None
    assert feed._handle_ws_message('{"price": "x"}') is None

    assert feed.latest_price == 42.0
    assert len(feed.history) == 1
    assert "Malformed" in caplog.text

def test_history_is_bounded(feed, clock):
    for i in range(1, 9):
        clock.now += 1
        feed.record(float(i))

    assert len(feed.history) == 5
    assert [p.value for p in feed.history] == [4.0, 5.0, 6.0, 7.0, 8.0]
    assert [p.value for p in feed.recent(2)] == [7.0, 8.0]

def test_timestamps_never_go_backwards(feed, clock):
    feed.record(1.0)
    clock.now -= 10
    feed.record(2.0)

    a, b = feed.history
    assert b.timestamp >= a.timestamp

def test_listener_errors_do_not_break_feed(feed):
    seen = []

    def bad(_):
        raise RuntimeError("boom")

    feed.add_listener(bad)
    feed.add_listener(lambda p: seen.append(p.value))
    feed.record(3.0)

    assert seen == [3.0]
    assert feed.latest_price == 3.0

@pytest.mark.asyncio
async def test_reconnects_after_disconnect(feed):
    sessions = [
        FakeWebSocket(['{"c": "10"}', "garbage"]),
        FakeWebSocket(['{"c": "11"}']),
    ]
    calls = []

    def fake_connect(url, **kwargs):
        calls.append(url)
        if sessions:
            return sessions.pop(0)
        feed.stop()
        raise OSError("no more sessions")

    with patch("modules.price_feed.websockets.connect", side_effect=fake_connect):
        await asyncio.wait_for(feed.run(), timeout=2)

    assert len(calls) == 3
    assert feed.latest_price == 11.0
    assert feed.connected is False

@pytest.mark.asyncio
async def test_start_is_single_task(feed):
    async def idle():
        await asyncio.sleep(10)

    with patch.object(feed, "run", side_effect=idle):
        t1 = feed.start()
        t2 = feed.start()
        assert t1 is t2
        await feed.graceful_shutdown()
    assert t1.cancelled()
